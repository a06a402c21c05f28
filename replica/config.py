"""Replica configuration constants — single source of truth for infrastructure env vars."""

import os

# Log directory for file handlers (see logging_config)
LOG_DIR = os.getenv("REPLICA_LOG_DIR", "")

# Log level for the pre-configured loggers
LOG_LEVEL = os.getenv("REPLICA_LOG_LEVEL", "INFO").upper()

# Attribute used to address nodes in generated replica markup / CSS
DATA_ATTR = os.getenv("REPLICA_DATA_ATTR", "data-se-id")
