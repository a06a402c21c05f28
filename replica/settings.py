"""Replica runtime settings — tunable budgets for blueprint build and synthesis.

All values read from environment variables with defaults matching the
capture scripts' defaults. Import from here instead of hardcoding.

Infrastructure config (log directory, markup attribute) stays in
replica/config.py.
"""

from __future__ import annotations

import os
from typing import List


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


def _list(key: str, default: str) -> List[str]:
    return [item.strip() for item in _str(key, default).split(",") if item.strip()]


# =====================================================================
# Node tree budgets
# =====================================================================

BLUEPRINT_MAX_DEPTH = _int("BLUEPRINT_MAX_DEPTH", 10)
BLUEPRINT_MAX_NODES = _int("BLUEPRINT_MAX_NODES", 800)

# Leaf elements smaller than this (px) are dropped
BLUEPRINT_MIN_WIDTH = _float("BLUEPRINT_MIN_WIDTH", 8)
BLUEPRINT_MIN_HEIGHT = _float("BLUEPRINT_MIN_HEIGHT", 8)

BLUEPRINT_SKIP_TAGS = _list(
    "BLUEPRINT_SKIP_TAGS", "script,style,noscript,svg,path,link,meta"
)


# =====================================================================
# Interaction planning
# =====================================================================

INTERACTION_TARGET_LIMIT = _int("INTERACTION_TARGET_LIMIT", 80)
INTERACTION_GROUP_SAMPLE_LIMIT = _int("INTERACTION_GROUP_SAMPLE_LIMIT", 6)
INTERACTION_RECOMMENDATION_LIMIT = _int("INTERACTION_RECOMMENDATION_LIMIT", 8)
INTERACTION_WORKFLOW_LIMIT = _int("INTERACTION_WORKFLOW_LIMIT", 5)


# =====================================================================
# Condensed prompt
# =====================================================================

PROMPT_MAX_CHARS = _int("PROMPT_MAX_CHARS", 12000)


# =====================================================================
# Replica synthesis
# =====================================================================

REPLICA_CSS_MAX_NODES = _int("REPLICA_CSS_MAX_NODES", 240)
REPLICA_CSS_MAX_DEPTH = _int("REPLICA_CSS_MAX_DEPTH", 12)

# Max selectors from the captured state matrix turned into state rules
REPLICA_STATE_RULE_LIMIT = _int("REPLICA_STATE_RULE_LIMIT", 12)
