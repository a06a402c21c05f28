"""Replica synthesizers: blueprint -> CSS, static HTML and the file bundle."""

from .css import SynthOptions, build_css_decls, to_replica_css
from .declarations import infer_centering, normalize_grid_columns
from .markup import to_replica_bundle, to_replica_html
from .responsive import build_responsive_overrides, render_media_blocks

__all__ = [
    "SynthOptions",
    "build_css_decls",
    "build_responsive_overrides",
    "infer_centering",
    "normalize_grid_columns",
    "render_media_blocks",
    "to_replica_bundle",
    "to_replica_css",
    "to_replica_html",
]
