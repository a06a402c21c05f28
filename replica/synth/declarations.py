"""CSS declaration helpers shared by the stylesheet and responsive overrides.

Declarations are ``(property, value)`` pairs with kebab-case properties.
A value equal to the property's initial value is never pushed, so every
emitter built on ``push_decl`` prunes defaults the same way.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from ..nodes.style_extract import to_number

# Centering: side margins within this many px of each other, each at least MIN
CENTERING_TOLERANCE_PX = 2
CENTERING_MIN_MARGIN_PX = 16

# Grid normalization thresholds
GRID_MAX_TRACK_SPREAD = 0.04
GRID_WIDTH_TOLERANCE = 0.12
GRID_SINGLE_TRACK_MIN_PX = 320

_PX_TRACK_RE = re.compile(r"^-?\d+(?:\.\d+)?px$")
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")

# Initial / auto / zero values per property; a declaration with one of
# these values is never emitted.
INITIAL_VALUES: Dict[str, frozenset] = {
    "position": frozenset({"static"}),
    "z-index": frozenset({"auto"}),
    "top": frozenset({"auto"}),
    "right": frozenset({"auto"}),
    "bottom": frozenset({"auto"}),
    "left": frozenset({"auto"}),
    "isolation": frozenset({"auto"}),
    "flex-direction": frozenset({"row"}),
    "flex-wrap": frozenset({"nowrap"}),
    "justify-content": frozenset({"normal", "flex-start", "start"}),
    "align-items": frozenset({"normal", "stretch"}),
    "align-content": frozenset({"normal"}),
    "justify-items": frozenset({"normal", "legacy", "stretch"}),
    "gap": frozenset({"0", "0px", "normal", "normal normal", "0px 0px"}),
    "grid-template-columns": frozenset({"none"}),
    "grid-template-rows": frozenset({"none"}),
    "grid-auto-flow": frozenset({"row"}),
    "align-self": frozenset({"auto"}),
    "justify-self": frozenset({"auto"}),
    "order": frozenset({"0"}),
    "flex-grow": frozenset({"0"}),
    "flex-shrink": frozenset({"1"}),
    "flex-basis": frozenset({"auto"}),
    "overflow": frozenset({"visible"}),
    "overflow-x": frozenset({"visible"}),
    "overflow-y": frozenset({"visible"}),
    "padding": frozenset({"0", "0px", "0px 0px 0px 0px"}),
    "margin": frozenset({"0", "0px", "0px 0px 0px 0px"}),
    "margin-top": frozenset({"0", "0px"}),
    "margin-bottom": frozenset({"0", "0px"}),
    "font-style": frozenset({"normal"}),
    "font-weight": frozenset({"normal", "400"}),
    "letter-spacing": frozenset({"normal"}),
    "line-height": frozenset({"normal"}),
    "text-align": frozenset({"start"}),
    "text-transform": frozenset({"none"}),
    "text-decoration-line": frozenset({"none"}),
    "text-decoration-style": frozenset({"solid"}),
    "text-decoration-color": frozenset({"currentcolor"}),
    "white-space": frozenset({"normal"}),
    "text-overflow": frozenset({"clip"}),
    "background-color": frozenset({"transparent", "rgba(0, 0, 0, 0)"}),
    "background-image": frozenset({"none"}),
    "background-size": frozenset({"auto", "auto auto"}),
    "background-position": frozenset({"0% 0%"}),
    "background-repeat": frozenset({"repeat"}),
    "border-radius": frozenset({"0", "0px"}),
    "box-shadow": frozenset({"none"}),
    "opacity": frozenset({"1"}),
    "transform": frozenset({"none"}),
    "filter": frozenset({"none"}),
    "backdrop-filter": frozenset({"none"}),
    "mix-blend-mode": frozenset({"normal"}),
    "cursor": frozenset({"auto"}),
    "object-fit": frozenset({"fill"}),
    "aspect-ratio": frozenset({"auto"}),
    "transition-property": frozenset({"all"}),
    "transition-timing-function": frozenset({"ease"}),
    "transition-delay": frozenset({"0s"}),
}


Decl = Tuple[str, str]


# ---------------------------------------------------------------------------
# Declaration helpers
# ---------------------------------------------------------------------------


def to_css_prop(prop: str) -> str:
    """camelCase -> kebab-case; already kebab or custom properties pass through."""
    if not prop or "-" in prop:
        return prop or ""
    return _CAMEL_RE.sub(r"\1-\2", prop).lower()


def is_initial_value(prop: str, value: str) -> bool:
    return value in INITIAL_VALUES.get(prop, ())


def push_decl(decls: List[Decl], prop: str, value: Any, prune: bool = True) -> None:
    """Append ``prop: value`` unless the value is empty or (with ``prune``) the initial value."""
    if not prop or value is None:
        return
    v = str(value).strip()
    if not v:
        return
    css_prop = to_css_prop(prop)
    if prune and is_initial_value(css_prop, v):
        return
    decls.append((css_prop, v))


def has_decl(decls: List[Decl], prop: str) -> bool:
    return any(p == prop for p, _ in decls)


def box_to_shorthand(box: Optional[Dict[str, Any]]) -> Optional[str]:
    if not box:
        return None
    top = box.get("top") or "0px"
    right = box.get("right") or top
    bottom = box.get("bottom") or top
    left = box.get("left") or right
    return f"{top} {right} {bottom} {left}"


def is_zero_box(box: Dict[str, Any]) -> bool:
    for value in box.values():
        if str(value or "").strip() == "auto":
            return False
        if to_number(value):
            return False
    return True


def render_rule(selector: str, decls: List[Decl]) -> str:
    body = "\n".join(f"  {prop}: {value};" for prop, value in decls)
    return f"{selector} {{\n{body}\n}}"


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


def infer_centering(max_width: Any, margin: Optional[Dict[str, Any]]) -> bool:
    """True when a max-width box is horizontally centred by its margins."""
    if not margin or not to_number(max_width):
        return False
    left = str(margin.get("left") or "").strip()
    right = str(margin.get("right") or "").strip()
    if left == "auto" and right == "auto":
        return True
    left_px, right_px = to_number(left), to_number(right)
    if left_px is None or right_px is None:
        return False
    return (
        left_px >= CENTERING_MIN_MARGIN_PX
        and right_px >= CENTERING_MIN_MARGIN_PX
        and abs(left_px - right_px) <= CENTERING_TOLERANCE_PX
    )


def parse_px_tracks(value: Any) -> Optional[List[float]]:
    """Track widths of a pixel-only track list, else None."""
    tracks = str(value or "").split()
    if not tracks or not all(_PX_TRACK_RE.match(t) for t in tracks):
        return None
    return [float(t[:-2]) for t in tracks]


def _column_gap(gap: Any) -> float:
    # gap shorthand is "<row> <column>"
    parts = str(gap or "").split()
    if not parts:
        return 0.0
    return to_number(parts[-1]) or 0.0


def normalize_grid_columns(columns: Any, container_width: Optional[float], gap: Any = None) -> Any:
    """Rewrite an even pixel track list that fills its container to fractions.

    Anything that does not qualify (non-pixel tracks, uneven tracks, unknown
    or mismatching container width) passes through unchanged.
    """
    tracks = parse_px_tracks(columns)
    if not tracks or not container_width:
        return columns

    n = len(tracks)
    if n >= 2:
        smallest = min(tracks)
        if smallest <= 0 or (max(tracks) - smallest) / smallest > GRID_MAX_TRACK_SPREAD:
            return columns
    elif tracks[0] < GRID_SINGLE_TRACK_MIN_PX:
        return columns

    expected = sum(tracks) + _column_gap(gap) * (n - 1)
    if expected <= 0 or abs(container_width - expected) > expected * GRID_WIDTH_TOLERANCE:
        return columns

    return "minmax(0, 1fr)" if n == 1 else f"repeat({n}, minmax(0, 1fr))"


def content_width(node: Dict[str, Any]) -> Optional[float]:
    rect = node.get("rect") or {}
    width = to_number(rect.get("width"))
    if not width:
        return None
    padding = ((node.get("constraints") or {}).get("spacing") or {}).get("padding") or {}
    return width - (to_number(padding.get("left")) or 0) - (to_number(padding.get("right")) or 0)

