"""Replica CSS synthesis — blueprint tree -> stylesheet.

Every IR node becomes one ``[data-se-id="uid"]`` rule. Declarations are
emitted in a fixed group order (layout, constraints, typography, visual)
and any value equal to the property's initial value is pruned. Two
heuristics make the literal capture generalize:

- centering: a max-width container with (near) equal side margins gets
  ``margin-left/right: auto`` instead of the measured pixels
- grid tracks: an even pixel-only column list that fills its container is
  rewritten to ``repeat(n, minmax(0, 1fr))``

Default-state pseudo-elements and interactive state rules come from the
captured state matrix; responsive ``@media`` blocks come from
``replica.synth.responsive``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .. import config, settings
from ..evidence.schemas import coerce_state_capture
from .declarations import (
    Decl,
    box_to_shorthand,
    content_width,
    has_decl,
    infer_centering,
    is_zero_box,
    normalize_grid_columns,
    parse_px_tracks,
    push_decl,
    render_rule,
)
from .responsive import build_responsive_overrides, render_media_blocks

logger = logging.getLogger(__name__)

MISSING_TREE_CSS = "/* No blueprint tree available */"

# Captured-state pseudo-classes
STATE_PSEUDO = {
    "hover": ":hover",
    "active": ":active",
    "focus": ":focus",
    "focusVisible": ":focus-visible",
    "focusWithin": ":focus-within",
    "disabled": ":disabled",
    "checked": ":checked",
    "invalid": ":invalid",
}

# Properties allowed to change in state rules
STATE_PROPS = frozenset({
    "backgroundColor", "backgroundImage", "backgroundSize", "backgroundPosition",
    "backgroundRepeat", "color", "borderColor", "borderWidth", "borderStyle",
    "borderRadius", "outline", "outlineColor", "outlineWidth", "outlineStyle",
    "outlineOffset", "boxShadow", "textShadow", "opacity", "transform", "filter",
    "backdropFilter", "textDecoration", "textDecorationColor", "fontWeight", "cursor",
})

PSEUDO_PROPS = STATE_PROPS | {
    "content", "fill", "stroke", "textDecorationLine", "textDecorationStyle",
    "width", "height", "display", "position", "top", "right", "bottom", "left",
}


class SynthOptions(BaseModel):
    """Options for replica synthesis."""
    model_config = ConfigDict(extra="ignore")

    data_attr: str = config.DATA_ATTR
    max_nodes: int = Field(default=settings.REPLICA_CSS_MAX_NODES, ge=1)
    max_depth: int = Field(default=settings.REPLICA_CSS_MAX_DEPTH, ge=0)
    state_limit: int = Field(default=settings.REPLICA_STATE_RULE_LIMIT, ge=0)
    center_containers: bool = True
    normalize_grids: bool = True
    keep_pixel_rows: bool = False
    include_component: bool = True


def coerce_synth_options(raw: Any = None, **overrides: Any) -> SynthOptions:
    if isinstance(raw, SynthOptions):
        return raw.model_copy(update=overrides) if overrides else raw
    data = dict(raw) if isinstance(raw, dict) else {}
    data.update(overrides)
    return SynthOptions(**data)


# ---------------------------------------------------------------------------
# Per-node declarations
# ---------------------------------------------------------------------------


def _layout_decls(decls: List[Decl], node: Dict[str, Any], opts: SynthOptions) -> None:
    layout = node.get("layout") or {}
    for key in ("display", "position", "zIndex", "isolation", "top", "right", "bottom", "left"):
        push_decl(decls, key, layout.get(key))

    flex = layout.get("flex")
    if flex:
        push_decl(decls, "flexDirection", flex.get("direction"))
        push_decl(decls, "flexWrap", flex.get("wrap"))
        push_decl(decls, "justifyContent", flex.get("justify"))
        push_decl(decls, "alignItems", flex.get("align"))
        push_decl(decls, "alignContent", flex.get("alignContent"))
        push_decl(decls, "gap", flex.get("gap"))

    grid = layout.get("grid")
    if grid:
        columns = grid.get("columns")
        if opts.normalize_grids:
            columns = normalize_grid_columns(columns, content_width(node), grid.get("gap"))
        push_decl(decls, "gridTemplateColumns", columns)
        rows = grid.get("rows")
        if opts.keep_pixel_rows or parse_px_tracks(rows) is None:
            push_decl(decls, "gridTemplateRows", rows)
        push_decl(decls, "gridAutoFlow", grid.get("autoFlow"))
        push_decl(decls, "justifyItems", grid.get("justifyItems"))
        push_decl(decls, "alignItems", grid.get("alignItems"))
        push_decl(decls, "justifyContent", grid.get("justifyContent"))
        push_decl(decls, "gap", grid.get("gap"))

    for key in ("overflow", "overflowX", "overflowY"):
        push_decl(decls, key, layout.get(key))

    item = layout.get("flexItem") or {}
    push_decl(decls, "flexGrow", item.get("grow"))
    push_decl(decls, "flexShrink", item.get("shrink"))
    push_decl(decls, "flexBasis", item.get("basis"))
    grid_item = layout.get("gridItem") or {}
    for key in ("columnStart", "columnEnd", "rowStart", "rowEnd"):
        push_decl(decls, f"grid{key[0].upper()}{key[1:]}", grid_item.get(key))
    push_decl(decls, "alignSelf", layout.get("alignSelf"))
    push_decl(decls, "justifySelf", layout.get("justifySelf"))
    push_decl(decls, "order", layout.get("order"))


def _constraint_decls(decls: List[Decl], node: Dict[str, Any], opts: SynthOptions) -> None:
    constraints = node.get("constraints") or {}
    spacing = constraints.get("spacing") or {}
    size = constraints.get("size") or {}

    padding = spacing.get("padding")
    if padding and not is_zero_box(padding):
        push_decl(decls, "padding", box_to_shorthand(padding))

    margin = spacing.get("margin")
    if margin and not is_zero_box(margin):
        if opts.center_containers and infer_centering(size.get("maxWidth"), margin):
            push_decl(decls, "marginTop", margin.get("top"))
            push_decl(decls, "marginBottom", margin.get("bottom"))
            push_decl(decls, "marginLeft", "auto")
            push_decl(decls, "marginRight", "auto")
        else:
            push_decl(decls, "margin", box_to_shorthand(margin))

    # Container gap from layout.flex / layout.grid wins
    if not has_decl(decls, "gap"):
        push_decl(decls, "gap", spacing.get("gap"))

    for key in ("minWidth", "maxWidth", "minHeight", "maxHeight"):
        value = size.get(key)
        if isinstance(value, (int, float)) and value > 0:
            push_decl(decls, key, f"{value:g}px")


def _typography_decls(decls: List[Decl], node: Dict[str, Any]) -> None:
    typography = node.get("typography") or {}
    for key in (
        "fontFamily", "fontSize", "fontWeight", "fontStyle", "lineHeight", "letterSpacing",
        "textAlign", "textTransform", "textDecorationLine", "textDecorationStyle",
        "textDecorationColor", "whiteSpace", "textOverflow",
    ):
        push_decl(decls, key, typography.get(key))


def _border_value(side: Any) -> Optional[str]:
    if not isinstance(side, dict):
        return None
    return " ".join(str(side.get(k) or "") for k in ("width", "style", "color")).strip() or None


def _visual_decls(decls: List[Decl], node: Dict[str, Any]) -> None:
    visual = node.get("visual") or {}
    for key in (
        "color", "backgroundColor", "backgroundImage", "backgroundSize",
        "backgroundPosition", "backgroundRepeat", "borderRadius",
    ):
        push_decl(decls, key, visual.get(key))

    border = visual.get("border")
    if isinstance(border, dict):
        if "width" in border and "style" in border:
            push_decl(decls, "border", _border_value(border))
        else:
            for side in ("top", "right", "bottom", "left"):
                push_decl(decls, f"border-{side}", _border_value(border.get(side)))

    for key in (
        "boxShadow", "opacity", "transform", "filter", "backdropFilter", "mixBlendMode",
        "cursor", "objectFit", "objectPosition", "aspectRatio",
    ):
        push_decl(decls, key, visual.get(key))

    transition = visual.get("transition")
    if isinstance(transition, dict) and transition.get("duration"):
        push_decl(decls, "transitionProperty", transition.get("property"))
        push_decl(decls, "transitionDuration", transition.get("duration"))
        push_decl(decls, "transitionTimingFunction", transition.get("timingFunction"))
        push_decl(decls, "transitionDelay", transition.get("delay"))


def build_css_decls(node: Optional[Dict[str, Any]], options: Any = None) -> List[Decl]:
    """Ordered, pruned ``(property, value)`` pairs for one IR node."""
    if not node:
        return []
    opts = coerce_synth_options(options)
    decls: List[Decl] = []
    _layout_decls(decls, node, opts)
    _constraint_decls(decls, node, opts)
    _typography_decls(decls, node)
    _visual_decls(decls, node)
    return decls


def build_pseudo_decls(pseudo: Optional[Dict[str, Any]]) -> Optional[List[Decl]]:
    """Declarations for a ``::before``/``::after`` record; None without content."""
    if not isinstance(pseudo, dict):
        return None
    content = str(pseudo.get("content") or "").strip()
    if not content or content in ("none", "normal"):
        return None
    decls: List[Decl] = [("content", content)]
    for key, value in pseudo.items():
        if key == "content":
            continue
        if key == "border":
            push_decl(decls, "border", _border_value(value))
        elif key == "transition" and isinstance(value, dict):
            push_decl(decls, "transitionProperty", value.get("property"))
            push_decl(decls, "transitionDuration", value.get("duration"))
        elif not isinstance(value, dict):
            push_decl(decls, key, value)
    return decls


# ---------------------------------------------------------------------------
# Stylesheet
# ---------------------------------------------------------------------------


def walk_limited(root: Optional[Dict[str, Any]], max_nodes: int, max_depth: int) -> Iterator[Dict[str, Any]]:
    """Pre-order walk that stops after ``max_nodes`` nodes or below ``max_depth``."""
    count = 0
    stack: List[Tuple[Dict[str, Any], int]] = [(root, 0)] if root else []
    while stack and count < max_nodes:
        node, depth = stack.pop()
        if depth > max_depth:
            continue
        count += 1
        yield node
        children = node.get("children") or []
        for child in reversed(children):
            if isinstance(child, dict):
                stack.append((child, depth + 1))


def node_selector(uid: str, data_attr: str = config.DATA_ATTR) -> str:
    return f'[{data_attr}="{uid}"]'


def _state_pseudo_decls(base: Dict[str, Any], pseudo_name: str) -> Optional[List[Decl]]:
    """Pseudo-element styles stored flat in a state map as ``::before.prop``."""
    prefix = f"{pseudo_name}."
    decls: List[Decl] = []
    for key, value in base.items():
        if not isinstance(key, str) or not key.startswith(prefix):
            continue
        prop = key[len(prefix):]
        if prop in PSEUDO_PROPS:
            push_decl(decls, prop, value)
    content = dict(decls).get("content", "")
    if not content or content in ("none", "normal"):
        return None
    return decls


def build_state_rules(state_capture: Any, selector_to_uid: Dict[str, str],
                      opts: SynthOptions) -> List[str]:
    """Pseudo-element and ``:hover``/``:focus``/... rules from the state matrix.

    Only allow-listed properties whose value differs from the default state
    are emitted. At most ``opts.state_limit`` selectors are used.
    """
    matrix = coerce_state_capture(state_capture)["captured"]["states"]
    rules: List[str] = []
    seen = 0
    for selector, entry in matrix.items():
        if seen >= opts.state_limit:
            break
        uid = selector_to_uid.get(selector)
        states = entry.get("states") or {}
        base = states.get("default")
        if not uid or not base:
            continue
        target = node_selector(uid, opts.data_attr)

        for pseudo_name in ("::before", "::after"):
            pseudo_decls = _state_pseudo_decls(base, pseudo_name)
            if pseudo_decls:
                rules.append(render_rule(f"{target}{pseudo_name}", pseudo_decls))

        for state_name, styles in states.items():
            pseudo_class = STATE_PSEUDO.get(state_name)
            if not pseudo_class or not isinstance(styles, dict):
                continue
            decls: List[Decl] = []
            for prop, value in styles.items():
                if prop in STATE_PROPS and base.get(prop) != value:
                    push_decl(decls, prop, value, prune=False)
            if decls:
                rules.append(render_rule(f"{target}{pseudo_class}", decls))
        seen += 1
    return rules


def to_replica_css(blueprint: Any, state_capture: Any = None,
                   viewport_layouts: Any = None, **options: Any) -> str:
    """Stylesheet for the replica markup of ``blueprint``.

    Args:
        blueprint: Blueprint dict from ``build_blueprint``
        state_capture: Optional state-capture evidence for state rules
        viewport_layouts: Optional per-viewport snapshots for ``@media`` overrides
        **options: ``SynthOptions`` fields (data_attr, max_nodes, ...)

    Returns:
        CSS text, or a comment marker when the blueprint has no tree.
    """
    tree = blueprint.get("tree") if isinstance(blueprint, dict) else None
    if not tree:
        return MISSING_TREE_CSS + "\n"

    opts = coerce_synth_options(options)
    rules = [
        "/* Generated by replica synthesis */",
        "* { box-sizing: border-box; }",
        "html, body { margin: 0; padding: 0; }",
        f"{node_selector(tree.get('uid'), opts.data_attr)} {{ min-height: 100vh; }}",
    ]

    selector_to_uid: Dict[str, str] = {}
    node_count = 0
    for node in walk_limited(tree, opts.max_nodes, opts.max_depth):
        node_count += 1
        uid = node.get("uid")
        if not uid:
            continue
        if node.get("selector"):
            selector_to_uid.setdefault(node["selector"], uid)
        target = node_selector(uid, opts.data_attr)
        decls = build_css_decls(node, opts)
        if decls:
            rules.append(render_rule(target, decls))
        pseudos = node.get("pseudoElements") or {}
        for key in ("before", "after"):
            pseudo_decls = build_pseudo_decls(pseudos.get(key))
            if pseudo_decls:
                rules.append(render_rule(f"{target}::{key}", pseudo_decls))

    rules.extend(build_state_rules(state_capture, selector_to_uid, opts))

    selector_map = {sel: node_selector(uid, opts.data_attr) for sel, uid in selector_to_uid.items()}
    blocks = build_responsive_overrides(viewport_layouts, selector_map)
    if blocks:
        rules.append(render_media_blocks(blocks))

    logger.debug("Replica CSS: %d nodes styled, %d media blocks", node_count, len(blocks))
    return "\n".join(rules) + "\n"
