"""Responsive ``@media`` overrides from stored viewport snapshots.

One viewport is the baseline (``desktop`` when stored, else the widest).
Every narrower viewport is diffed against it, selector by selector, and
the differing properties become one ``@media (max-width: Npx)`` block.
Blocks are ordered widest to narrowest so the narrower block wins.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..evidence.schemas import coerce_viewport_layouts
from .declarations import normalize_grid_columns, parse_px_tracks, to_css_prop

logger = logging.getLogger(__name__)

BASELINE_VIEWPORT = "desktop"

# Declarations inside a block follow this order, then alphabetical
PROPERTY_ORDER = [
    "display",
    "flex-direction",
    "flex-wrap",
    "justify-content",
    "align-items",
    "grid-template-columns",
    "grid-template-rows",
    "gap",
    "column-gap",
    "row-gap",
    "visibility",
    "opacity",
]
_PROPERTY_RANK = {prop: i for i, prop in enumerate(PROPERTY_ORDER)}

GRID_PROPS = ("gridTemplateColumns", "gridTemplateRows", "gridAutoFlow", "gap", "columnGap", "rowGap")
FLEX_PROPS = ("flexDirection", "flexWrap", "justifyContent", "alignItems", "gap")
VISIBILITY_PROPS = ("display", "visibility", "opacity")
CONTAINER_LAYOUT_PROPS = ("display", "flexDirection", "gridTemplateColumns", "gap")
CONTAINER_SIZING_PROPS = ("padding", "margin", "maxWidth")


def _width(layout: Dict[str, Any]) -> float:
    return float((layout.get("viewport") or {}).get("width") or 0)


def pick_baseline(layouts: Dict[str, Dict[str, Any]]) -> Optional[str]:
    """``desktop`` when stored, else the widest viewport."""
    if not layouts:
        return None
    if BASELINE_VIEWPORT in layouts:
        return BASELINE_VIEWPORT
    return max(layouts, key=lambda name: _width(layouts[name]))


def _by_selector(records: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {r["selector"]: r for r in records or [] if r.get("selector")}


def _norm(value: Any) -> str:
    return " ".join(str(value).split()) if value is not None else ""


def _normalized_columns(record: Dict[str, Any]) -> Any:
    width = (record.get("rect") or {}).get("width")
    gap = record.get("columnGap") or record.get("gap")
    return normalize_grid_columns(record.get("gridTemplateColumns"), width, gap)


def property_sort_key(prop: str) -> Tuple[int, str]:
    return (_PROPERTY_RANK.get(prop, len(PROPERTY_ORDER)), prop)


class _Overrides:
    """Per-selector declarations for one viewport block."""

    def __init__(self) -> None:
        self.rules: Dict[str, Dict[str, str]] = {}

    def set(self, selector: str, prop: str, value: Any) -> None:
        text = _norm(value)
        if not text:
            return
        css_prop = to_css_prop(prop)
        decls = self.rules.setdefault(selector, {})
        # display:none from visibility evidence is never clobbered by a later display
        if css_prop == "display" and decls.get("display") == "none":
            return
        decls[css_prop] = text

    def diff(self, selector: str, base: Dict[str, Any], current: Dict[str, Any],
             props: Tuple[str, ...]) -> None:
        for prop in props:
            value = current.get(prop)
            if value is None or _norm(value) == _norm(base.get(prop)):
                continue
            if prop == "gridTemplateColumns":
                value = _normalized_columns(current)
                if value == _normalized_columns(base):
                    continue
            elif prop == "gridTemplateRows" and parse_px_tracks(value) is not None:
                continue
            self.set(selector, prop, value)

    def to_rules(self) -> List[Dict[str, Any]]:
        rules = []
        for selector, decls in self.rules.items():
            if not decls:
                continue
            ordered = dict(sorted(decls.items(), key=lambda item: property_sort_key(item[0])))
            rules.append({"selector": selector, "declarations": ordered})
        return rules


def diff_viewport(baseline: Dict[str, Any], layout: Dict[str, Any],
                  selector_map: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
    """Override rules turning ``baseline`` into ``layout``.

    Only properties that differ for the same selector are emitted; a
    selector with no baseline record gets no override.
    """
    overrides = _Overrides()

    def target(selector: str) -> Optional[str]:
        if selector_map is None:
            return selector
        return selector_map.get(selector)

    # Visibility first so display:none is protected within the block
    base_visibility = _by_selector(baseline.get("visibilityStates"))
    for selector, record in _by_selector(layout.get("visibilityStates")).items():
        base = base_visibility.get(selector)
        css_selector = target(selector)
        if base is None or css_selector is None:
            continue
        overrides.diff(css_selector, base, record, VISIBILITY_PROPS)

    for key, props in (("gridLayouts", GRID_PROPS), ("flexLayouts", FLEX_PROPS)):
        base_records = _by_selector(baseline.get(key))
        for selector, record in _by_selector(layout.get(key)).items():
            base = base_records.get(selector)
            css_selector = target(selector)
            if base is None or css_selector is None:
                continue
            overrides.diff(css_selector, base, record, props)

    base_containers = _by_selector(baseline.get("layoutContainers"))
    for selector, record in _by_selector(layout.get("layoutContainers")).items():
        base = base_containers.get(selector)
        css_selector = target(selector)
        if base is None or css_selector is None:
            continue
        layout_record = dict(record.get("layout") or {}, rect=record.get("rect"))
        base_layout = dict(base.get("layout") or {}, rect=base.get("rect"))
        overrides.diff(css_selector, base_layout, layout_record, CONTAINER_LAYOUT_PROPS)
        overrides.diff(css_selector, base.get("sizing") or {}, record.get("sizing") or {}, CONTAINER_SIZING_PROPS)

    return overrides.to_rules()


def build_responsive_overrides(viewport_layouts: Any,
                               selector_map: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
    """Ordered ``@media`` override blocks, widest viewport first.

    Args:
        viewport_layouts: ``{viewportName: snapshot}`` as stored by the
            responsive capture
        selector_map: Optional evidence selector -> replica selector map;
            when given, selectors missing from it are skipped

    Returns:
        ``[{"viewport", "maxWidth", "rules": [{"selector", "declarations"}]}]``
    """
    layouts = coerce_viewport_layouts(viewport_layouts)
    if len(layouts) < 2:
        return []

    baseline_name = pick_baseline(layouts)
    baseline = layouts[baseline_name]
    baseline_width = _width(baseline)

    others = [
        name for name in layouts
        if name != baseline_name and 0 < _width(layouts[name]) < baseline_width
    ]
    others.sort(key=lambda name: _width(layouts[name]), reverse=True)

    blocks = []
    for name in others:
        rules = diff_viewport(baseline, layouts[name], selector_map)
        if rules:
            blocks.append({
                "viewport": name,
                "maxWidth": int(_width(layouts[name])),
                "rules": rules,
            })
    logger.debug(
        "Responsive overrides: baseline=%s, %d/%d viewport(s) with changes",
        baseline_name, len(blocks), len(others),
    )
    return blocks


def render_media_blocks(blocks: List[Dict[str, Any]]) -> str:
    out = []
    for block in blocks:
        lines = [f"@media (max-width: {block['maxWidth']}px) {{"]
        for rule in block["rules"]:
            lines.append(f"  {rule['selector']} {{")
            lines.extend(f"    {prop}: {value};" for prop, value in rule["declarations"].items())
            lines.append("  }")
        lines.append("}")
        out.append("\n".join(lines))
    return "\n".join(out)
