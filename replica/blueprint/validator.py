"""Blueprint quality validation rules (pure Python).

Called by the assembler after the blueprint is composed to detect issues
that would degrade a replica:
- Duplicate node uids
- Node / depth budget overruns
- Components bound to no node
- Sections referencing unknown components
- Duplicate interaction target keys
- Child rects overflowing their parent
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from ..evidence.schemas import BuildOptions
from ..nodes.tree_builder import walk_tree

logger = logging.getLogger(__name__)

# Child rect overflow slack (px)
_BOUNDS_TOLERANCE = 2
_MAX_LISTED = 10


# ---------------------------------------------------------------------------
# Validation functions
# ---------------------------------------------------------------------------

def validate_uids(tree: Optional[Dict[str, Any]], warnings: List[Dict[str, Any]]) -> Dict[str, int]:
    """Duplicate uids plus node count / max depth of the tree."""
    uids: List[str] = []
    max_depth = 0
    for node, depth in walk_tree(tree):
        uids.append(node.get("uid"))
        max_depth = max(max_depth, depth)

    for uid, count in Counter(uids).items():
        if count > 1:
            warnings.append({
                "uid": uid,
                "rule": "duplicate_uid",
                "detail": f"uid '{uid}' used by {count} nodes",
            })
    return {"nodeCount": len(uids), "maxDepth": max_depth}


def validate_budgets(stats: Dict[str, int], options: BuildOptions,
                     warnings: List[Dict[str, Any]]) -> None:
    if stats["nodeCount"] > options.max_nodes:
        warnings.append({
            "rule": "node_budget_exceeded",
            "detail": f"{stats['nodeCount']} nodes > max_nodes={options.max_nodes}",
        })
    if stats["maxDepth"] > options.max_depth:
        warnings.append({
            "rule": "depth_budget_exceeded",
            "detail": f"depth {stats['maxDepth']} > max_depth={options.max_depth}",
        })


def validate_bounds(node: Dict[str, Any], parent_rect: Optional[Dict[str, Any]],
                    warnings: List[Dict[str, Any]]) -> None:
    """Child rect exceeding the parent rect, unless the parent clips or it is positioned."""
    rect = node.get("rect")
    layout = node.get("layout") or {}
    if isinstance(rect, dict) and isinstance(parent_rect, dict) and rect.get("width") and rect.get("height"):
        px, py = parent_rect.get("x", 0), parent_rect.get("y", 0)
        pw, ph = parent_rect.get("width", 0), parent_rect.get("height", 0)
        cx, cy, cw, ch = rect.get("x", 0), rect.get("y", 0), rect["width"], rect["height"]
        overflow = (
            cx + _BOUNDS_TOLERANCE < px
            or cy + _BOUNDS_TOLERANCE < py
            or cx + cw > px + pw + _BOUNDS_TOLERANCE
            or cy + ch > py + ph + _BOUNDS_TOLERANCE
        )
        if overflow and layout.get("position") not in ("absolute", "fixed"):
            warnings.append({
                "uid": node.get("uid"),
                "selector": node.get("selector"),
                "rule": "bounds_overflow",
                "detail": f"rect ({cx},{cy},{cw}x{ch}) exceeds parent ({px},{py},{pw}x{ph})",
            })

    clips = layout.get("overflow") in ("hidden", "scroll", "auto", "clip")
    for child in node.get("children") or []:
        validate_bounds(child, None if clips else rect, warnings)


def validate_components(components: List[Dict[str, Any]], sections: List[Dict[str, Any]],
                        warnings: List[Dict[str, Any]]) -> Dict[str, Any]:
    unbound = [c["id"] for c in components if not c.get("nodeIds")]
    known = {c["id"] for c in components}
    for section in sections:
        dangling = [cid for cid in section.get("components") or [] if cid not in known]
        if dangling:
            warnings.append({
                "sectionId": section.get("id"),
                "rule": "section_unknown_component",
                "detail": f"section references unknown components {dangling[:_MAX_LISTED]}",
            })
    return {
        "componentCount": len(components),
        "unboundCount": len(unbound),
        "unboundIds": unbound[:_MAX_LISTED],
        "bindingRate": round((len(components) - len(unbound)) / max(len(components), 1), 2),
    }


def validate_interaction(interaction: Optional[Dict[str, Any]], warnings: List[Dict[str, Any]]) -> None:
    targets = (interaction or {}).get("targets") or []
    keys = Counter(t.get("nodeId") or t.get("selector") for t in targets)
    for key, count in keys.items():
        if count > 1:
            warnings.append({
                "rule": "duplicate_target",
                "detail": f"interaction target '{key}' appears {count} times",
            })


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def validate_blueprint(blueprint: Dict[str, Any], options: Optional[BuildOptions] = None) -> Dict[str, Any]:
    """Run all quality rules; returns a report to embed as ``blueprint.validation``."""
    options = options or BuildOptions()
    warnings: List[Dict[str, Any]] = []

    tree = blueprint.get("tree")
    tree_stats = validate_uids(tree, warnings)
    validate_budgets(tree_stats, options, warnings)
    if tree:
        validate_bounds(tree, None, warnings)

    component_report = validate_components(
        (blueprint.get("components") or {}).get("list") or [],
        blueprint.get("sections") or [],
        warnings,
    )
    validate_interaction(blueprint.get("interaction"), warnings)

    if warnings:
        logger.warning("Blueprint validation: %d quality warning(s)", len(warnings))
        for w in warnings[:5]:
            logger.warning("  [%s] %s", w.get("rule"), w.get("detail"))
    if component_report["unboundCount"]:
        logger.info(
            "Blueprint validation: %d/%d component(s) unbound",
            component_report["unboundCount"], component_report["componentCount"],
        )

    counts = Counter(w["rule"] for w in warnings)
    return {
        "tree": tree_stats,
        "components": component_report,
        "warningCount": len(warnings),
        "warningsByRule": dict(counts),
        "warnings": warnings[:50],
    }
