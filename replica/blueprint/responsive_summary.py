"""Responsive evidence summary for the blueprint.

Summarizes breakpoint evidence, serializes the viewport capture workflow
into a linear tool-call list, and compares every pair of stored viewport
layouts (grid columns, flex direction/wrap, visibility, large size changes).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..interaction.actions import TOOL_EVALUATE

logger = logging.getLogger(__name__)

# Size delta (px) that counts as a sizing change between viewports
SIZING_CHANGE_PX = 50
COMPARISON_LIST_LIMIT = 10
HINT_LAYOUT_LIMIT = 8
HINT_VISIBILITY_LIMIT = 6


def _by_selector(records: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {r["selector"]: r for r in records or [] if isinstance(r, dict) and r.get("selector")}


def _actual_size(record: Dict[str, Any]) -> Dict[str, float]:
    actual = record.get("actual") or record.get("rect") or {}
    return {"width": float(actual.get("width") or 0), "height": float(actual.get("height") or 0)}


def compare_layouts(layout_a: Dict[str, Any], layout_b: Dict[str, Any]) -> Dict[str, Any]:
    """Differences going from viewport layout ``a`` to ``b``."""
    changes: Dict[str, Any] = {
        "viewport": {"from": layout_a.get("viewport"), "to": layout_b.get("viewport")},
        "breakpoint": {
            "from": layout_a.get("breakpoint"),
            "to": layout_b.get("breakpoint"),
            "changed": layout_a.get("breakpoint") != layout_b.get("breakpoint"),
        },
        "layoutChanges": [],
        "visibilityChanges": [],
        "sizingChanges": [],
    }

    grids_b = _by_selector(layout_b.get("gridLayouts"))
    for selector, grid_a in _by_selector(layout_a.get("gridLayouts")).items():
        grid_b = grids_b.get(selector)
        if grid_b is None:
            changes["layoutChanges"].append({"type": "grid-removed", "selector": selector, "from": grid_a})
        elif grid_a.get("gridTemplateColumns") != grid_b.get("gridTemplateColumns"):
            changes["layoutChanges"].append({
                "type": "grid-columns-changed",
                "selector": selector,
                "from": grid_a.get("gridTemplateColumns"),
                "to": grid_b.get("gridTemplateColumns"),
            })

    flexes_b = _by_selector(layout_b.get("flexLayouts"))
    for selector, flex_a in _by_selector(layout_a.get("flexLayouts")).items():
        flex_b = flexes_b.get(selector)
        if flex_b is None:
            continue
        for prop, change_type in (("flexDirection", "flex-direction-changed"), ("flexWrap", "flex-wrap-changed")):
            if flex_a.get(prop) != flex_b.get(prop):
                changes["layoutChanges"].append({
                    "type": change_type,
                    "selector": selector,
                    "from": flex_a.get(prop),
                    "to": flex_b.get(prop),
                })

    vis_b = _by_selector(layout_b.get("visibilityStates"))
    for selector, v_a in _by_selector(layout_a.get("visibilityStates")).items():
        v_b = vis_b.get(selector)
        if v_b is not None and bool(v_a.get("isVisible")) != bool(v_b.get("isVisible")):
            changes["visibilityChanges"].append({
                "selector": selector,
                "from": "visible" if v_a.get("isVisible") else "hidden",
                "to": "visible" if v_b.get("isVisible") else "hidden",
                "displayFrom": v_a.get("display"),
                "displayTo": v_b.get("display"),
            })

    sizes_b = _by_selector(layout_b.get("sizingInfo"))
    for selector, s_a in _by_selector(layout_a.get("sizingInfo")).items():
        s_b = sizes_b.get(selector)
        if s_b is None:
            continue
        a, b = _actual_size(s_a), _actual_size(s_b)
        if abs(a["width"] - b["width"]) > SIZING_CHANGE_PX or abs(a["height"] - b["height"]) > SIZING_CHANGE_PX:
            changes["sizingChanges"].append({
                "selector": selector,
                "tag": s_a.get("tag"),
                "widthChange": {"from": a["width"], "to": b["width"], "diff": b["width"] - a["width"]},
                "heightChange": {"from": a["height"], "to": b["height"], "diff": b["height"] - a["height"]},
            })

    total = sum(len(changes[k]) for k in ("layoutChanges", "visibilityChanges", "sizingChanges"))
    changes["summary"] = {
        "totalChanges": total,
        "hasLayoutChanges": bool(changes["layoutChanges"]),
        "hasVisibilityChanges": bool(changes["visibilityChanges"]),
        "hasSizingChanges": bool(changes["sizingChanges"]),
    }
    return changes


def serialize_viewport_workflow(workflow: Any) -> Optional[Dict[str, Any]]:
    """Linear tool-call list for a viewport capture workflow."""
    if not isinstance(workflow, dict):
        return None
    steps = [s for s in workflow.get("steps") or [] if isinstance(s, dict)]
    if not steps:
        return None

    serialized = []
    mcp_count = 0
    eval_count = 0
    for step in steps:
        tool = step.get("mcpTool") or {}
        if tool.get("name"):
            serialized.append({
                "step": step.get("step"),
                "tool": tool["name"],
                "params": tool.get("params") or {},
                "action": step.get("action"),
                "viewport": step.get("viewport"),
            })
            mcp_count += 1
        if step.get("script"):
            serialized.append({
                "step": step.get("step"),
                "tool": TOOL_EVALUATE,
                "params": {"function": step["script"]},
                "action": step.get("action"),
                "viewport": step.get("viewport"),
            })
            eval_count += 1

    return {
        "total": len(serialized),
        "mcp": mcp_count,
        "eval": eval_count,
        "steps": serialized,
        "note": "Tool call list ready for sequential execution (viewport workflow).",
    }


def summarize_variants(viewport_layouts: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Per-viewport counts plus pairwise comparisons of stored layouts."""
    if not viewport_layouts:
        return None
    entries = list(viewport_layouts.items())
    variants: Dict[str, Any] = {"layouts": {}, "comparisons": []}
    for name, layout in entries:
        variants["layouts"][name] = {
            "viewport": layout.get("viewport"),
            "breakpoint": layout.get("breakpoint"),
            "gridCount": len(layout.get("gridLayouts") or []),
            "flexCount": len(layout.get("flexLayouts") or []),
            "visibilityChanges": len(layout.get("visibilityStates") or []),
            "sizingChanges": len(layout.get("sizingInfo") or []),
        }

    for i, (name_a, layout_a) in enumerate(entries):
        for name_b, layout_b in entries[i + 1:]:
            diff = compare_layouts(layout_a, layout_b)
            variants["comparisons"].append({
                "from": name_a,
                "to": name_b,
                "summary": diff["summary"],
                "layoutChanges": diff["layoutChanges"][:COMPARISON_LIST_LIMIT],
                "visibilityChanges": diff["visibilityChanges"][:COMPARISON_LIST_LIMIT],
                "sizingChanges": diff["sizingChanges"][:COMPARISON_LIST_LIMIT],
            })
    return variants


def summarize_responsive(responsive: Any,
                         viewport_layouts: Optional[Dict[str, Dict[str, Any]]] = None) -> Optional[Dict[str, Any]]:
    """Responsive section of the blueprint; None when there is no evidence."""
    if not isinstance(responsive, dict) and not viewport_layouts:
        return None
    responsive = responsive if isinstance(responsive, dict) else {}

    breakpoints = responsive.get("breakpoints")
    workflow = responsive.get("viewportWorkflow")
    if isinstance(workflow, dict) and isinstance(workflow.get("steps"), list):
        workflow = {
            **workflow,
            "serialized": workflow.get("serialized") or serialize_viewport_workflow(workflow),
        }

    nested = breakpoints if isinstance(breakpoints, dict) else {}
    return {
        "breakpoints": nested.get("breakpoints") or breakpoints or None,
        "named": nested.get("named") or None,
        "viewportWorkflow": workflow or None,
        "responsiveDoc": responsive.get("responsiveDoc") or None,
        "variants": summarize_variants(viewport_layouts or {}),
    }


def build_responsive_hints(responsive: Optional[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
    """Compact per-pair layout / visibility hints for the prompt."""
    comparisons = ((responsive or {}).get("variants") or {}).get("comparisons")
    if not comparisons:
        return None

    hints = []
    for comparison in comparisons:
        layout_changes = [
            {
                "selector": change.get("selector"),
                "property": change.get("type"),
                "from": change.get("from") if not isinstance(change.get("from"), dict) else None,
                "to": change.get("to"),
            }
            for change in comparison.get("layoutChanges", [])[:HINT_LAYOUT_LIMIT]
        ]
        visibility_changes = [
            {"selector": change.get("selector"), "change": f"{change.get('from')}->{change.get('to')}"}
            for change in comparison.get("visibilityChanges", [])[:HINT_VISIBILITY_LIMIT]
        ]
        if layout_changes or visibility_changes:
            hints.append({
                "from": comparison.get("from"),
                "to": comparison.get("to"),
                "layoutChanges": layout_changes,
                "visibilityChanges": visibility_changes,
            })
    return hints or None
