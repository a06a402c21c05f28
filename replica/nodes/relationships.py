"""Relationship Inference — ordering, alignment, flex/grid and overlays.

For every node with at least one positioned child, derives:
- order: flow axis (x / y / grid) and child uids sorted along it
- alignments: 1-D tolerance clusters of child centres on each axis
- flex / grid: the container's own layout descriptor plus child uids
- overlays: absolutely / fixed positioned children
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

ALIGN_TOLERANCE = 6

# Axis position thresholds as a fraction of the parent size
AXIS_LOW = 0.33
AXIS_HIGH = 0.66

_REPEAT_RE = re.compile(r"repeat\((\d+),")


def _center(rect: Dict[str, Any], axis: str) -> float:
    if axis == "x":
        return rect["x"] + rect["width"] / 2
    return rect["y"] + rect["height"] / 2


def cluster_positions(items: List[Dict[str, Any]], tolerance: float = ALIGN_TOLERANCE) -> List[Dict[str, Any]]:
    """Cluster ``{id, value}`` items along one axis.

    Values are sorted; a value within ``tolerance`` of the running group
    mean joins that group (and updates the mean), otherwise it starts a new
    group.
    """
    groups: List[Dict[str, Any]] = []
    for item in sorted(items or [], key=lambda i: i["value"]):
        last = groups[-1] if groups else None
        if last is not None and abs(item["value"] - last["mean"]) <= tolerance:
            last["items"].append(item)
            last["mean"] = sum(i["value"] for i in last["items"]) / len(last["items"])
        else:
            groups.append({"mean": item["value"], "items": [item]})
    return groups


def label_axis_group(mean: float, parent_start: float, parent_size: float, axis: str) -> str:
    """left/center/right (x) or top/middle/bottom (y) by position ratio."""
    if not parent_size or parent_size <= 0:
        return "center" if axis == "x" else "middle"
    ratio = (mean - parent_start) / parent_size
    low, mid, high = ("left", "center", "right") if axis == "x" else ("top", "middle", "bottom")
    if ratio < AXIS_LOW:
        return low
    if ratio > AXIS_HIGH:
        return high
    return mid


def infer_flow_direction(node: Dict[str, Any], children: List[Dict[str, Any]]) -> str:
    """Flow axis for a container: declared flex/grid, else sibling centre deltas."""
    layout = node.get("layout") or {}
    direction = (layout.get("flex") or {}).get("direction")
    if direction:
        return "y" if "column" in direction else "x"
    if layout.get("grid"):
        return "grid"
    if len(children) < 2:
        return "y"

    total_dx = 0.0
    total_dy = 0.0
    for prev, cur in zip(children, children[1:]):
        total_dx += abs(_center(cur["rect"], "x") - _center(prev["rect"], "x"))
        total_dy += abs(_center(cur["rect"], "y") - _center(prev["rect"], "y"))
    return "x" if total_dx > total_dy else "y"


def parse_grid_count(template: Optional[str]) -> Optional[int]:
    """Track count of a grid template (``repeat(n, ...)`` or a track list)."""
    if not template or template == "none":
        return None
    match = _REPEAT_RE.search(template)
    if match:
        return int(match.group(1))
    parts = template.split()
    return len(parts) or None


def _order_key(flow: str):
    if flow == "x":
        return lambda c: (c["rect"]["x"], c["rect"]["y"])
    if flow == "grid":
        # Row-major
        return lambda c: (c["rect"]["y"], c["rect"]["x"])
    return lambda c: (c["rect"]["y"], c["rect"]["x"])


def _axis_groups(children: List[Dict[str, Any]], parent_rect: Dict[str, Any], axis: str) -> List[Dict[str, Any]]:
    items = [{"id": c["uid"], "value": _center(c["rect"], axis)} for c in children]
    start = parent_rect.get("x" if axis == "x" else "y", 0)
    size = parent_rect.get("width" if axis == "x" else "height", 0)
    return [
        {
            "position": label_axis_group(group["mean"], start, size, axis),
            "mean": int(round(group["mean"])),
            "nodeIds": [i["id"] for i in group["items"]],
        }
        for group in cluster_positions(items)
    ]


def build_relationships(tree: Optional[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Relationship graph keyed by parent / container uid."""
    relationships: Dict[str, List[Dict[str, Any]]] = {
        "order": [],
        "alignments": [],
        "flex": [],
        "grid": [],
        "overlays": [],
    }
    stack = [tree] if tree else []
    while stack:
        node = stack.pop()
        children = [c for c in node.get("children") or [] if c.get("rect")]
        if not children:
            continue

        flow = infer_flow_direction(node, children)
        relationships["order"].append({
            "parentId": node["uid"],
            "flow": flow,
            "method": "visual",
            "ordered": [c["uid"] for c in sorted(children, key=_order_key(flow))],
        })

        parent_rect = node.get("rect") or {}
        relationships["alignments"].append({
            "parentId": node["uid"],
            "x": _axis_groups(children, parent_rect, "x"),
            "y": _axis_groups(children, parent_rect, "y"),
        })

        child_ids = [c["uid"] for c in children]
        layout = node.get("layout") or {}
        flex = layout.get("flex")
        if flex:
            relationships["flex"].append({
                "containerId": node["uid"],
                "direction": flex.get("direction"),
                "wrap": flex.get("wrap"),
                "justify": flex.get("justify"),
                "align": flex.get("align"),
                "gap": flex.get("gap") or None,
                "childIds": child_ids,
            })
        grid = layout.get("grid")
        if grid:
            relationships["grid"].append({
                "containerId": node["uid"],
                "columns": parse_grid_count(grid.get("columns")),
                "rows": parse_grid_count(grid.get("rows")),
                "gap": grid.get("gap") or None,
                "childIds": child_ids,
            })

        overlays = [
            c["uid"] for c in children
            if (c.get("layout") or {}).get("position") in ("absolute", "fixed")
        ]
        if overlays:
            relationships["overlays"].append({"parentId": node["uid"], "overlayIds": overlays})

        stack.extend(reversed(children))

    return relationships
