"""Component / Section Binder.

Primary component binding happens while the tree is built (selector or
identity match). ``apply_component_bindings_fallback`` then binds the
components left over by geometry and text, and ``build_sections`` places
each component in the first page section containing its centroid.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Rect match tolerance (px); width/height allow twice this
RECT_TOLERANCE = 6
# Section containment slack (px) on every edge
SECTION_TOLERANCE = 2
MIN_MATCH_TEXT = 4


def _visit(tree: Optional[Dict[str, Any]]):
    stack = [tree] if tree else []
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.get("children") or []))


def collect_component_bindings(tree: Optional[Dict[str, Any]]) -> Dict[str, List[str]]:
    """component id -> bound node uids, in tree order."""
    bindings: Dict[str, List[str]] = {}
    for node in _visit(tree):
        component = node.get("component")
        if component and component.get("id"):
            bindings.setdefault(component["id"], []).append(node["uid"])
    return bindings


def build_component_context(tree: Optional[Dict[str, Any]]) -> Dict[str, Optional[Dict[str, Any]]]:
    """node uid -> nearest enclosing component (the node's own first)."""
    context: Dict[str, Optional[Dict[str, Any]]] = {}
    stack = [(tree, None)] if tree else []
    while stack:
        node, active = stack.pop()
        current = node.get("component") or active
        context[node["uid"]] = current
        for child in reversed(node.get("children") or []):
            stack.append((child, current))
    return context


def create_node_index(tree: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """{list: [node...] pre-order, bySelector: {selector: [node...]}}."""
    index: Dict[str, Any] = {"list": [], "bySelector": {}}
    for node in _visit(tree):
        index["list"].append(node)
        if node.get("selector"):
            index["bySelector"].setdefault(node["selector"], []).append(node)
    return index


def rect_distance(a: Optional[Dict[str, Any]], b: Optional[Dict[str, Any]]) -> float:
    if not a or not b:
        return float("inf")
    return sum(abs(a[k] - b[k]) for k in ("x", "y", "width", "height"))


def find_node_by_rect(candidates: List[Dict[str, Any]], rect: Optional[Dict[str, Any]],
                      tolerance: float = RECT_TOLERANCE) -> Optional[Dict[str, Any]]:
    """Closest candidate within tolerance; ties keep the earliest."""
    if not rect or not candidates:
        return None
    best = None
    best_score = float("inf")
    for node in candidates:
        node_rect = node.get("rect")
        if not node_rect:
            continue
        dx = abs(node_rect["x"] - rect.get("x", 0))
        dy = abs(node_rect["y"] - rect.get("y", 0))
        dw = abs(node_rect["width"] - rect.get("width", 0))
        dh = abs(node_rect["height"] - rect.get("height", 0))
        if dx > tolerance or dy > tolerance or dw > tolerance * 2 or dh > tolerance * 2:
            continue
        score = dx + dy + dw + dh
        if score < best_score:
            best, best_score = node, score
    return best


def find_node_by_text(candidates: List[Dict[str, Any]], text: Optional[str]) -> Optional[Dict[str, Any]]:
    """First candidate whose text equals or contains (either way) ``text``."""
    normalized = (text or "").strip().lower()
    if len(normalized) < MIN_MATCH_TEXT or not candidates:
        return None
    for node in candidates:
        node_text = (node.get("text") or "").strip().lower()
        if node_text and (node_text in normalized or normalized in node_text):
            return node
    return None


def _pick(candidates: List[Dict[str, Any]], component: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return (
        find_node_by_rect(candidates, component.get("rect"))
        or find_node_by_text(candidates, component.get("text"))
        or candidates[0]
    )


def apply_component_bindings_fallback(components: List[Dict[str, Any]],
                                      bindings: Dict[str, List[str]],
                                      node_index: Dict[str, Any]) -> Dict[str, List[str]]:
    """Bind components the tree pass missed.

    Candidate order: same-selector nodes (unbound first), then the whole
    node list by rect, then by text (free nodes before bound ones). A node
    that already carries a component keeps it.
    """
    if not components or not node_index:
        return bindings

    all_nodes = node_index["list"]
    for component in components:
        if not component or component["id"] in bindings:
            continue

        candidates = node_index["bySelector"].get(component.get("selector")) or []
        unbound = [n for n in candidates if not n.get("component")]
        node = None
        if unbound:
            node = _pick(unbound, component)
        elif candidates:
            node = _pick(candidates, component)

        free = None
        if node is None and component.get("rect"):
            free = [n for n in all_nodes if not n.get("component")]
            node = find_node_by_rect(free, component["rect"]) or find_node_by_rect(all_nodes, component["rect"])
        if node is None and component.get("text"):
            if free is None:
                free = [n for n in all_nodes if not n.get("component")]
            node = find_node_by_text(free, component["text"]) or find_node_by_text(all_nodes, component["text"])

        if node is None:
            logger.debug("Component %s (%s) left unbound", component["id"], component.get("selector"))
            continue

        bindings[component["id"]] = [node["uid"]]
        if not node.get("component"):
            node["component"] = {
                "id": component["id"],
                "type": component["type"],
                "variant": component.get("variant"),
                "text": component.get("text"),
                "detectionMethod": component.get("detectionMethod"),
            }
    return bindings


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def rect_contains(outer: Optional[Dict[str, Any]], inner: Optional[Dict[str, Any]],
                  tolerance: float = SECTION_TOLERANCE) -> bool:
    """True when the centroid of ``inner`` lies within ``outer`` (± tolerance)."""
    if not outer or not inner:
        return False
    cx = inner.get("x", 0) + inner.get("width", 0) / 2
    cy = inner.get("y", 0) + inner.get("height", 0) / 2
    return (
        outer.get("x", 0) - tolerance <= cx <= outer.get("x", 0) + outer.get("width", 0) + tolerance
        and outer.get("y", 0) - tolerance <= cy <= outer.get("y", 0) + outer.get("height", 0) + tolerance
    )


def build_sections(boundaries: Any, components: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sections from structure boundaries, with contained component ids."""
    if not isinstance(boundaries, list):
        return []
    sections = []
    for i, boundary in enumerate(b for b in boundaries if isinstance(b, dict)):
        name = boundary.get("name")
        rect = boundary.get("rect") or None
        sections.append({
            "id": f"section-{i + 1}",
            "name": name or "Section",
            "role": name.lower() if name else "section",
            "selector": boundary.get("selector") or None,
            "rect": rect,
            "components": [c["id"] for c in components if rect_contains(rect, c.get("rect"))],
        })
    return sections


def build_section_index(sections: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    """{sections, componentToSections: {component id: [section...]}}."""
    section_list = sections if isinstance(sections, list) else []
    component_to_sections: Dict[str, List[Dict[str, Any]]] = {}
    for section in section_list:
        for component_id in section.get("components") or []:
            if component_id:
                component_to_sections.setdefault(component_id, []).append(section)
    return {"sections": section_list, "componentToSections": component_to_sections}


def resolve_section_for_node(node: Optional[Dict[str, Any]], component: Optional[Dict[str, Any]],
                             section_index: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Section of the node's component, else the first section containing the node."""
    if not section_index:
        return None
    if component and component.get("id"):
        matches = section_index["componentToSections"].get(component["id"])
        if matches:
            return matches[0]
    if not node or not node.get("rect"):
        return None
    for section in section_index["sections"]:
        if rect_contains(section.get("rect"), node["rect"]):
            return section
    return None
