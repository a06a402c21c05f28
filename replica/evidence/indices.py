"""Evidence indices: selector-keyed and identity-keyed lookup tables.

Each builder takes an already-coerced evidence bundle (see ``schemas``) and
returns plain dicts. ``selectorIndex`` maps the selector recorded by the
evidence to its record; ``elementIndex`` maps ``resolver.key_for(element)``
to the same record for every selector the resolver can resolve. Selectors
that resolve to nothing are simply absent from the identity index.

Indices are built once per build and treated as read-only afterwards.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Optional

from .resolver import Resolver

logger = logging.getLogger(__name__)


# Pseudo-element properties surfaced from the captured state matrix
PSEUDO_PROPS = [
    "content",
    "color",
    "backgroundColor",
    "backgroundImage",
    "backgroundSize",
    "backgroundPosition",
    "backgroundRepeat",
    "borderColor",
    "borderWidth",
    "outlineColor",
    "boxShadow",
    "opacity",
    "transform",
    "textDecorationLine",
    "fill",
    "stroke",
]

_EMPTY_PSEUDO_VALUES = {"", "none", "normal", "0px"}


def _identity_key(resolver: Optional[Resolver], selector: str) -> Optional[Hashable]:
    if resolver is None or not selector:
        return None
    element = resolver.find_by_selector(selector)
    if element is None:
        return None
    return resolver.key_for(element)


def lookup(index: Optional[Dict[str, Any]], key: Optional[Hashable], selector: Optional[str],
           selector_map: str = "selectorIndex", element_map: str = "elementIndex") -> Optional[Any]:
    """Identity lookup first, selector lookup as fallback."""
    if not index:
        return None
    if key is not None:
        hit = (index.get(element_map) or {}).get(key)
        if hit is not None:
            return hit
    if selector:
        return (index.get(selector_map) or {}).get(selector)
    return None


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


def build_component_index(components: Dict[str, List[Dict[str, Any]]],
                          resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Assign component ids (``cmp-1``...) and index component records.

    Args:
        components: Coerced component report, {type: [item, ...]}
        resolver: Optional resolver for the identity index

    Returns:
        {list, byType, selectorIndex, elementIndex}
    """
    entries: List[Dict[str, Any]] = []
    by_type: Dict[str, List[str]] = {}
    selector_index: Dict[str, Dict[str, Any]] = {}
    element_index: Dict[Hashable, Dict[str, Any]] = {}

    counter = 1
    for comp_type, items in (components or {}).items():
        for item in items or []:
            selector = item.get("selector") if isinstance(item, dict) else None
            if not selector:
                continue
            entry = {
                "id": f"cmp-{counter}",
                "type": comp_type,
                "selector": selector,
                "rect": item.get("rect") or None,
                "text": item.get("text") or None,
                "variant": item.get("variant") or None,
                "detectionMethod": item.get("detectionMethod") or None,
            }
            counter += 1
            entries.append(entry)
            by_type.setdefault(comp_type, []).append(entry["id"])
            selector_index[selector] = entry

            key = _identity_key(resolver, selector)
            if key is not None:
                element_index[key] = entry

    logger.debug("Component index: %d components, %d resolved", len(entries), len(element_index))
    return {
        "list": entries,
        "byType": by_type,
        "selectorIndex": selector_index,
        "elementIndex": element_index,
    }


# ---------------------------------------------------------------------------
# Interactive states
# ---------------------------------------------------------------------------


def pick_pseudo(styles: Optional[Dict[str, Any]], pseudo: str) -> Optional[Dict[str, Any]]:
    """Pseudo-element evidence from a flat captured style map.

    Keys look like ``::before.content``. Returns None unless ``content`` is
    present with a meaningful value.
    """
    if not isinstance(styles, dict):
        return None
    prefix = f"{pseudo}."
    out: Dict[str, Any] = {}
    for prop in PSEUDO_PROPS:
        value = styles.get(f"{prefix}{prop}")
        if value is None or value in _EMPTY_PSEUDO_VALUES:
            continue
        out[prop] = value
    if "content" not in out:
        return None
    return out


def summarize_captured_states(entry: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Summarize one selector's captured state matrix entry."""
    states = entry.get("states") if isinstance(entry, dict) else None
    if not isinstance(states, dict) or not states:
        return None

    # Prefer default evidence, fall back to hover
    base = states.get("default") or states.get("hover") or None
    before = pick_pseudo(base, "::before")
    after = pick_pseudo(base, "::after")

    descendant_count = 0
    if isinstance(base, dict):
        descendant_count = sum(1 for key in base if str(key).startswith("desc:"))

    return {
        "stateNames": list(states.keys()),
        "pseudo": {"before": before, "after": after} if (before or after) else None,
        "descendantEvidenceCount": descendant_count,
    }


def build_state_index(state_capture: Dict[str, Any],
                      resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Index state summaries and captured-state evidence.

    Returns:
        {selectorIndex, elementIndex, evidenceSelectorIndex, evidenceElementIndex}
    """
    selector_index: Dict[str, Dict[str, Any]] = {}
    element_index: Dict[Hashable, Dict[str, Any]] = {}
    evidence_selector_index: Dict[str, Dict[str, Any]] = {}
    evidence_element_index: Dict[Hashable, Dict[str, Any]] = {}

    state_capture = state_capture or {}
    for selector, summary in (state_capture.get("summaries") or {}).items():
        if not summary:
            continue
        selector_index[selector] = summary
        key = _identity_key(resolver, selector)
        if key is not None:
            element_index[key] = summary

    matrix = (state_capture.get("captured") or {}).get("states") or {}
    for selector, entry in matrix.items():
        evidence = summarize_captured_states(entry)
        if not evidence:
            continue
        evidence_selector_index[selector] = evidence
        key = _identity_key(resolver, selector)
        if key is not None:
            evidence_element_index[key] = evidence

    return {
        "selectorIndex": selector_index,
        "elementIndex": element_index,
        "evidenceSelectorIndex": evidence_selector_index,
        "evidenceElementIndex": evidence_element_index,
    }


# ---------------------------------------------------------------------------
# Accessibility
# ---------------------------------------------------------------------------


def build_a11y_index(a11y_tree: Any, resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Index accessibility nodes that carry a selector."""
    selector_index: Dict[str, Dict[str, Any]] = {}
    element_index: Dict[Hashable, Dict[str, Any]] = {}

    stack: List[Any] = [a11y_tree]
    while stack:
        node = stack.pop()
        if not node:
            continue
        if isinstance(node, list):
            stack.extend(reversed(node))
            continue
        if not isinstance(node, dict):
            continue
        selector = node.get("selector")
        if selector:
            selector_index[selector] = node
            key = _identity_key(resolver, selector)
            if key is not None:
                element_index[key] = node
        stack.extend(reversed(node.get("children") or []))

    return {"selectorIndex": selector_index, "elementIndex": element_index}


def build_indices(components: Dict[str, List[Dict[str, Any]]], state_capture: Dict[str, Any],
                  a11y_tree: Any, resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Build all three evidence indices for one build."""
    return {
        "components": build_component_index(components, resolver),
        "states": build_state_index(state_capture, resolver),
        "a11y": build_a11y_index(a11y_tree, resolver),
    }
