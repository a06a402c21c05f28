"""Selector resolution against a structure-evidence element snapshot.

The tree builder and evidence indices never touch a live page. They go
through a ``Resolver``: a capability that maps selectors to element handles
and back. ``SnapshotResolver`` implements it over the reduced DOM tree the
capture scripts emit (tag / id / classes / attributes / rect / style / text /
children), so builds are reproducible and testable without a browser.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Hashable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

# Max ancestor levels walked when generating a CSS path
_MAX_PATH_DEPTH = 5

_IDENT = r"-?[_a-zA-Z][\w-]*"
_COMPOUND_RE = re.compile(
    rf"^(?P<tag>{_IDENT}|\*)?(?P<rest>((#{_IDENT})|(\.{_IDENT}))*)$"
)
_PART_RE = re.compile(rf"([#.])({_IDENT})")


class SelectorError(ValueError):
    """Raised for selectors that cannot be parsed."""


class Resolver(Protocol):
    """Capability for resolving selectors against the captured page."""

    def find_by_selector(self, selector: str) -> Optional[Dict[str, Any]]:
        ...

    def selector_for(self, element: Dict[str, Any]) -> Optional[str]:
        ...

    def key_for(self, element: Dict[str, Any]) -> Hashable:
        ...


def element_classes(element: Dict[str, Any]) -> List[str]:
    """Class list of a snapshot element (``classes`` list or ``className`` string)."""
    classes = element.get("classes")
    if isinstance(classes, list):
        return [str(c) for c in classes if c]
    class_name = element.get("className")
    if isinstance(class_name, str):
        return class_name.split()
    return []


def element_tag(element: Dict[str, Any]) -> str:
    return str(element.get("tag") or element.get("tagName") or "div").lower()


def element_id(element: Dict[str, Any]) -> Optional[str]:
    el_id = element.get("id")
    if el_id:
        return str(el_id)
    attrs = element.get("attributes")
    if isinstance(attrs, dict) and attrs.get("id"):
        return str(attrs["id"])
    return None


def css_escape(value: str) -> str:
    """Minimal CSS.escape equivalent for identifiers."""
    out = []
    for i, ch in enumerate(value):
        if ch.isalnum() or ch in "-_" or ord(ch) > 127:
            if i == 0 and ch.isdigit():
                out.append(f"\\{ord(ch):x} ")
            else:
                out.append(ch)
        else:
            out.append(f"\\{ch}")
    return "".join(out)


def parse_compound_selector(selector: str) -> Tuple[Optional[str], Optional[str], List[str]]:
    """Parse a simple compound selector (``tag#id.class``).

    Returns (tag, id, classes). Raises SelectorError on malformed input;
    returns (None, None, []) for valid-looking selectors outside the
    supported subset (combinators, attribute selectors, pseudo-classes).
    """
    s = (selector or "").strip()
    if not s:
        raise SelectorError("empty selector")
    if s.count("[") != s.count("]") or s.count("(") != s.count(")"):
        raise SelectorError(f"unbalanced brackets in {selector!r}")
    if s[0] in ">+~," or s[-1] in ">+~,":
        raise SelectorError(f"dangling combinator in {selector!r}")

    match = _COMPOUND_RE.match(s)
    if not match:
        return None, None, []
    tag = match.group("tag")
    el_id = None
    classes: List[str] = []
    for kind, name in _PART_RE.findall(match.group("rest") or ""):
        if kind == "#":
            el_id = name
        else:
            classes.append(name)
    return (tag.lower() if tag and tag != "*" else None), el_id, classes


class SnapshotResolver:
    """Resolver over a structure-evidence element tree.

    Generated selectors follow the capture scripts' CSS path rule so that
    selectors recorded by other evidence sources resolve to the same element.
    """

    def __init__(self, root: Optional[Dict[str, Any]]):
        self.root = root
        self._elements: List[Dict[str, Any]] = []
        self._parents: Dict[int, Optional[Dict[str, Any]]] = {}
        self._selectors: Dict[int, str] = {}
        self._by_selector: Dict[str, Dict[str, Any]] = {}
        self._cache: Dict[str, Optional[Dict[str, Any]]] = {}
        if isinstance(root, dict):
            self._index(root, None)

    def _index(self, element: Dict[str, Any], parent: Optional[Dict[str, Any]]) -> None:
        self._elements.append(element)
        self._parents[id(element)] = parent
        for child in element.get("children") or []:
            if isinstance(child, dict):
                self._index(child, element)

    # -- Resolver protocol --------------------------------------------------

    def key_for(self, element: Dict[str, Any]) -> Hashable:
        return id(element)

    def selector_for(self, element: Dict[str, Any]) -> Optional[str]:
        if not isinstance(element, dict):
            return None
        key = id(element)
        if key in self._selectors:
            return self._selectors[key]
        selector = element.get("selector") or self._css_path(element)
        if selector:
            self._selectors[key] = selector
            self._by_selector.setdefault(selector, element)
        return selector

    def find_by_selector(self, selector: str) -> Optional[Dict[str, Any]]:
        if not selector:
            return None
        if selector in self._cache:
            return self._cache[selector]
        try:
            found = self._query(selector)
        except SelectorError as e:
            logger.debug("Unresolvable selector %r: %s", selector, e)
            found = None
        self._cache[selector] = found
        return found

    # -- internals ------------------------------------------------------------

    def _query(self, selector: str) -> Optional[Dict[str, Any]]:
        if not self._by_selector or len(self._selectors) < len(self._elements):
            for element in self._elements:
                self.selector_for(element)
        exact = self._by_selector.get(selector)
        if exact is not None:
            return exact

        tag, el_id, classes = parse_compound_selector(selector)
        if not (tag or el_id or classes):
            return None
        for element in self._elements:
            if tag and element_tag(element) != tag:
                continue
            if el_id and element_id(element) != el_id:
                continue
            if classes:
                own = set(element_classes(element))
                if not all(c in own for c in classes):
                    continue
            return element
        return None

    def _css_path(self, element: Dict[str, Any]) -> Optional[str]:
        el_id = element_id(element)
        if el_id:
            return f"#{css_escape(el_id)}"

        parts: List[str] = []
        cur: Optional[Dict[str, Any]] = element
        depth = 0
        while cur is not None and depth < _MAX_PATH_DEPTH:
            tag = element_tag(cur)
            part = tag + "".join(f".{css_escape(c)}" for c in element_classes(cur)[:2])
            parent = self._parents.get(id(cur))
            if parent is not None:
                same = [
                    c for c in parent.get("children") or []
                    if isinstance(c, dict) and element_tag(c) == tag
                ]
                if len(same) > 1:
                    position = next(i for i, c in enumerate(same) if c is cur)
                    part += f":nth-of-type({position + 1})"
            parts.insert(0, part)
            if parent is not None and element_id(parent):
                parts.insert(0, f"#{css_escape(element_id(parent))}")
                break
            cur = parent
            depth += 1
        return " > ".join(parts) if parts else None
