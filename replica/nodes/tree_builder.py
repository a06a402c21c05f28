"""Node Tree Builder — structure evidence to IR node tree.

Walks the element snapshot pre-order, depth-first, under depth and node
budgets. Each accepted element becomes one IR node enriched (in order) with
identity, allow-listed attributes, evidence-index lookups, an icon hint,
extracted styles, semantic role/name, and finally its surviving children.

All per-build state lives on a ``BuildContext``; nothing is module-global,
so builds are independent and reentrant.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..blueprint.token_refs import build_var_refs
from ..evidence.indices import lookup
from ..evidence.resolver import Resolver, element_id, element_tag
from ..evidence.schemas import BuildOptions
from .style_extract import (
    clamp_text,
    clean_object,
    extract_constraints,
    extract_layout,
    extract_pseudo_elements,
    extract_typography,
    extract_visual,
    to_number,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Semantic maps
# ---------------------------------------------------------------------------

COMPONENT_ROLE_MAP = {
    "header": "header",
    "navigation": "navigation",
    "navItem": "nav-item",
    "hero": "hero",
    "main": "main",
    "sidebar": "sidebar",
    "footer": "footer",
    "card": "card",
    "button": "button",
    "input": "form-field",
    "submitButton": "form-submit",
    "modal": "dialog",
    "badge": "badge",
    "list": "list",
    "heading": "heading",
    "icon": "icon",
    "checkbox": "checkbox",
    "radio": "radio",
    "tab": "tab",
    "menu": "menu",
}

TAG_ROLE_MAP = {
    "a": "link",
    "header": "header",
    "nav": "navigation",
    "main": "main",
    "aside": "sidebar",
    "footer": "footer",
    "section": "section",
    "article": "article",
    "form": "form",
    "button": "button",
    "input": "form-field",
    "textarea": "form-field",
    "select": "form-field",
    "ul": "list",
    "ol": "list",
    "li": "list-item",
    **{f"h{i}": "heading" for i in range(1, 7)},
}

# Icon hint bounds (px)
ICON_MIN_SIZE = 8
ICON_MAX_SIZE = 120
ICON_MARKUP_MAX_CHARS = 2400
ICON_MAX_SHAPES = 14
ICON_MAX_AREA = 6400

_HEADING_RE = re.compile(r"^h([1-6])$")
_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_HANDLER_RE = re.compile(r"""\son\w+\s*=\s*("[^"]*"|'[^']*')""", re.IGNORECASE)


@dataclass
class BuildContext:
    """Per-build counters, budgets and read-only lookup tables."""
    options: BuildOptions
    indices: Dict[str, Any] = field(default_factory=dict)
    resolver: Optional[Resolver] = None
    css_var_map: Optional[Dict[str, Any]] = None
    count: int = 0
    truncated: bool = False
    max_depth_seen: int = 0

    def next_uid(self) -> str:
        self.count += 1
        return f"n{self.count}"

    @property
    def budget_left(self) -> bool:
        return self.count < self.options.max_nodes


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def get_rect(element: Dict[str, Any]) -> Dict[str, int]:
    raw = element.get("rect") or {}
    return {k: int(round(to_number(raw.get(k)) or 0)) for k in ("x", "y", "width", "height")}


def _attr(element: Dict[str, Any], name: str) -> Optional[str]:
    attrs = element.get("attributes")
    if isinstance(attrs, dict):
        value = attrs.get(name)
        if value is not None and value != "":
            return str(value)
    return None


def is_visible(element: Dict[str, Any], rect: Dict[str, int]) -> bool:
    style = element.get("style") or {}
    opacity = to_number(style.get("opacity"))
    return (
        rect["width"] > 0
        and rect["height"] > 0
        and style.get("visibility") != "hidden"
        and style.get("display") != "none"
        and (opacity is None or opacity > 0)
    )


def _child_elements(element: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [c for c in element.get("children") or [] if isinstance(c, dict)]


def sanitize_svg_markup(markup: Optional[str]) -> Optional[str]:
    if not markup:
        return None
    cleaned = _HANDLER_RE.sub("", _SCRIPT_RE.sub("", str(markup))).strip()
    return cleaned or None


def derive_semantic_role(tag: str, role_attr: Optional[str],
                         component_type: Optional[str]) -> Tuple[str, str]:
    """(role, source): component type, then role attribute, then tag."""
    if component_type and component_type in COMPONENT_ROLE_MAP:
        return COMPONENT_ROLE_MAP[component_type], "component"
    if role_attr:
        return role_attr, "attribute"
    if tag in TAG_ROLE_MAP:
        return TAG_ROLE_MAP[tag], "tag"
    return tag or "node", "tag"


def derive_semantic_name(node: Dict[str, Any], a11y_info: Optional[Dict[str, Any]]) -> Optional[str]:
    if a11y_info and a11y_info.get("name"):
        return a11y_info["name"]
    return node.get("ariaLabel") or node.get("text") or None


# ---------------------------------------------------------------------------
# Enrichment steps
# ---------------------------------------------------------------------------


def _apply_attributes(node: Dict[str, Any], element: Dict[str, Any], tag: str) -> None:
    """Narrow allow-list of element metadata that affects replica fidelity."""
    if tag == "a":
        names = (("href", "href"), ("target", "target"), ("rel", "rel"))
    elif tag == "img":
        src = element.get("currentSrc") or _attr(element, "src")
        if src:
            node["src"] = src
        names = (("alt", "alt"), ("loading", "loading"), ("srcset", "srcset"))
    elif tag in ("input", "textarea"):
        names = (("name", "name"), ("placeholder", "placeholder"), ("autocomplete", "autoComplete"))
        if tag == "input" and _attr(element, "type"):
            node["inputType"] = _attr(element, "type")
    elif tag == "button":
        names = (("type", "buttonType"),)
    else:
        names = ()
    for attr_name, key in names:
        value = _attr(element, attr_name)
        if value:
            node[key] = value


def _apply_evidence(node: Dict[str, Any], ctx: BuildContext, key: Any,
                    selector: Optional[str]) -> Optional[Dict[str, Any]]:
    """Attach component and state evidence; returns the component record."""
    component = lookup(ctx.indices.get("components"), key, selector)
    if component:
        node["component"] = {
            "id": component["id"],
            "type": component["type"],
            "variant": component.get("variant"),
            "text": component.get("text"),
            "detectionMethod": component.get("detectionMethod"),
        }

    states = ctx.indices.get("states")
    summary = lookup(states, key, selector)
    if summary:
        node["state"] = {
            "hasInteractiveStates": bool(summary.get("hasInteractiveStates")),
            "stateDescriptions": summary.get("stateDescriptions"),
            "keyChanges": list(summary.get("keyChanges") or [])[:6],
        }

    evidence = lookup(states, key, selector, "evidenceSelectorIndex", "evidenceElementIndex")
    if evidence:
        state = node.setdefault("state", {})
        state["capturedStates"] = evidence.get("stateNames")
        if evidence.get("pseudo"):
            state["pseudo"] = evidence["pseudo"]
        if evidence.get("descendantEvidenceCount"):
            state["descendantEvidenceCount"] = evidence["descendantEvidenceCount"]
    return component


def _apply_icon_hint(node: Dict[str, Any], element: Dict[str, Any], tag: str,
                     rect: Dict[str, int], a11y_info: Optional[Dict[str, Any]]) -> None:
    """Lightweight svg hint for icon-only UI."""
    if node.get("text"):
        return
    icon_sized = (
        ICON_MIN_SIZE <= rect["width"] <= ICON_MAX_SIZE
        and ICON_MIN_SIZE <= rect["height"] <= ICON_MAX_SIZE
    )
    labelled = bool(node.get("ariaLabel") or (a11y_info or {}).get("name"))
    interactive_icon = tag in ("button", "a") and labelled
    if not icon_sized and not interactive_icon:
        return

    svg = element.get("svg")
    if not isinstance(svg, dict):
        return

    markup = None
    svg_rect = svg.get("rect") or {}
    area = (to_number(svg_rect.get("width")) or 0) * (to_number(svg_rect.get("height")) or 0)
    outer = sanitize_svg_markup(svg.get("markup"))
    if (
        outer
        and len(outer) <= ICON_MARKUP_MAX_CHARS
        and int(svg.get("pathCount") or 0) <= ICON_MAX_SHAPES
        and 0 < area <= ICON_MAX_AREA
    ):
        markup = " ".join(outer.split())

    node["icon"] = clean_object({
        "type": "svg",
        "viewBox": svg.get("viewBox") or None,
        "markup": markup,
    })


def _apply_styles(node: Dict[str, Any], element: Dict[str, Any], rect: Dict[str, int],
                  parent_rect: Optional[Dict[str, int]]) -> None:
    style = element.get("style") or {}
    node["layout"] = extract_layout(style)
    node["constraints"] = extract_constraints(rect, style, parent_rect)
    typography = extract_typography(style)
    if typography:
        node["typography"] = typography
    visual = extract_visual(style)
    if visual:
        node["visual"] = visual
    pseudos = extract_pseudo_elements(element.get("pseudo"))
    if pseudos:
        node["pseudoElements"] = pseudos


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def build_node(element: Dict[str, Any], depth: int, parent_rect: Optional[Dict[str, int]],
               ctx: BuildContext) -> Optional[Dict[str, Any]]:
    """Build one IR node (and its subtree) or None when excluded."""
    if not isinstance(element, dict):
        return None
    options = ctx.options
    if depth > options.max_depth:
        return None
    if not ctx.budget_left:
        ctx.truncated = True
        return None

    tag = element_tag(element)
    if tag in options.skip_tags:
        return None

    rect = get_rect(element)
    children = _child_elements(element)
    has_children = bool(children)
    too_small = rect["width"] < options.min_width or rect["height"] < options.min_height
    if not has_children and (too_small or not is_visible(element, rect)):
        return None

    resolver = ctx.resolver
    selector = element.get("selector") or (resolver.selector_for(element) if resolver else None)
    key = resolver.key_for(element) if resolver else None
    a11y_info = lookup(ctx.indices.get("a11y"), key, selector)

    node: Dict[str, Any] = {"uid": ctx.next_uid(), "tag": tag, "selector": selector}
    ctx.max_depth_seen = max(ctx.max_depth_seen, depth)

    dom_id = element_id(element)
    if dom_id:
        node["domId"] = dom_id
    role_attr = _attr(element, "role")
    if role_attr:
        node["role"] = role_attr
    aria_label = _attr(element, "aria-label")
    if aria_label:
        node["ariaLabel"] = aria_label

    _apply_attributes(node, element, tag)
    if a11y_info:
        if a11y_info.get("role"):
            node["accessibleRole"] = a11y_info["role"]
        if a11y_info.get("name"):
            node["accessibleName"] = a11y_info["name"]
        if a11y_info.get("states"):
            node["accessibleStates"] = a11y_info["states"]

    if options.include_text:
        text = clamp_text(element.get("text"))
        if text and (not has_children or tag in ("button", "a")):
            node["text"] = text

    component = _apply_evidence(node, ctx, key, selector)
    _apply_icon_hint(node, element, tag, rect, a11y_info)

    heading = _HEADING_RE.match(tag)
    if heading:
        node["headingLevel"] = int(heading.group(1))

    node["rect"] = rect
    if options.include_styles:
        _apply_styles(node, element, rect, parent_rect)
        var_refs = build_var_refs(node, ctx.css_var_map)
        if var_refs:
            node["varRefs"] = var_refs

    role, source = derive_semantic_role(tag, role_attr, (component or {}).get("type"))
    node["semanticRole"] = role
    node["semanticSource"] = source
    semantic_name = derive_semantic_name(node, a11y_info)
    if semantic_name:
        node["semanticName"] = semantic_name

    if has_children and depth < options.max_depth:
        built: List[Dict[str, Any]] = []
        for i, child in enumerate(children):
            child_node = build_node(child, depth + 1, rect, ctx)
            if child_node:
                built.append(child_node)
            if not ctx.budget_left:
                if i < len(children) - 1:
                    ctx.truncated = True
                break
        if built:
            node["children"] = built

    return node


def build_tree(root: Optional[Dict[str, Any]], indices: Optional[Dict[str, Any]] = None,
               options: Optional[BuildOptions] = None, resolver: Optional[Resolver] = None,
               css_var_map: Optional[Dict[str, Any]] = None) -> Tuple[Optional[Dict[str, Any]], BuildContext]:
    """Build the IR node tree for one structure snapshot.

    Returns:
        (root node or None, the build context with count / truncated flags)
    """
    ctx = BuildContext(
        options=options or BuildOptions(),
        indices=indices or {},
        resolver=resolver,
        css_var_map=css_var_map,
    )
    tree = build_node(root, 0, None, ctx) if root else None
    if ctx.truncated:
        logger.info("Node budget reached: %d nodes (max %d), tree truncated",
                    ctx.count, ctx.options.max_nodes)
    return tree, ctx


def walk_tree(tree: Optional[Dict[str, Any]]):
    """Yield (node, depth) pairs pre-order."""
    if not tree:
        return
    stack = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        for child in reversed(node.get("children") or []):
            stack.append((child, depth + 1))
