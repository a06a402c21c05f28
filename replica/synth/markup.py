"""Replica markup — static HTML page and the replica file bundle."""

from __future__ import annotations

import html
import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .. import config
from ..logging_config import get_synth_logger
from .css import SynthOptions, coerce_synth_options, to_replica_css

MISSING_TREE_HTML = "<!-- No blueprint tree available -->"
MISSING_TREE_ERROR = "No blueprint tree available"

SELF_CLOSING_TAGS = {"img", "br", "hr", "input", "meta", "link"}
_TAG_RE = re.compile(r"^[a-z][a-z0-9-]*$")

# Element metadata emitted per tag: (node key, attribute name)
TAG_ATTRS = {
    "a": (("href", "href"), ("target", "target"), ("rel", "rel")),
    "img": (("src", "src"), ("alt", "alt"), ("loading", "loading")),
    "input": (("inputType", "type"), ("name", "name"), ("placeholder", "placeholder"),
              ("autoComplete", "autocomplete")),
    "textarea": (("name", "name"), ("placeholder", "placeholder"), ("autoComplete", "autocomplete")),
    "button": (("buttonType", "type"),),
}

# HTML attribute -> JSX prop where they differ
JSX_ATTR_NAMES = {"autocomplete": "autoComplete"}

Attr = Tuple[str, str]


def pick_tag(tag: Any) -> str:
    """Lower-cased tag, or ``div`` for anything that is not a plain tag name."""
    t = str(tag or "div").lower()
    return t if _TAG_RE.match(t) else "div"


def escape_html(value: Any) -> str:
    return html.escape(str(value or ""), quote=True)


def escape_jsx_text(value: Any) -> str:
    return escape_html(value).replace("{", "&#123;").replace("}", "&#125;")


def build_replica_attrs(node: Dict[str, Any], data_attr: str) -> List[Attr]:
    """Ordered attributes for one node: replica id first, then element metadata."""
    attrs: List[Attr] = []
    if node.get("uid"):
        attrs.append((data_attr, node["uid"]))
    for key, name in (("domId", "id"), ("role", "role"), ("ariaLabel", "aria-label")):
        if node.get(key):
            attrs.append((name, node[key]))
    for key, name in TAG_ATTRS.get(pick_tag(node.get("tag")), ()):
        if node.get(key):
            attrs.append((name, node[key]))
    return attrs


def attrs_to_html(attrs: List[Attr]) -> str:
    out = [f'{name}="{escape_html(value)}"' for name, value in attrs if name and value is not None]
    return " " + " ".join(out) if out else ""


def attrs_to_jsx(attrs: List[Attr]) -> str:
    out = [
        f'{JSX_ATTR_NAMES.get(name, name)}="{escape_jsx_text(value)}"'
        for name, value in attrs if name and value is not None
    ]
    return " " + " ".join(out) if out else ""


# ---------------------------------------------------------------------------
# Node rendering
# ---------------------------------------------------------------------------


def _html_icon(icon: Dict[str, Any]) -> str:
    if icon.get("markup"):
        return str(icon["markup"])
    view_box = f' viewBox="{escape_html(icon["viewBox"])}"' if icon.get("viewBox") else ""
    return f'<svg aria-hidden="true"{view_box}></svg>'


def _jsx_icon(icon: Dict[str, Any]) -> str:
    if icon.get("markup"):
        return f"<span dangerouslySetInnerHTML={{{{ __html: {json.dumps(str(icon['markup']))} }}}} />"
    view_box = f' viewBox="{escape_jsx_text(icon["viewBox"])}"' if icon.get("viewBox") else ""
    return f'<svg aria-hidden="true"{view_box}></svg>'


def _render_node(node: Optional[Dict[str, Any]], depth: int, data_attr: str,
                 render_attrs: Callable[[List[Attr]], str], escape: Callable[[Any], str],
                 render_icon: Callable[[Dict[str, Any]], str]) -> str:
    if not node:
        return ""
    tag = pick_tag(node.get("tag"))
    attr_str = render_attrs(build_replica_attrs(node, data_attr))
    pad = "  " * depth

    if tag in SELF_CLOSING_TAGS:
        return f"{pad}<{tag}{attr_str} />"

    text = escape(node["text"]) if node.get("text") else ""
    icon = node.get("icon") or {}
    icon_markup = render_icon(icon) if not text and icon.get("type") == "svg" else ""

    children = node.get("children") or []
    if not children:
        return f"{pad}<{tag}{attr_str}>{text or icon_markup}</{tag}>"

    rendered = [
        out for out in (
            _render_node(child, depth + 1, data_attr, render_attrs, escape, render_icon)
            for child in children
        ) if out
    ]
    lines = [f"{pad}<{tag}{attr_str}>"]
    if text:
        lines.append(f"{pad}  {text}")
    if icon_markup:
        lines.append(f"{pad}  {icon_markup}")
    lines.extend(rendered)
    lines.append(f"{pad}</{tag}>")
    return "\n".join(lines)


def render_node_html(node: Optional[Dict[str, Any]], depth: int = 0, data_attr: str = config.DATA_ATTR) -> str:
    return _render_node(node, depth, data_attr, attrs_to_html, escape_html, _html_icon)


def render_node_jsx(node: Optional[Dict[str, Any]], depth: int = 0, data_attr: str = config.DATA_ATTR) -> str:
    return _render_node(node, depth, data_attr, attrs_to_jsx, escape_jsx_text, _jsx_icon)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def _title(blueprint: Dict[str, Any]) -> str:
    return (blueprint.get("meta") or {}).get("title") or "Replica"


def to_replica_html(blueprint: Any, **options: Any) -> str:
    """Static HTML page linking ``replica.css``.

    A ``body`` root lends its attributes to the real ``<body>`` and only
    its children are rendered.
    """
    tree = blueprint.get("tree") if isinstance(blueprint, dict) else None
    if not tree:
        return MISSING_TREE_HTML
    opts = coerce_synth_options(options)

    if pick_tag(tree.get("tag")) == "body":
        body_attrs = attrs_to_html(build_replica_attrs(tree, opts.data_attr))
        body_inner = "\n".join(
            out for out in (render_node_html(child, 1, opts.data_attr) for child in tree.get("children") or [])
            if out
        )
    else:
        body_attrs = ""
        body_inner = render_node_html(tree, 1, opts.data_attr)

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8" />\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0" />\n'
        f"  <title>{escape_html(_title(blueprint))}</title>\n"
        '  <link rel="stylesheet" href="replica.css" />\n'
        "</head>\n"
        f"<body{body_attrs}>\n"
        f"{body_inner}\n"
        "</body>\n"
        "</html>\n"
    )


def _page_component(blueprint: Dict[str, Any], opts: SynthOptions) -> str:
    tree = blueprint["tree"]
    if pick_tag(tree.get("tag")) == "body":
        root_attrs = attrs_to_jsx(build_replica_attrs(tree, opts.data_attr))
        inner = "\n".join(
            out for out in (render_node_jsx(child, 5, opts.data_attr) for child in tree.get("children") or [])
            if out
        )
        jsx = f"    <div{root_attrs}>\n{inner}\n    </div>"
    else:
        jsx = render_node_jsx(tree, 4, opts.data_attr)

    return (
        "import React from 'react';\n"
        "import './replica.css';\n"
        "\n"
        "export default function Page() {\n"
        "  return (\n"
        "    <React.Fragment>\n"
        f"      {{/* {escape_jsx_text(_title(blueprint))} */}}\n"
        f"{jsx}\n"
        "    </React.Fragment>\n"
        "  );\n"
        "}\n"
    )


def to_replica_bundle(blueprint: Any, state_capture: Any = None,
                      viewport_layouts: Any = None, **options: Any) -> Dict[str, Any]:
    """Replica file bundle: ``replica.css``, ``index.html`` and ``Page.tsx``.

    Args:
        blueprint: Blueprint dict from ``build_blueprint``
        state_capture: Optional state-capture evidence for state rules
        viewport_layouts: Optional per-viewport snapshots for ``@media`` overrides
        **options: ``SynthOptions`` fields; ``include_component=False`` drops Page.tsx

    Returns:
        ``{"format": "replica", "files": {...}}`` or ``{"error": ...}`` without a tree.
    """
    tree = blueprint.get("tree") if isinstance(blueprint, dict) else None
    if not tree:
        return {"error": MISSING_TREE_ERROR}
    opts = coerce_synth_options(options)

    files = {
        "replica.css": to_replica_css(blueprint, state_capture, viewport_layouts, **opts.model_dump()),
        "index.html": to_replica_html(blueprint, **opts.model_dump()),
    }
    if opts.include_component:
        files["Page.tsx"] = _page_component(blueprint, opts)

    get_synth_logger().info(
        "Replica bundle generated: %s (%d chars css)",
        ", ".join(files), len(files["replica.css"]),
    )
    return {"format": "replica", "files": files}
