"""Stacking contexts, layout pattern summary and asset manifest.

All three are derived from the already-built IR tree (or structure
evidence); nothing here touches the page.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ..nodes.tree_builder import walk_tree

STACKING_TOP_LIMIT = 32
OVERLAY_CANDIDATE_LIMIT = 12
LAYOUT_PATTERN_LIMIT = 8
MAX_ASSETS = 220

_URL_RE = re.compile(r"url\(([^)]+)\)")
_Z_RE = re.compile(r"^\s*(-?\d+)")


def rect_area(rect: Optional[Dict[str, Any]]) -> float:
    if not rect:
        return 0.0
    try:
        return max(0.0, float(rect.get("width", 0))) * max(0.0, float(rect.get("height", 0)))
    except (TypeError, ValueError):
        return 0.0


def parse_z_index(value: Any) -> Optional[int]:
    if value is None:
        return None
    match = _Z_RE.match(str(value))
    return int(match.group(1)) if match else None


def _stacking_reasons(node: Dict[str, Any]) -> List[str]:
    layout = node.get("layout") or {}
    visual = node.get("visual") or {}
    reasons = []
    if layout.get("isolation") == "isolate":
        reasons.append("isolation:isolate")
    if layout.get("position") not in (None, "static") and layout.get("zIndex"):
        reasons.append("position+z-index")
    if str(visual.get("opacity") or "1").strip() != "1":
        reasons.append("opacity")
    checks = (
        ("transform", "transform", "none"),
        ("filter", "filter", "none"),
        ("backdropFilter", "backdrop-filter", "none"),
        ("mixBlendMode", "mix-blend-mode", "normal"),
    )
    for key, label, default in checks:
        value = str(visual.get(key) or "").strip()
        if value and value != default:
            reasons.append(label)
    return reasons


def _is_overlay_candidate(context: Dict[str, Any]) -> bool:
    position = str(context.get("position") or "").lower()
    z = context.get("zIndexNum")
    if position in ("fixed", "sticky"):
        return True
    if position == "absolute" and z is not None and z >= 10:
        return True
    return z is not None and z >= 50


def detect_stacking_contexts(tree: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Approximate stacking contexts, highest z-index / largest area first."""
    if not tree:
        return None
    root_area = rect_area(tree.get("rect"))
    contexts = []
    for node, depth in walk_tree(tree):
        reasons = _stacking_reasons(node)
        if not reasons:
            continue
        layout = node.get("layout") or {}
        area = rect_area(node.get("rect"))
        contexts.append({
            "uid": node.get("uid"),
            "selector": node.get("selector"),
            "rect": node.get("rect"),
            "depth": depth,
            "area": area,
            "areaRatio": round(area / root_area, 4) if root_area else None,
            "position": layout.get("position") or "static",
            "zIndex": layout.get("zIndex"),
            "zIndexNum": parse_z_index(layout.get("zIndex")),
            "isolation": layout.get("isolation"),
            "reasons": reasons,
        })
    if not contexts:
        return None

    contexts.sort(key=lambda c: (
        -(c["zIndexNum"] if c["zIndexNum"] is not None else float("-inf")),
        -c["area"],
        c["depth"],
    ))
    top = [
        {k: c[k] for k in ("uid", "selector", "rect", "position", "zIndex", "zIndexNum",
                           "isolation", "reasons", "areaRatio")}
        for c in contexts[:STACKING_TOP_LIMIT]
    ]
    return {
        "count": len(contexts),
        "top": top,
        "overlayCandidates": [c for c in top if _is_overlay_candidate(c)][:OVERLAY_CANDIDATE_LIMIT],
        "note": (
            "Stacking contexts are approximate. Within the same context, paint order follows "
            "DOM order; higher z-index generally renders above lower."
        ),
    }


def summarize_layout(structure: Any) -> Optional[Dict[str, Any]]:
    """Top flex / grid containers from structure evidence."""
    layout = structure.get("layout") if isinstance(structure, dict) else None
    if not isinstance(layout, dict):
        return None
    patterns = layout.get("patterns") or {}
    flex_keys = ("selector", "rect", "direction", "justify", "align", "gap")
    grid_keys = ("selector", "rect", "columns", "rows", "gap")
    return {
        "summary": layout.get("summary") or {},
        "flexContainers": [
            {k: item.get(k) for k in flex_keys}
            for item in (patterns.get("flex") or [])[:LAYOUT_PATTERN_LIMIT] if isinstance(item, dict)
        ],
        "gridContainers": [
            {k: item.get(k) for k in grid_keys}
            for item in (patterns.get("grid") or [])[:LAYOUT_PATTERN_LIMIT] if isinstance(item, dict)
        ],
    }


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


def extract_urls_from_css_image(value: Any) -> List[str]:
    if not value or value == "none":
        return []
    urls = []
    for raw in _URL_RE.findall(str(value)):
        url = raw.strip().strip("'\"")
        if url:
            urls.append(url)
        if len(urls) >= 16:
            break
    return urls


def parse_srcset_urls(srcset: Any) -> List[str]:
    urls = []
    for part in str(srcset or "").split(","):
        part = part.strip()
        if part:
            urls.append(part.split()[0])
        if len(urls) >= 12:
            break
    return urls


def extract_asset_manifest(tree: Optional[Dict[str, Any]], max_assets: int = MAX_ASSETS) -> Dict[str, Any]:
    """De-duplicated image / background asset URLs found in the tree."""
    items: List[Dict[str, Any]] = []
    seen = set()
    by_type = {"image": 0, "video": 0, "svg": 0, "background": 0, "other": 0}

    def add(raw_url: Any, asset_type: str, source: str, selector: Optional[str]) -> None:
        if len(items) >= max_assets:
            return
        url = str(raw_url or "").strip().strip("'\"")
        if not url or url in seen:
            return
        seen.add(url)
        by_type[asset_type if asset_type in by_type else "other"] += 1
        items.append({"url": url, "type": asset_type, "source": source, "selector": selector})

    for node, _depth in walk_tree(tree):
        selector = node.get("selector")
        if node.get("tag") == "img":
            add(node.get("src"), "image", "img.src", selector)
            for url in parse_srcset_urls(node.get("srcset")):
                add(url, "image", "img.srcset", selector)
        for url in extract_urls_from_css_image((node.get("visual") or {}).get("backgroundImage")):
            add(url, "background", "visual.backgroundImage", selector)
        pseudos = node.get("pseudoElements") or {}
        for key in ("before", "after"):
            bg = (pseudos.get(key) or {}).get("backgroundImage")
            for url in extract_urls_from_css_image(bg):
                add(url, "background", f"pseudo.{key}.backgroundImage", selector)

    return {
        "total": len(items),
        "byType": by_type,
        "items": items,
        "note": (
            "Manifest includes URLs found in media tags and captured background-image values. "
            "Data/blob URLs may not be downloadable."
        ),
    }
