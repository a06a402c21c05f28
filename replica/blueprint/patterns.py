"""Repeating sibling patterns and the render guide derived from them."""

from __future__ import annotations

from typing import Any, Dict, Optional

PATTERN_GUIDE_NOTE = (
    "Each pattern represents a group of sibling elements with identical DOM structure. "
    "Use loops/map to render them, varying only text/image content."
)


def build_pattern_guide(detected: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """One "render N items with this template" hint per pattern."""
    patterns = (detected or {}).get("patterns") or []
    if not patterns:
        return None
    guides = [
        {
            "hint": f"Render {p.get('count')} items using {p.get('layoutType')} layout",
            "container": p.get("containerSelector"),
            "itemCount": p.get("count"),
            "layoutType": p.get("layoutType"),
            "gap": p.get("gap"),
            "itemSize": p.get("itemSize"),
            "template": p.get("template"),
            "sampleSelectors": p.get("sampleSelectors"),
        }
        for p in patterns
    ]
    return {"total": len(guides), "guides": guides, "note": PATTERN_GUIDE_NOTE}


def summarize_patterns(detected: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Blueprint ``patterns`` section; None when nothing repeats."""
    if not detected or not detected.get("count"):
        return None
    return {
        "count": detected["count"],
        "totalRepeatingElements": detected.get("totalRepeatingElements", 0),
        "items": detected["patterns"],
        "guide": detected.get("guide") or build_pattern_guide(detected),
    }
