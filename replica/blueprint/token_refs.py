"""Design-token extraction and CSS-variable reverse references.

``extract_tokens`` picks the token groups the blueprint carries from a
stylekit bundle. ``build_var_refs`` annotates a node's computed values with
the CSS custom property that produced them, using a value -> {varName}
reverse map supplied alongside the evidence.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)


def extract_tokens(stylekit: Any) -> Optional[Dict[str, Any]]:
    """Token groups (colors, typography, spacing, radii, shadows, motion)."""
    if not isinstance(stylekit, dict):
        return None
    normalized = stylekit.get("normalized")
    tokens = (normalized or {}).get("tokens") if isinstance(normalized, dict) else None
    tokens = tokens or stylekit.get("tokens")
    if not isinstance(tokens, dict):
        return None

    colors = tokens.get("colors")
    if isinstance(colors, dict):
        colors = colors.get("semantic") or colors.get("palette") or None
    borders = tokens.get("borders")
    return {
        "colors": colors or None,
        "typography": tokens.get("typography") or None,
        "spacing": tokens.get("spacing") or None,
        "radii": borders.get("radius") if isinstance(borders, dict) else None,
        "shadows": tokens.get("shadows") or None,
        "motion": tokens.get("motion") or None,
    }


def normalize_color_value(value: str) -> Optional[str]:
    """Convert ``rgb()/rgba()`` to upper-case hex (alpha appended when < 1)."""
    match = _RGB_RE.match(value.strip())
    if not match:
        if value.startswith("#"):
            return value.upper()
        return None
    r, g, b = (min(255, int(match.group(i))) for i in (1, 2, 3))
    hex_rgb = f"#{r:02X}{g:02X}{b:02X}"
    alpha = match.group(4)
    if alpha is not None and float(alpha) < 1.0:
        hex_rgb += f"{round(float(alpha) * 255):02X}"
    return hex_rgb


def _lookup(value: Any, css_var_map: Dict[str, Any]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    entry = css_var_map.get(value)
    if isinstance(entry, dict) and entry.get("varName"):
        return entry["varName"]
    normalized = normalize_color_value(value)
    if normalized:
        entry = css_var_map.get(normalized) or css_var_map.get(normalized.lower())
        if isinstance(entry, dict) and entry.get("varName"):
            return entry["varName"]
    return None


def build_var_refs(node: Dict[str, Any], css_var_map: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Map node style fields to the CSS variables that produce their values.

    Args:
        node: IR node with visual/typography/constraints extracted
        css_var_map: Reverse map, computed value -> {"varName": "--x", ...}

    Returns:
        {field: "--var-name"} or None when nothing matches.
    """
    if not css_var_map or not node:
        return None
    refs: Dict[str, str] = {}

    visual = node.get("visual") or {}
    for field in ("color", "backgroundColor", "borderRadius", "boxShadow"):
        ref = _lookup(visual.get(field), css_var_map)
        if ref:
            refs[field] = ref
    border = visual.get("border")
    if isinstance(border, dict):
        ref = _lookup(border.get("color"), css_var_map)
        if ref:
            refs["borderColor"] = ref

    typography = node.get("typography") or {}
    for field in ("fontSize", "fontFamily", "lineHeight", "letterSpacing"):
        ref = _lookup(typography.get(field), css_var_map)
        if ref:
            refs[field] = ref

    spacing = (node.get("constraints") or {}).get("spacing") or {}
    ref = _lookup(spacing.get("gap"), css_var_map)
    if ref:
        refs["gap"] = ref

    return refs or None
