"""Computed-style extraction — layout, constraints, typography, visual.

Converts a camelCase computed-style map (as captured by the structure
evidence) into the pruned IR sub-records. A value is kept only when it
differs from the CSS initial/auto value, so downstream synthesis never has
to re-filter defaults.
"""

import re
from typing import Any, Dict, Optional

import logging

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")

_ZERO_VALUES = {"0", "0px", "0%"}
_TRANSPARENT = {"transparent", "rgba(0, 0, 0, 0)"}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def to_number(value: Any) -> Optional[float]:
    """Leading numeric part of a CSS length, or None for auto/none/empty."""
    if value is None or value in ("", "auto", "none"):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.match(str(value))
    return float(match.group(1)) if match else None


def is_non_zero(value: Any) -> bool:
    if not value:
        return False
    if value in ("auto", "none"):
        return False
    return str(value) not in _ZERO_VALUES


def read_box(s: Dict[str, Any], prefix: str, allow_auto: bool = False) -> Optional[Dict[str, Any]]:
    """Read a four-sided box (padding/margin); None when all sides are zero."""
    sides = {side: s.get(f"{prefix}{side.capitalize()}") for side in ("top", "right", "bottom", "left")}

    def meaningful(v: Any) -> bool:
        if is_non_zero(v) and v != "auto":
            return True
        return allow_auto and str(v or "").strip() == "auto"

    if not any(meaningful(v) for v in sides.values()):
        return None
    return sides


def clean_object(obj: Any) -> Any:
    """Recursively drop None values and empty nested dicts (in place)."""
    if not isinstance(obj, dict):
        return obj
    for key in list(obj.keys()):
        value = obj[key]
        if value is None:
            del obj[key]
            continue
        if isinstance(value, dict):
            clean_object(value)
            if not value:
                del obj[key]
    return obj


def clamp_text(text: Optional[str], limit: int = 80) -> Optional[str]:
    if not text:
        return None
    cleaned = " ".join(str(text).split())
    return cleaned[:limit] or None


def _keep(value: Any, *defaults: str) -> Optional[Any]:
    """Return value unless it is empty or one of the given defaults."""
    if value is None or value == "" or value in defaults:
        return None
    return value


def _is_zero_time_list(value: Any) -> bool:
    if not value:
        return True
    parts = [p.strip() for p in str(value).split(",") if p.strip()]
    return all(p in ("0s", "0ms", "0") for p in parts)


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def extract_layout(s: Dict[str, Any]) -> Dict[str, Any]:
    display = s.get("display") or ""
    layout: Dict[str, Any] = {
        "display": display or None,
        "position": _keep(s.get("position"), "static"),
        "zIndex": _keep(s.get("zIndex"), "auto"),
        "isolation": _keep(s.get("isolation"), "auto"),
    }
    # Offsets matter for overlays / absolute layouts
    for edge in ("top", "right", "bottom", "left"):
        layout[edge] = _keep(s.get(edge), "auto")

    if "flex" in display:
        layout["flex"] = {
            "direction": s.get("flexDirection"),
            "wrap": s.get("flexWrap"),
            "justify": s.get("justifyContent"),
            "align": s.get("alignItems"),
            "gap": s.get("gap") if is_non_zero(s.get("gap")) else None,
            "alignContent": _keep(s.get("alignContent"), "normal"),
        }

    if "grid" in display:
        layout["grid"] = {
            "columns": _keep(s.get("gridTemplateColumns"), "none"),
            "rows": _keep(s.get("gridTemplateRows"), "none"),
            "autoFlow": s.get("gridAutoFlow"),
            "gap": s.get("gap") if is_non_zero(s.get("gap")) else None,
            "justifyItems": _keep(s.get("justifyItems"), "stretch"),
            "alignItems": _keep(s.get("alignItems"), "stretch"),
            "justifyContent": _keep(s.get("justifyContent"), "normal"),
            "alignContent": _keep(s.get("alignContent"), "normal"),
        }

    # Clipping and scroll containers
    overflow = _keep(s.get("overflow"), "visible")
    layout["overflow"] = overflow
    layout["overflowX"] = _keep(s.get("overflowX"), "visible", overflow)
    layout["overflowY"] = _keep(s.get("overflowY"), "visible", overflow)

    layout["flexItem"] = {
        "grow": _keep(s.get("flexGrow"), "0"),
        "shrink": _keep(s.get("flexShrink"), "1"),
        "basis": _keep(s.get("flexBasis"), "auto"),
    }
    layout["gridItem"] = {
        "columnStart": _keep(s.get("gridColumnStart"), "auto"),
        "columnEnd": _keep(s.get("gridColumnEnd"), "auto"),
        "rowStart": _keep(s.get("gridRowStart"), "auto"),
        "rowEnd": _keep(s.get("gridRowEnd"), "auto"),
    }
    layout["alignSelf"] = _keep(s.get("alignSelf"), "auto")
    layout["justifySelf"] = _keep(s.get("justifySelf"), "auto")
    layout["order"] = _keep(s.get("order"), "0")

    return clean_object(layout)


def extract_constraints(rect: Dict[str, Any], s: Dict[str, Any],
                        parent_rect: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    size: Dict[str, Any] = {
        "width": rect.get("width"),
        "height": rect.get("height"),
        "minWidth": to_number(s.get("minWidth")),
        "maxWidth": to_number(s.get("maxWidth")),
        "minHeight": to_number(s.get("minHeight")),
        "maxHeight": to_number(s.get("maxHeight")),
    }
    # min-width: 0 is the initial value
    for key in ("minWidth", "minHeight"):
        if size[key] == 0:
            size[key] = None

    if parent_rect and (parent_rect.get("width") or 0) > 0:
        size["widthRatio"] = round(rect.get("width", 0) / parent_rect["width"], 3)
    if parent_rect and (parent_rect.get("height") or 0) > 0:
        size["heightRatio"] = round(rect.get("height", 0) / parent_rect["height"], 3)

    spacing = {
        "padding": read_box(s, "padding"),
        # auto margins are meaningful for centred containers
        "margin": read_box(s, "margin", allow_auto=True),
        "gap": s.get("gap") if is_non_zero(s.get("gap")) else None,
    }
    return clean_object({"size": size, "spacing": spacing})


def extract_typography(s: Dict[str, Any]) -> Dict[str, Any]:
    typography = {
        "fontFamily": s.get("fontFamily"),
        "fontSize": s.get("fontSize"),
        "fontWeight": s.get("fontWeight"),
        "fontStyle": _keep(s.get("fontStyle"), "normal"),
        "lineHeight": s.get("lineHeight"),
        "letterSpacing": s.get("letterSpacing"),
        "textAlign": _keep(s.get("textAlign"), "start"),
        "textTransform": _keep(s.get("textTransform"), "none"),
        "textDecorationLine": _keep(s.get("textDecorationLine"), "none"),
        "textDecorationStyle": _keep(s.get("textDecorationStyle"), "solid"),
        "textDecorationColor": _keep(s.get("textDecorationColor"), "currentcolor"),
        "whiteSpace": _keep(s.get("whiteSpace"), "normal"),
        "textOverflow": _keep(s.get("textOverflow"), "clip"),
    }
    return clean_object(typography)


def _border_side(width: Any, style: Any, color: Any) -> Optional[Dict[str, Any]]:
    if not is_non_zero(width) or not style or style == "none":
        return None
    return {"width": width, "style": style, "color": color}


def extract_border(s: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Border record; collapsed to one side when all four sides match."""
    sides = {
        side: _border_side(
            s.get(f"border{side.capitalize()}Width"),
            s.get(f"border{side.capitalize()}Style"),
            s.get(f"border{side.capitalize()}Color"),
        )
        for side in ("top", "right", "bottom", "left")
    }
    present = [v for v in sides.values() if v]
    if not present:
        return None
    if len(present) == 4 and all(v == present[0] for v in present):
        return dict(present[0])
    return sides


def extract_visual(s: Dict[str, Any]) -> Dict[str, Any]:
    background_image = _keep(s.get("backgroundImage"), "none")
    visual: Dict[str, Any] = {
        "color": s.get("color"),
        "backgroundColor": _keep(s.get("backgroundColor"), *_TRANSPARENT),
        "backgroundImage": background_image,
        "borderRadius": _keep(s.get("borderRadius"), "0px"),
        "border": extract_border(s),
        "boxShadow": _keep(s.get("boxShadow"), "none"),
        "opacity": _keep(s.get("opacity"), "1"),
        "transform": _keep(s.get("transform"), "none"),
        "filter": _keep(s.get("filter"), "none"),
        "backdropFilter": _keep(s.get("backdropFilter"), "none"),
        "mixBlendMode": _keep(s.get("mixBlendMode"), "normal"),
        "cursor": _keep(s.get("cursor"), "auto"),
    }

    if background_image:
        visual["backgroundSize"] = _keep(s.get("backgroundSize"), "auto")
        visual["backgroundPosition"] = _keep(s.get("backgroundPosition"), "0% 0%")
        visual["backgroundRepeat"] = _keep(s.get("backgroundRepeat"), "repeat")

    # Replaced elements (images / video)
    visual["objectFit"] = _keep(s.get("objectFit"), "fill")
    object_position = s.get("objectPosition")
    if object_position:
        normalized = " ".join(str(object_position).split()).lower()
        if normalized not in ("50% 50%", "center", "center center"):
            visual["objectPosition"] = object_position
    visual["aspectRatio"] = _keep(s.get("aspectRatio"), "auto")

    if not _is_zero_time_list(s.get("transitionDuration")):
        delay = s.get("transitionDelay")
        visual["transition"] = {
            "property": s.get("transitionProperty"),
            "duration": s.get("transitionDuration"),
            "timingFunction": s.get("transitionTimingFunction"),
            "delay": None if _is_zero_time_list(delay) else delay,
        }

    return clean_object(visual)


def extract_pseudo_elements(pseudo_styles: Optional[Dict[str, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """Default-state ``::before``/``::after`` records.

    Only pseudo-elements that actually render (``content`` present and not
    ``none``/``normal``) are kept.
    """
    if not isinstance(pseudo_styles, dict):
        return None
    result: Dict[str, Any] = {}
    for pseudo, key in (("::before", "before"), ("::after", "after")):
        ps = pseudo_styles.get(pseudo) or pseudo_styles.get(key)
        if not isinstance(ps, dict):
            continue
        content = ps.get("content")
        if not content or content in ("none", "normal"):
            continue

        data: Dict[str, Any] = {
            "content": content,
            "color": ps.get("color") or None,
            "backgroundColor": _keep(ps.get("backgroundColor"), *_TRANSPARENT),
            "backgroundImage": _keep(ps.get("backgroundImage"), "none"),
            "width": _keep(ps.get("width"), "auto", "0px"),
            "height": _keep(ps.get("height"), "auto", "0px"),
            "borderRadius": _keep(ps.get("borderRadius"), "0px"),
            "transform": _keep(ps.get("transform"), "none"),
            "opacity": _keep(ps.get("opacity"), "1"),
            "boxShadow": _keep(ps.get("boxShadow"), "none"),
            "display": _keep(ps.get("display"), "inline"),
        }

        position = _keep(ps.get("position"), "static")
        if position:
            data["position"] = position
            for edge in ("top", "left", "right", "bottom"):
                data[edge] = _keep(ps.get(edge), "auto")

        border_width = ps.get("borderTopWidth")
        border_style = ps.get("borderTopStyle")
        if is_non_zero(border_width) and border_style and border_style != "none":
            data["border"] = {
                "width": border_width,
                "style": border_style,
                "color": ps.get("borderTopColor"),
            }

        # Text pseudo-elements (counters, labels)
        if content not in ('""', "''"):
            data["fontSize"] = ps.get("fontSize") or None
            data["fontWeight"] = _keep(ps.get("fontWeight"), "400", "normal")
            data["fontFamily"] = ps.get("fontFamily") or None

        duration = ps.get("transitionDuration")
        if duration and duration != "0s":
            data["transition"] = {
                "property": ps.get("transitionProperty"),
                "duration": duration,
                "timingFunction": ps.get("transitionTimingFunction"),
            }

        result[key] = clean_object(data)

    return result or None
