"""Condensed prompt form of a blueprint.

The prompt is markdown wrapping one JSON payload. When the payload does
not fit ``max_chars``, limits are tightened one step at a time (compact
JSON first, then selector length, targets, components, sections, hints,
assets, stacking, then whole parts are dropped). As a last resort a
minimal payload is emitted and hard-capped with a trailing marker.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from .. import settings

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n…[truncated]"

PROMPT_HEADER = [
    "# UI Replica Blueprint (Condensed)",
    "",
    "Use the JSON below to recreate the page layout and component styles with high visual fidelity.",
    "Focus on: layout constraints, typography, backgrounds/borders/shadows, interactive states, "
    "and responsive differences.",
    "Nodes may include `varRefs` (CSS variable mappings) and `pseudoElements` (::before/::after "
    "defaults) for higher fidelity.",
    "",
]


@dataclass
class PromptLimits:
    """Per-part caps used while condensing; tightened until the prompt fits."""
    max_components: int = 20
    max_targets: int = 12
    max_sections: int = 12
    max_responsive_hints: int = 6
    max_pattern_items: int = 8
    max_pattern_guides: int = 6
    max_stacking_items: int = 18
    max_stacking_overlays: int = 10
    max_asset_items: int = 80
    max_selector_chars: int = 180
    include_tokens: bool = True
    include_assets: bool = True
    include_sections: bool = True
    include_components: bool = True
    include_interactions: bool = True
    pretty: bool = True


def truncate_text(value: Any, max_len: int, keep: str = "end") -> str:
    """Shorten to ``max_len`` with an ellipsis, keeping the start or the end."""
    s = "" if value is None else str(value)
    if max_len <= 0 or len(s) <= max_len:
        return s
    if max_len <= 8:
        return s[:max_len]
    if keep == "start":
        return s[: max_len - 3] + "..."
    return "..." + s[-(max_len - 3):]


def _pick(obj: Any, max_entries: int) -> Any:
    if not isinstance(obj, dict):
        return obj
    return dict(list(obj.items())[:max_entries])


class _Condenser:
    """Builds the condensed payload for one set of limits."""

    def __init__(self, blueprint: Dict[str, Any]):
        self.bp = blueprint

    def selector(self, value: Any, limits: PromptLimits) -> Optional[str]:
        if not value:
            return None
        return truncate_text(value, limits.max_selector_chars, "end")

    def tokens(self, limits: PromptLimits) -> Any:
        tokens = self.bp.get("tokens")
        if not limits.include_tokens:
            return None
        if not isinstance(tokens, dict):
            return tokens
        return {
            "colors": _pick(tokens.get("colors"), 28),
            "typography": tokens.get("typography"),
            "spacing": _pick(tokens.get("spacing"), 24),
            "radii": _pick(tokens.get("radii"), 16),
            "shadows": _pick(tokens.get("shadows"), 16),
            "motion": tokens.get("motion"),
        }

    def patterns(self, limits: PromptLimits) -> Optional[Dict[str, Any]]:
        patterns = self.bp.get("patterns")
        if not isinstance(patterns, dict):
            return None
        guide = patterns.get("guide") if isinstance(patterns.get("guide"), dict) else None
        return {
            "count": patterns.get("count") or 0,
            "totalRepeatingElements": patterns.get("totalRepeatingElements") or 0,
            "items": [
                {
                    "id": p.get("id"),
                    "containerSelector": self.selector(p.get("containerSelector"), limits),
                    "sampleSelector": self.selector(p.get("sampleSelector"), limits),
                    "count": p.get("count"),
                    "layoutType": p.get("layoutType"),
                    "gap": p.get("gap"),
                    "itemSize": p.get("itemSize"),
                    "template": p.get("template"),
                    "sampleSelectors": [
                        self.selector(s, limits) for s in (p.get("sampleSelectors") or [])[:2] if s
                    ] or None,
                }
                for p in (patterns.get("items") or [])[: limits.max_pattern_items]
            ],
            "guide": {
                "total": guide.get("total"),
                "guides": [
                    {
                        "hint": g.get("hint"),
                        "container": self.selector(g.get("container"), limits),
                        "itemCount": g.get("itemCount"),
                        "layoutType": g.get("layoutType"),
                        "gap": g.get("gap"),
                        "itemSize": g.get("itemSize"),
                        "template": g.get("template"),
                    }
                    for g in (guide.get("guides") or [])[: limits.max_pattern_guides]
                ],
                "note": guide.get("note"),
            } if guide else None,
        }

    def responsive(self, limits: PromptLimits) -> Optional[Dict[str, Any]]:
        responsive = self.bp.get("responsive")
        if not isinstance(responsive, dict):
            return None
        hints = self.bp.get("responsiveHints") or []
        return {
            "breakpoints": responsive.get("breakpoints"),
            "named": responsive.get("named"),
            "hints": [
                {
                    "from": h.get("from"),
                    "to": h.get("to"),
                    "layoutChanges": [
                        {
                            "selector": self.selector(c.get("selector"), limits),
                            "property": c.get("property"),
                            "from": c.get("from"),
                            "to": c.get("to"),
                        }
                        for c in (h.get("layoutChanges") or [])[:6]
                    ],
                    "visibilityChanges": [
                        {"selector": self.selector(c.get("selector"), limits), "change": c.get("change")}
                        for c in (h.get("visibilityChanges") or [])[:6]
                    ],
                }
                for h in hints[: limits.max_responsive_hints]
            ] or None,
            "variants": (
                {"layouts": responsive["variants"].get("layouts")}
                if isinstance(responsive.get("variants"), dict) else None
            ),
        }

    def stacking(self, limits: PromptLimits) -> Optional[Dict[str, Any]]:
        stacking = self.bp.get("stacking")
        if not isinstance(stacking, dict):
            return None

        def compact(c: Dict[str, Any]) -> Dict[str, Any]:
            return {
                "uid": c.get("uid"),
                "selector": self.selector(c.get("selector"), limits),
                "rect": c.get("rect"),
                "position": c.get("position"),
                "zIndex": c.get("zIndex"),
                "reasons": (c.get("reasons") or [])[:6],
            }

        top = stacking.get("top") or []
        return {
            "count": stacking.get("count") or len(top),
            "overlayCandidates": [compact(c) for c in (stacking.get("overlayCandidates") or [])[: limits.max_stacking_overlays]],
            "top": [compact(c) for c in top[: limits.max_stacking_items]],
            "note": stacking.get("note"),
        }

    def assets(self, limits: PromptLimits) -> Optional[Dict[str, Any]]:
        assets = self.bp.get("assets")
        if not limits.include_assets or not isinstance(assets, dict):
            return None
        items = assets.get("items") or []
        return {
            "total": assets.get("total") or len(items),
            "byType": assets.get("byType"),
            "items": [
                {
                    "url": a.get("url"),
                    "type": a.get("type"),
                    "source": a.get("source"),
                    "selector": self.selector(a.get("selector"), limits),
                }
                for a in items[: limits.max_asset_items]
            ],
            "note": assets.get("note"),
        }

    def sections(self, limits: PromptLimits) -> Optional[List[Dict[str, Any]]]:
        if not limits.include_sections:
            return None
        return [
            {
                "id": s.get("id"),
                "name": s.get("name"),
                "role": s.get("role"),
                "rect": s.get("rect"),
                "components": (s.get("components") or [])[:16],
            }
            for s in (self.bp.get("sections") or [])[: limits.max_sections]
        ]

    def components(self, limits: PromptLimits) -> Optional[List[Dict[str, Any]]]:
        if not limits.include_components:
            return None
        return [
            {
                "id": c.get("id"),
                "type": c.get("type"),
                "variant": c.get("variant"),
                "selector": self.selector(c.get("selector"), limits),
                "primaryNodeId": c.get("primaryNodeId"),
                "text": c.get("text"),
            }
            for c in ((self.bp.get("components") or {}).get("list") or [])[: limits.max_components]
        ]

    def interactions(self, limits: PromptLimits) -> Optional[List[Dict[str, Any]]]:
        if not limits.include_interactions:
            return None
        targets = (self.bp.get("interaction") or {}).get("targets") or []
        return [
            {
                "selector": self.selector(t.get("selector"), limits),
                "tag": t.get("tag"),
                "semanticRole": t.get("semanticRole"),
                "semanticName": t.get("semanticName"),
                "accessibleRole": t.get("accessibleRole"),
                "accessibleName": t.get("accessibleName"),
                "availableStates": t.get("availableStates"),
                "keyChanges": (t.get("keyChanges") or [])[:8],
                "priority": t.get("priority"),
            }
            for t in targets[: limits.max_targets]
        ]

    def payload(self, limits: PromptLimits) -> Dict[str, Any]:
        return {
            "meta": self.bp.get("meta"),
            "summary": self.bp.get("summary"),
            "tokens": self.tokens(limits),
            "patterns": self.patterns(limits),
            # responsive early so it survives a tight budget
            "responsive": self.responsive(limits),
            "stacking": self.stacking(limits),
            "assets": self.assets(limits),
            "sections": self.sections(limits),
            "components": self.components(limits),
            "interactions": self.interactions(limits),
        }

    def minimal(self, limits: PromptLimits) -> Dict[str, Any]:
        tight = replace(
            limits, max_selector_chars=80, max_responsive_hints=3, max_stacking_items=10,
            max_stacking_overlays=6, max_asset_items=24, max_pattern_items=4, max_pattern_guides=3,
            include_assets=True,
        )
        return {
            "meta": self.bp.get("meta"),
            "summary": self.bp.get("summary"),
            "patterns": self.patterns(tight),
            "responsive": self.responsive(tight),
            "stacking": self.stacking(tight),
            "assets": self.assets(tight),
        }


def wrap_prompt(payload: Dict[str, Any], pretty: bool) -> str:
    body = json.dumps(payload, indent=2 if pretty else None,
                      separators=None if pretty else (",", ":"), ensure_ascii=False, default=str)
    return "\n".join(PROMPT_HEADER + ["```json", body, "```"])


# Ordered tightening steps: (applies?, tighten)
_STEPS: List[tuple] = [
    (lambda c: c.pretty, lambda c: replace(c, pretty=False)),
    (lambda c: c.max_selector_chars > 120,
     lambda c: replace(c, max_selector_chars=max(80, int(c.max_selector_chars * 0.75)))),
    (lambda c: c.max_targets > 8, lambda c: replace(c, max_targets=max(6, c.max_targets - 2))),
    (lambda c: c.max_components > 12, lambda c: replace(c, max_components=max(8, c.max_components - 4))),
    (lambda c: c.max_sections > 8, lambda c: replace(c, max_sections=max(6, c.max_sections - 2))),
    (lambda c: c.max_responsive_hints > 4,
     lambda c: replace(c, max_responsive_hints=max(3, c.max_responsive_hints - 1))),
    (lambda c: c.max_asset_items > 40, lambda c: replace(c, max_asset_items=max(20, int(c.max_asset_items * 0.7)))),
    (lambda c: c.max_stacking_items > 12, lambda c: replace(c, max_stacking_items=max(10, c.max_stacking_items - 4))),
    (lambda c: c.max_stacking_overlays > 8,
     lambda c: replace(c, max_stacking_overlays=max(6, c.max_stacking_overlays - 2))),
    (lambda c: c.include_interactions, lambda c: replace(c, include_interactions=False)),
    (lambda c: c.include_components, lambda c: replace(c, include_components=False)),
    (lambda c: c.include_sections, lambda c: replace(c, include_sections=False)),
    (lambda c: c.include_assets, lambda c: replace(c, include_assets=False)),
    (lambda c: c.include_tokens, lambda c: replace(c, include_tokens=False)),
]


def _tighten(limits: PromptLimits) -> Optional[PromptLimits]:
    step: Callable
    for applies, step in _STEPS:
        if applies(limits):
            return step(limits)
    return None


def hard_cap(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def to_llm_prompt(blueprint: Any, max_chars: int = settings.PROMPT_MAX_CHARS, **limits: Any) -> Optional[str]:
    """Render a blueprint as a character-bounded prompt.

    Args:
        blueprint: Blueprint dict from ``build_blueprint``
        max_chars: Character budget; the result never exceeds it by more
            than the truncation marker
        **limits: Overrides for ``PromptLimits`` fields (e.g. max_targets=6)

    Returns:
        Prompt string, or None when ``blueprint`` is not a dict.
    """
    if not isinstance(blueprint, dict):
        return None

    known = PromptLimits.__dataclass_fields__
    current: Optional[PromptLimits] = PromptLimits(**{k: v for k, v in limits.items() if k in known})
    condenser = _Condenser(blueprint)

    last = current
    while current is not None:
        out = wrap_prompt(condenser.payload(current), current.pretty)
        if len(out) <= max_chars:
            return out
        last = current
        current = _tighten(current)

    logger.info("Prompt budget %d too small for condensed blueprint, using minimal payload", max_chars)
    return hard_cap(wrap_prompt(condenser.minimal(last), False), max_chars)
