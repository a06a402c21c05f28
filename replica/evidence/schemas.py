"""Pydantic schemas for evidence bundles and build options.

Evidence arrives as loosely-typed JSON from the capture scripts. Each bundle
is validated here, at the boundary, before entering the core. A malformed
bundle (or a malformed entry inside one) is treated as "no evidence of that
kind" rather than an error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .. import settings

logger = logging.getLogger(__name__)


class _Evidence(BaseModel):
    """Base for evidence records: unknown keys are kept, not rejected."""
    model_config = ConfigDict(extra="allow")


class Rect(_Evidence):
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class ComponentItem(_Evidence):
    """One detected component instance from the component report."""
    selector: str = Field(..., min_length=1)
    rect: Optional[Rect] = None
    text: Optional[str] = None
    variant: Optional[str] = None
    detectionMethod: Optional[str] = None


class RepeatingPattern(_Evidence):
    """One group of structurally identical siblings from pattern detection."""
    id: Optional[str] = None
    containerSelector: Optional[str] = None
    sampleSelector: Optional[str] = None
    count: int = Field(default=0, ge=0)
    layoutType: Optional[str] = None
    gap: Optional[Any] = None
    itemSize: Optional[Any] = None
    template: Optional[Any] = None
    sampleSelectors: Optional[List[str]] = None


class StateSummary(_Evidence):
    hasInteractiveStates: bool = False
    stateDescriptions: Optional[Any] = None
    keyChanges: List[Any] = Field(default_factory=list)


class CapturedStateEntry(_Evidence):
    """Per-selector captured style maps, keyed by state name."""
    states: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class A11yNode(_Evidence):
    selector: Optional[str] = None
    role: Optional[str] = None
    name: Optional[str] = None
    states: Dict[str, Any] = Field(default_factory=dict)
    children: List["A11yNode"] = Field(default_factory=list)


A11yNode.model_rebuild()


class Viewport(_Evidence):
    width: float = 0
    height: float = 0


class ViewportLayout(_Evidence):
    """Stored layout snapshot for one named viewport."""
    viewport: Viewport = Field(default_factory=Viewport)
    breakpoint: Optional[str] = None
    gridLayouts: List[Dict[str, Any]] = Field(default_factory=list)
    flexLayouts: List[Dict[str, Any]] = Field(default_factory=list)
    visibilityStates: List[Dict[str, Any]] = Field(default_factory=list)
    layoutContainers: List[Dict[str, Any]] = Field(default_factory=list)
    sizingInfo: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator(
        "gridLayouts", "flexLayouts", "visibilityStates", "layoutContainers", "sizingInfo",
        mode="before",
    )
    @classmethod
    def keep_selector_records(cls, value: Any) -> List[Dict[str, Any]]:
        """Drop records that are not dicts or carry no selector."""
        if not isinstance(value, list):
            return []
        return [r for r in value if isinstance(r, dict) and r.get("selector")]


class BuildOptions(BaseModel):
    """Options for one blueprint build."""
    model_config = ConfigDict(extra="ignore")

    max_depth: int = Field(default=settings.BLUEPRINT_MAX_DEPTH, ge=0)
    max_nodes: int = Field(default=settings.BLUEPRINT_MAX_NODES, ge=1)
    min_width: float = Field(default=settings.BLUEPRINT_MIN_WIDTH, ge=0)
    min_height: float = Field(default=settings.BLUEPRINT_MIN_HEIGHT, ge=0)
    skip_tags: List[str] = Field(default_factory=lambda: list(settings.BLUEPRINT_SKIP_TAGS))
    include_text: bool = True
    include_styles: bool = True
    interaction_target_limit: Optional[int] = Field(
        default=settings.INTERACTION_TARGET_LIMIT, ge=0,
    )
    interaction_group_sample_limit: int = Field(
        default=settings.INTERACTION_GROUP_SAMPLE_LIMIT, ge=0,
    )
    interaction_recommendation_limit: int = Field(
        default=settings.INTERACTION_RECOMMENDATION_LIMIT, ge=0,
    )
    interaction_workflow_limit: int = Field(
        default=settings.INTERACTION_WORKFLOW_LIMIT, ge=0,
    )
    viewport_height: Optional[float] = Field(
        None,
        description="Viewport height used for the above-the-fold priority bonus",
    )

    @field_validator("skip_tags", mode="before")
    @classmethod
    def lower_tags(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        elif value is not None and not isinstance(value, (list, tuple, set)):
            raise ValueError("skip_tags must be a comma-separated string or a list of tags")
        return [str(t).strip().lower() for t in value or [] if str(t).strip()]


# ---------------------------------------------------------------------------
# Boundary coercion
# ---------------------------------------------------------------------------


def coerce_options(raw: Union[None, Dict[str, Any], BuildOptions]) -> BuildOptions:
    """Validate caller options; invalid values fall back to defaults."""
    if isinstance(raw, BuildOptions):
        return raw
    if not isinstance(raw, dict):
        return BuildOptions()
    try:
        return BuildOptions(**raw)
    except ValidationError as e:
        logger.warning("Invalid build options, using defaults: %s", e.errors())
        valid: Dict[str, Any] = {}
        bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
        for key, value in raw.items():
            if key not in bad:
                valid[key] = value
        return BuildOptions(**valid)


def coerce_components(raw: Any) -> Dict[str, List[Dict[str, Any]]]:
    """Normalize a component report to {type: [item, ...]}.

    Accepts either the bare map or a wrapper with a ``components`` key.
    Items without a selector (or otherwise malformed) are skipped.
    """
    if not isinstance(raw, dict):
        return {}
    components_map = raw.get("components") if isinstance(raw.get("components"), dict) else raw

    result: Dict[str, List[Dict[str, Any]]] = {}
    for comp_type, items in components_map.items():
        if not isinstance(items, list):
            continue
        valid_items = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                valid_items.append(ComponentItem(**item).model_dump())
            except ValidationError:
                logger.debug("Skipping malformed %s component: %r", comp_type, item)
        if valid_items:
            result[comp_type] = valid_items
    return result


def coerce_state_capture(raw: Any) -> Dict[str, Any]:
    """Normalize state-capture evidence.

    Returns a dict with ``summaries``, ``captured.states``, ``fallback``,
    ``selectors``, ``mcpCommands`` and ``batchWorkflow`` always present.
    """
    result: Dict[str, Any] = {
        "summaries": {},
        "captured": {"states": {}},
        "fallback": {},
        "selectors": [],
        "mcpCommands": [],
        "batchWorkflow": None,
    }
    if not isinstance(raw, dict):
        return result

    summaries = raw.get("summaries")
    if isinstance(summaries, dict):
        for selector, summary in summaries.items():
            if not selector or not isinstance(summary, dict):
                continue
            try:
                result["summaries"][selector] = StateSummary(**summary).model_dump()
            except ValidationError:
                logger.debug("Skipping malformed state summary for %s", selector)

    captured = raw.get("captured")
    matrix = captured.get("states") if isinstance(captured, dict) else None
    result["captured"]["states"] = _coerce_state_matrix(matrix)
    result["fallback"] = _coerce_state_matrix(raw.get("fallback"))

    selectors = raw.get("selectors")
    if isinstance(selectors, list):
        result["selectors"] = [s for s in selectors if isinstance(s, str) and s]

    commands = raw.get("mcpCommands")
    if isinstance(commands, list):
        result["mcpCommands"] = [c for c in commands if isinstance(c, dict)]

    if raw.get("batchWorkflow"):
        result["batchWorkflow"] = raw["batchWorkflow"]
    return result


def _coerce_state_matrix(raw: Any) -> Dict[str, Dict[str, Any]]:
    if not isinstance(raw, dict):
        return {}
    matrix: Dict[str, Dict[str, Any]] = {}
    for selector, entry in raw.items():
        if not selector or not isinstance(entry, dict):
            continue
        try:
            matrix[selector] = CapturedStateEntry(**entry).model_dump()
        except ValidationError:
            logger.debug("Skipping malformed captured states for %s", selector)
    return matrix


def coerce_a11y(raw: Any) -> Optional[Any]:
    """Validate an accessibility tree; returns the tree (node or list) or None."""
    if not isinstance(raw, dict):
        return None
    tree = raw.get("tree")
    try:
        if isinstance(tree, list):
            return [A11yNode(**n).model_dump() for n in tree if isinstance(n, dict)]
        if isinstance(tree, dict):
            return A11yNode(**tree).model_dump()
    except ValidationError:
        logger.debug("Ignoring malformed accessibility tree")
    return None


def coerce_viewport_layouts(raw: Any) -> Dict[str, Dict[str, Any]]:
    """Validate per-viewport layout snapshots keyed by viewport name."""
    if not isinstance(raw, dict):
        return {}
    layouts: Dict[str, Dict[str, Any]] = {}
    for name, layout in raw.items():
        if not name or not isinstance(layout, dict):
            continue
        try:
            layouts[name] = ViewportLayout(**layout).model_dump()
        except ValidationError:
            logger.debug("Skipping malformed viewport snapshot %s", name)
    return layouts


def coerce_patterns(raw: Any) -> Optional[Dict[str, Any]]:
    """Normalize repeating-pattern evidence to ``{patterns, count, totalRepeatingElements, guide}``.

    Accepts the detection result or a bare list of patterns. Returns None
    when no valid pattern remains.
    """
    items = raw.get("patterns") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        return None
    patterns = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            patterns.append(RepeatingPattern(**item).model_dump())
        except ValidationError:
            logger.debug("Skipping malformed repeating pattern: %r", item)
    if not patterns:
        return None
    return {
        "patterns": patterns,
        "count": len(patterns),
        "totalRepeatingElements": sum(p["count"] for p in patterns),
        "guide": raw.get("guide") if isinstance(raw, dict) and isinstance(raw.get("guide"), dict) else None,
    }
