"""Blueprint Assembler — composes the replica blueprint from evidence.

Phases run sequentially, each consuming the previous one's output:
evidence coercion -> indices -> node tree -> sections / fallback binding
-> relationships -> interaction plan -> responsive / tokens / stacking /
assets -> validation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from ..evidence.indices import build_indices
from ..evidence.resolver import Resolver, SnapshotResolver
from ..evidence.schemas import (
    BuildOptions,
    coerce_a11y,
    coerce_components,
    coerce_options,
    coerce_patterns,
    coerce_state_capture,
    coerce_viewport_layouts,
)
from ..interaction.planner import build_interaction_plan
from ..logging_config import get_blueprint_logger
from ..nodes.binder import (
    apply_component_bindings_fallback,
    build_sections,
    collect_component_bindings,
    create_node_index,
)
from ..nodes.relationships import build_relationships
from ..nodes.tree_builder import build_tree
from .patterns import summarize_patterns
from .responsive_summary import build_responsive_hints, summarize_responsive
from .stacking import detect_stacking_contexts, extract_asset_manifest, summarize_layout
from .token_refs import extract_tokens
from .validator import validate_blueprint

logger = logging.getLogger(__name__)

BLUEPRINT_VERSION = "1.0.0"


def _first(extracted: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = extracted.get(key)
        if value is not None:
            return value
    return None


def _viewport_height(options: BuildOptions, structure: Any, meta: Any) -> Optional[float]:
    if options.viewport_height:
        return options.viewport_height
    for source in (structure, meta):
        if isinstance(source, dict):
            viewport = source.get("viewport")
            if isinstance(viewport, dict) and viewport.get("height"):
                return float(viewport["height"])
    return None


def build_blueprint(extracted: Optional[Dict[str, Any]] = None,
                    options: Union[None, Dict[str, Any], BuildOptions] = None,
                    resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Build the replica blueprint for one page snapshot.

    Args:
        extracted: Evidence bundles keyed by kind: ``dom`` (element snapshot),
            ``structure``, ``components``, ``state-capture``, ``a11y``,
            ``responsive``, ``viewportLayouts``, ``stylekit``, ``cssVarMap``,
            ``patterns``, ``ai-semantic``, ``meta``. Every key is optional.
        options: BuildOptions or a plain dict validated into one
        resolver: Selector resolver; defaults to a SnapshotResolver over ``dom``

    Returns:
        JSON-serializable blueprint dict.
    """
    extracted = extracted if isinstance(extracted, dict) else {}
    opts = coerce_options(options)

    structure = extracted.get("structure") if isinstance(extracted.get("structure"), dict) else {}
    meta_in = extracted.get("meta") if isinstance(extracted.get("meta"), dict) else {}
    dom = extracted.get("dom") or structure.get("dom")
    if resolver is None and isinstance(dom, dict):
        resolver = SnapshotResolver(dom)
    if opts.viewport_height is None:
        opts = opts.model_copy(update={"viewport_height": _viewport_height(opts, structure, meta_in)})

    components = coerce_components(extracted.get("components"))
    state_capture = coerce_state_capture(_first(extracted, "state-capture", "stateCapture"))
    a11y_tree = coerce_a11y(extracted.get("a11y"))
    responsive_raw = extracted.get("responsive") if isinstance(extracted.get("responsive"), dict) else None
    viewport_layouts = coerce_viewport_layouts(
        extracted.get("viewportLayouts") or (responsive_raw or {}).get("storedLayouts")
    )

    indices = build_indices(components, state_capture, a11y_tree, resolver)
    tree, ctx = build_tree(
        dom if isinstance(dom, dict) else None,
        indices,
        opts,
        resolver,
        css_var_map=extracted.get("cssVarMap") if isinstance(extracted.get("cssVarMap"), dict) else None,
    )

    component_list = indices["components"]["list"]
    boundaries = (structure.get("componentBoundaries") or {}).get("components") or []
    sections = build_sections(boundaries, component_list)

    bindings = collect_component_bindings(tree)
    if tree and component_list:
        apply_component_bindings_fallback(component_list, bindings, create_node_index(tree))

    relationships = build_relationships(tree)
    interaction = build_interaction_plan(tree, state_capture, opts, sections, resolver)

    bound_list = []
    for entry in component_list:
        node_ids = bindings.get(entry["id"]) or []
        bound_list.append({**entry, "nodeIds": node_ids, "primaryNodeId": node_ids[0] if node_ids else None})

    responsive = summarize_responsive(responsive_raw, viewport_layouts)
    tokens = extract_tokens(_first(extracted, "stylekit", "tokens"))
    stacking = detect_stacking_contexts(tree)
    assets = extract_asset_manifest(tree)
    outline = ((structure.get("semantic") or {}).get("structure") or {}).get("headings") or []
    patterns = summarize_patterns(coerce_patterns(_first(extracted, "patterns", "pattern-detect")))
    ai_semantic = _first(extracted, "aiSemantic", "ai-semantic")
    ai_semantic = ai_semantic if isinstance(ai_semantic, dict) else {}

    blueprint: Dict[str, Any] = {
        "meta": {
            "url": meta_in.get("url"),
            "title": meta_in.get("title"),
            "generatedAt": meta_in.get("generatedAt") or datetime.now(timezone.utc).isoformat(),
            "version": BLUEPRINT_VERSION,
        },
        "summary": {
            "nodeCount": ctx.count,
            "componentCount": len(bound_list),
            "boundComponentCount": sum(1 for c in bound_list if c["nodeIds"]),
            "sectionCount": len(sections),
            "hasStateSummaries": bool(indices["states"]["selectorIndex"]),
            "hasTokens": bool(tokens),
            "relationshipGroups": sum(
                len(relationships[k]) for k in ("order", "alignments", "flex", "grid")
            ),
            "patternCount": (patterns or {}).get("count", 0),
            "stackingContextCount": (stacking or {}).get("count", 0),
            "assetCount": assets["total"],
            "truncated": ctx.truncated,
        },
        "tree": tree,
        "sections": sections,
        "components": {"list": bound_list, "byType": indices["components"]["byType"]},
        "outline": outline,
        "layout": summarize_layout(structure),
        "relationships": relationships,
        "interaction": interaction,
        "responsive": responsive,
        "responsiveHints": build_responsive_hints(responsive),
        "tokens": tokens,
        "page": ai_semantic.get("page"),
        "intent": ai_semantic.get("summary"),
        "stacking": stacking,
        "assets": assets,
        "patterns": patterns,
    }
    blueprint["validation"] = validate_blueprint(blueprint, opts)

    summary = blueprint["summary"]
    get_blueprint_logger().info(
        "Blueprint built: %d nodes (truncated=%s), %d/%d components bound, %d sections, %d targets",
        summary["nodeCount"], summary["truncated"], summary["boundComponentCount"],
        summary["componentCount"], summary["sectionCount"], interaction["summary"]["targetCount"],
    )
    return blueprint
