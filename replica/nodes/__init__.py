"""Node System: IR tree builder, style extraction, relationships and component binding."""

from .binder import (
    apply_component_bindings_fallback,
    build_component_context,
    build_section_index,
    build_sections,
    collect_component_bindings,
    create_node_index,
    resolve_section_for_node,
)
from .relationships import build_relationships, infer_flow_direction
from .tree_builder import BuildContext, build_node, build_tree, walk_tree

__all__ = [
    "BuildContext",
    "apply_component_bindings_fallback",
    "build_component_context",
    "build_node",
    "build_relationships",
    "build_section_index",
    "build_sections",
    "build_tree",
    "collect_component_bindings",
    "create_node_index",
    "infer_flow_direction",
    "resolve_section_for_node",
    "walk_tree",
]
