"""Tests for interaction/planner.py and interaction/actions.py."""

import pytest

from factories import CTA_PATH, EMPTY_PATH, make_node
from replica.evidence.indices import build_indices
from replica.evidence.resolver import SnapshotResolver
from replica.evidence.schemas import BuildOptions, coerce_components, coerce_state_capture
from replica.interaction.actions import TOOL_CLICK, TOOL_HOVER, build_recommendation_actions
from replica.interaction.planner import (
    SOURCE_HEURISTIC,
    SOURCE_MCP_COMMAND,
    SOURCE_STATE_SELECTOR,
    SOURCE_STATE_SUMMARY,
    TargetRegistry,
    build_interaction_plan,
    build_state_matrix,
    compute_priority,
    priority_level,
)
from replica.nodes import build_sections, build_tree


def _plan(page, components, state_capture, structure, **options):
    resolver = SnapshotResolver(page)
    coerced_components = coerce_components(components)
    capture = coerce_state_capture(state_capture)
    indices = build_indices(coerced_components, capture, None, resolver)
    opts = BuildOptions(viewport_height=structure["viewport"]["height"], **options)
    tree, _ = build_tree(page, indices, opts, resolver)
    sections = build_sections(structure["componentBoundaries"]["components"], indices["components"]["list"])
    return build_interaction_plan(tree, capture, opts, sections, resolver)


def _target(plan, node_id):
    return next(t for t in plan["targets"] if t["nodeId"] == node_id)


class TestPriority:
    def test_levels(self):
        assert priority_level(70) == "high"
        assert priority_level(40) == "medium"
        assert priority_level(39) == "low"

    def test_base_score(self):
        assert compute_priority(None, SOURCE_HEURISTIC) == {"score": 10, "level": "low"}

    def test_explicit_source_bonus(self):
        node = make_node("n1", width=10, height=10)
        heuristic = compute_priority(node, SOURCE_HEURISTIC)["score"]
        explicit = compute_priority(node, SOURCE_MCP_COMMAND)["score"]
        assert explicit - heuristic == 20

    def test_cta_beats_nav_keyword(self):
        cta = make_node("a", width=10, height=10, text="Sign up")
        nav = make_node("b", width=10, height=10, text="About")
        assert compute_priority(cta, None)["score"] == 30
        assert compute_priority(nav, None)["score"] == 16

    def test_area_and_fold(self):
        big = make_node("a", y=100, width=500, height=100)
        assert compute_priority(big, None)["score"] == 30
        assert compute_priority(big, None, viewport_height=800)["score"] == 40
        below = make_node("b", y=700, width=500, height=100)
        assert compute_priority(below, None, viewport_height=800)["score"] == 30

    def test_clamped(self):
        node = make_node("a", width=400, height=200, text="Get started",
                         semanticRole="button", state={"hasInteractiveStates": True})
        score = compute_priority(node, SOURCE_STATE_SELECTOR, {"states": {"a": {}, "b": {}}},
                                 {"type": "button"}, {"role": "hero"}, 800)
        assert score == {"score": 100, "level": "high"}


class TestTargetRegistry:
    def test_dedup_by_node_uid(self):
        registry = TargetRegistry()
        node = make_node("n1", selector=".a", tag="button")
        registry.add(node, ".a", SOURCE_HEURISTIC)
        registry.add(node, ".other", SOURCE_STATE_SELECTOR, {"states": {"default": {}, "hover": {}}})
        (target,) = registry.targets
        assert target["source"] == SOURCE_HEURISTIC
        assert target["sources"] == [SOURCE_HEURISTIC, SOURCE_STATE_SELECTOR]
        assert target["selector"] == ".a"
        assert target["availableStates"] == ["default", "hover"]
        assert target["priority"]["score"] == compute_priority(
            node, SOURCE_STATE_SELECTOR, {"states": {"default": {}, "hover": {}}})["score"]

    def test_selector_key_without_node(self):
        registry = TargetRegistry()
        registry.add(None, ".x", SOURCE_MCP_COMMAND)
        registry.add(None, ".x", SOURCE_STATE_SELECTOR)
        registry.add(None, None, SOURCE_STATE_SELECTOR)
        assert len(registry.targets) == 1
        assert registry.targets[0]["nodeId"] is None

    def test_limit(self):
        registry = TargetRegistry(limit=1)
        registry.add(None, ".a", SOURCE_HEURISTIC)
        registry.add(None, ".a", SOURCE_STATE_SELECTOR)
        assert registry.limit_reached is True
        assert registry.targets[0]["sources"] == [SOURCE_HEURISTIC]

    def test_known_node_not_merged_once_limit_reached(self):
        registry = TargetRegistry(limit=1)
        node = make_node("n1", selector=".a", tag="button")
        registry.add(node, ".a", SOURCE_HEURISTIC)
        registry.add(node, ".a", SOURCE_STATE_SELECTOR, {"states": {"default": {}, "hover": {}}})
        (target,) = registry.targets
        assert registry.limit_reached is True
        assert target["sources"] == [SOURCE_HEURISTIC]
        assert "availableStates" not in target
        assert target["priority"]["score"] == compute_priority(node, SOURCE_HEURISTIC, None)["score"]

    def test_merge_fills_missing_fields(self):
        registry = TargetRegistry()
        registry.add(None, "n1", SOURCE_MCP_COMMAND)
        registry.add(make_node("n1", tag="a", semanticRole="link"), None, SOURCE_HEURISTIC)
        (target,) = registry.targets
        assert target["nodeId"] == "n1"
        assert target["tag"] == "a"
        assert target["semanticRole"] == "link"


class TestInteractionPlan:
    def test_targets_deduplicated_across_passes(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure)
        button = _target(plan, "n8")
        assert button["selector"] == CTA_PATH
        assert button["sources"] == [SOURCE_STATE_SUMMARY, SOURCE_STATE_SELECTOR, SOURCE_MCP_COMMAND]
        assert button["availableStates"] == ["default", "hover", "focusVisible"]
        assert [t["nodeId"] for t in plan["targets"]].count("n8") == 1
        assert [t["nodeId"] for t in plan["targets"]] == ["n4", "n5", "n8", "n14"]

    def test_component_and_section_refs(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure)
        button = _target(plan, "n8")
        assert button["component"] == {"id": "cmp-1", "type": "button", "variant": "primary"}
        assert button["section"]["name"] == "Hero"
        assert _target(plan, "n5")["section"]["name"] == "Header"
        assert "section" not in _target(plan, "n14")

    def test_cta_outranks_plain_box(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure)
        button = _target(plan, "n8")
        plain = _target(plan, "n14")
        assert button["priority"] == {"score": 100, "level": "high"}
        assert plain["priority"]["score"] < button["priority"]["score"]
        assert plain["selector"] == EMPTY_PATH

        items = plan["recommendations"]["items"]
        selectors = [r["selector"] for r in items]
        assert selectors[0] == CTA_PATH
        assert selectors.index(CTA_PATH) < selectors.index(EMPTY_PATH)
        assert "cta/button" in items[0]["reasons"]
        assert "hero section" in items[0]["reasons"]

    def test_summary_and_matrix(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure)
        summary = plan["summary"]
        assert summary["targetCount"] == 4
        assert summary["selectors"] == 2
        assert summary["hasElementWorkflows"] is True
        assert summary["targetLimitReached"] is False
        assert sum(summary["priority"].values()) == 4
        assert plan["stateMatrix"] == {CTA_PATH: ["default", "hover", "focusVisible"]}
        assert plan["workflows"] == {"elements": state_capture["mcpCommands"]}

    def test_groups(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure)
        groups = plan["groups"]
        assert {g["componentId"] for g in groups["byComponent"]} == {"cmp-1", "cmp-2"}
        header = next(g for g in groups["bySection"] if g["name"] == "Header")
        assert header["targetCount"] == 2
        assert plan["summary"]["roleGroups"] == len(groups["byRole"])

    def test_target_limit(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure, interaction_target_limit=2)
        assert plan["summary"]["targetCount"] == 2
        assert plan["summary"]["targetLimitReached"] is True

    def test_top_target_workflows(self, page, components, state_capture, structure):
        plan = _plan(page, components, state_capture, structure, interaction_workflow_limit=2)
        top = plan["workflowsForTopTargets"]
        assert top["total"] == 2
        steps = [s["step"] for s in top["steps"]]
        assert steps == list(range(1, len(steps) + 1))
        assert all(s["action"] not in ("click", "screenshot") for s in top["steps"])
        serialized = top["batch"]["serialized"]
        assert serialized["mcp"] + serialized["eval"] == serialized["total"]

    def test_without_tree(self, state_capture):
        plan = build_interaction_plan(None, coerce_state_capture(state_capture))
        assert plan["targets"] == []
        assert plan["recommendations"] is None
        assert plan["stateMatrix"] == {CTA_PATH: ["default", "hover", "focusVisible"]}

    def test_state_matrix_merges_fallback(self):
        matrix = build_state_matrix({
            "captured": {"states": {".a": {"states": {"default": {}, "hover": {}}}}},
            "fallback": {".a": {"states": {"hover": {}, "focus": {}}}, ".b": {"states": {}}},
        })
        assert matrix == {".a": ["default", "hover", "focus"]}


class TestActions:
    def test_button_checklist(self):
        actions = build_recommendation_actions(
            {"selector": ".cta", "tag": "button", "semanticRole": "button"}, "rec-1",
        )
        assert [a["action"] for a in actions] == [
            "snapshot", "scroll_into_view", "capture_default",
            "hover", "capture_hover", "diff_hover",
            "focus", "capture_focus", "diff_focus",
            "click", "capture_active", "diff_active",
            "screenshot",
        ]
        assert actions[3]["mcpTool"]["name"] == TOOL_HOVER
        assert actions[9]["mcpTool"]["name"] == TOOL_CLICK
        assert actions[2]["stateKey"] == "rec-1-default"
        assert '".cta"' in actions[1]["script"]

    def test_plain_box_checklist(self):
        actions = build_recommendation_actions({"selector": "div.box", "tag": "div"}, "rec-2")
        assert [a["action"] for a in actions] == [
            "snapshot", "scroll_into_view", "capture_default", "screenshot",
        ]

    @pytest.mark.parametrize("target", [{}, {"selector": ""}])
    def test_no_selector(self, target):
        assert build_recommendation_actions(target, "rec-1") == []
