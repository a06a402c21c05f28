"""Tests for blueprint/validator.py — blueprint quality rules."""

from factories import make_node
from replica.blueprint.validator import (
    validate_blueprint,
    validate_bounds,
    validate_components,
    validate_interaction,
    validate_uids,
)
from replica.evidence.schemas import BuildOptions


class TestUids:
    def test_duplicate_uid_warns(self):
        tree = make_node("n1", children=[make_node("n2"), make_node("n2")])
        warnings = []
        stats = validate_uids(tree, warnings)
        assert stats == {"nodeCount": 3, "maxDepth": 1}
        assert [w["rule"] for w in warnings] == ["duplicate_uid"]
        assert warnings[0]["uid"] == "n2"

    def test_empty_tree(self):
        warnings = []
        assert validate_uids(None, warnings) == {"nodeCount": 0, "maxDepth": 0}
        assert warnings == []


class TestBudgets:
    def test_budget_overrun_reported(self):
        tree = make_node("n1", children=[make_node("n2", children=[make_node("n3")])])
        report = validate_blueprint({"tree": tree}, BuildOptions(max_nodes=2, max_depth=1))
        assert report["warningsByRule"] == {"node_budget_exceeded": 1, "depth_budget_exceeded": 1}


class TestBounds:
    def test_child_overflowing_parent(self):
        tree = make_node("p", width=100, height=100, children=[make_node("c", x=50, width=100)])
        warnings = []
        validate_bounds(tree, None, warnings)
        assert [w["uid"] for w in warnings] == ["c"]
        assert warnings[0]["rule"] == "bounds_overflow"

    def test_tolerance(self):
        tree = make_node("p", width=100, height=100, children=[make_node("c", x=2, width=100)])
        warnings = []
        validate_bounds(tree, None, warnings)
        assert warnings == []

    def test_positioned_child_exempt(self):
        tree = make_node("p", width=100, height=100, children=[
            make_node("c", x=-50, width=300, layout={"position": "absolute"}),
        ])
        warnings = []
        validate_bounds(tree, None, warnings)
        assert warnings == []

    def test_clipping_parent_exempts_children(self):
        tree = make_node("p", width=100, height=100, layout={"overflow": "hidden"},
                         children=[make_node("c", x=500)])
        warnings = []
        validate_bounds(tree, None, warnings)
        assert warnings == []


class TestComponentsAndTargets:
    def test_unbound_and_unknown(self):
        warnings = []
        report = validate_components(
            [{"id": "cmp-1", "nodeIds": ["n1"]}, {"id": "cmp-2", "nodeIds": []}],
            [{"id": "section-1", "components": ["cmp-1", "cmp-9"]}],
            warnings,
        )
        assert report == {"componentCount": 2, "unboundCount": 1, "unboundIds": ["cmp-2"], "bindingRate": 0.5}
        assert warnings[0]["rule"] == "section_unknown_component"
        assert "cmp-9" in warnings[0]["detail"]

    def test_no_components(self):
        report = validate_components([], [], [])
        assert report["bindingRate"] == 0.0

    def test_duplicate_target(self):
        warnings = []
        validate_interaction({"targets": [{"nodeId": "n1"}, {"nodeId": "n1"}, {"selector": ".a"}]}, warnings)
        assert [w["rule"] for w in warnings] == ["duplicate_target"]

    def test_report_shape(self):
        report = validate_blueprint({})
        assert report == {
            "tree": {"nodeCount": 0, "maxDepth": 0},
            "components": {"componentCount": 0, "unboundCount": 0, "unboundIds": [], "bindingRate": 0.0},
            "warningCount": 0,
            "warningsByRule": {},
            "warnings": [],
        }
