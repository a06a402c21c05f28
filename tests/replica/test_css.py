"""Tests for synth/css.py and synth/declarations.py — replica stylesheet."""

import re

import pytest

from factories import make_node
from replica.blueprint.assembler import build_blueprint
from replica.synth import SynthOptions, build_css_decls, infer_centering, normalize_grid_columns, to_replica_css
from replica.synth.css import (
    MISSING_TREE_CSS,
    build_pseudo_decls,
    build_state_rules,
    coerce_synth_options,
    walk_limited,
)
from replica.synth.declarations import (
    INITIAL_VALUES,
    box_to_shorthand,
    is_zero_box,
    push_decl,
    render_rule,
    to_css_prop,
)

_DECL_RE = re.compile(r"^\s+([a-z-]+): (.+);$")


@pytest.fixture
def blueprint(page, structure, components, state_capture):
    return build_blueprint({
        "dom": page, "structure": structure, "components": components, "state-capture": state_capture,
    })


def _rule(css, selector):
    start = css.index(f"{selector} {{\n")
    return css[start:css.index("\n}", start) + 2]


class TestDeclarationHelpers:
    def test_to_css_prop(self):
        assert to_css_prop("backgroundColor") == "background-color"
        assert to_css_prop("border-top") == "border-top"
        assert to_css_prop("--brand") == "--brand"

    def test_push_decl_prunes_initial_values(self):
        decls = []
        push_decl(decls, "position", "static")
        push_decl(decls, "backgroundColor", "rgba(0, 0, 0, 0)")
        push_decl(decls, "opacity", "1")
        push_decl(decls, "color", "  ")
        push_decl(decls, "gap", None)
        push_decl(decls, "opacity", "0.5")
        assert decls == [("opacity", "0.5")]

    def test_box_shorthand(self):
        assert box_to_shorthand({"top": "1px", "right": "2px", "bottom": "3px", "left": "4px"}) == "1px 2px 3px 4px"
        assert box_to_shorthand({"top": "8px"}) == "8px 8px 8px 8px"
        assert box_to_shorthand(None) is None

    def test_zero_box(self):
        assert is_zero_box({"top": "0px", "left": None})
        assert not is_zero_box({"top": "0px", "left": "auto"})
        assert not is_zero_box({"top": "1px"})

    def test_render_rule(self):
        assert render_rule(".a", [("color", "red")]) == ".a {\n  color: red;\n}"


class TestCentering:
    def test_equal_margins(self):
        assert infer_centering(960, {"left": "240px", "right": "238px"})
        assert infer_centering("960px", {"left": "auto", "right": "auto"})

    def test_not_centred(self):
        assert not infer_centering(960, {"left": "10px", "right": "10px"})
        assert not infer_centering(960, {"left": "240px", "right": "200px"})
        assert not infer_centering(None, {"left": "auto", "right": "auto"})
        assert not infer_centering(960, None)

    def test_decls_use_auto_margins(self):
        node = make_node("n1", width=960, constraints={
            "size": {"maxWidth": 960},
            "spacing": {"margin": {"top": "0px", "right": "238px", "bottom": "0px", "left": "240px"}},
        })
        decls = dict(build_css_decls(node))
        assert decls["margin-left"] == "auto"
        assert decls["margin-right"] == "auto"
        assert "margin" not in decls
        assert "margin-top" not in decls
        assert decls["max-width"] == "960px"

    def test_small_margins_stay_literal(self):
        node = make_node("n1", constraints={
            "size": {"maxWidth": 960},
            "spacing": {"margin": {"top": "0px", "right": "10px", "bottom": "0px", "left": "10px"}},
        })
        decls = dict(build_css_decls(node))
        assert decls["margin"] == "0px 10px 0px 10px"
        assert "margin-left" not in decls

    def test_centering_can_be_disabled(self):
        node = make_node("n1", constraints={
            "size": {"maxWidth": 960},
            "spacing": {"margin": {"top": "0px", "right": "auto", "bottom": "0px", "left": "auto"}},
        })
        decls = dict(build_css_decls(node, {"center_containers": False}))
        assert decls["margin"] == "0px auto 0px auto"


class TestGridNormalization:
    def test_even_tracks_filling_container(self):
        assert normalize_grid_columns("317px 317px", 640, "normal 6px") == "repeat(2, minmax(0, 1fr))"
        assert normalize_grid_columns("400px 400px 400px", 1280, "40px") == "repeat(3, minmax(0, 1fr))"

    def test_uneven_tracks_unchanged(self):
        assert normalize_grid_columns("300px 900px", 1200) == "300px 900px"

    def test_container_mismatch_unchanged(self):
        assert normalize_grid_columns("300px 300px", 1200) == "300px 300px"

    def test_single_track(self):
        assert normalize_grid_columns("343px", 343) == "minmax(0, 1fr)"
        assert normalize_grid_columns("200px", 200) == "200px"

    def test_non_pixel_unchanged(self):
        assert normalize_grid_columns("1fr 1fr", 640) == "1fr 1fr"
        assert normalize_grid_columns("320px 320px", None) == "320px 320px"

    def test_decls_use_content_width(self):
        node = make_node("g", width=704, layout={"display": "grid", "grid": {
            "columns": "317px 317px", "rows": "200px 200px", "gap": "6px",
        }}, constraints={"spacing": {"padding": {"top": "0px", "right": "32px", "bottom": "0px", "left": "32px"}}})
        decls = dict(build_css_decls(node))
        assert decls["grid-template-columns"] == "repeat(2, minmax(0, 1fr))"
        assert "grid-template-rows" not in decls
        assert decls["padding"] == "0px 32px 0px 32px"

    def test_pixel_rows_kept_on_request(self):
        node = make_node("g", layout={"display": "grid", "grid": {"columns": "1fr", "rows": "200px"}})
        assert dict(build_css_decls(node, {"keep_pixel_rows": True}))["grid-template-rows"] == "200px"
        assert dict(build_css_decls(node, {"normalize_grids": False}))["grid-template-columns"] == "1fr"


class TestNodeDecls:
    def test_group_order(self):
        node = make_node("n1", layout={"display": "flex", "flex": {"direction": "column", "gap": "8px"}},
                         constraints={"spacing": {"gap": "99px"}},
                         typography={"fontSize": "16px"},
                         visual={"color": "red", "border": {"width": "1px", "style": "solid", "color": "red"}})
        assert build_css_decls(node) == [
            ("display", "flex"),
            ("flex-direction", "column"),
            ("gap", "8px"),
            ("font-size", "16px"),
            ("color", "red"),
            ("border", "1px solid red"),
        ]

    def test_per_side_border(self):
        node = make_node("n1", visual={"border": {"top": None, "bottom": {"width": "2px", "style": "solid",
                                                                         "color": "blue"}}})
        assert build_css_decls(node) == [("border-bottom", "2px solid blue")]

    def test_transition(self):
        node = make_node("n1", visual={"transition": {"property": "all", "duration": "0.2s",
                                                      "timingFunction": "ease"}})
        assert dict(build_css_decls(node))["transition-duration"] == "0.2s"

    def test_default_transition_parts_pruned(self):
        node = make_node("n1", visual={"transition": {"property": "all", "duration": "0.2s",
                                                      "timingFunction": "ease", "delay": "0s"}})
        assert build_css_decls(node) == [("transition-duration", "0.2s")]

    def test_non_default_transition_parts_kept(self):
        node = make_node("n1", visual={"transition": {"property": "opacity", "duration": "0.2s",
                                                      "timingFunction": "linear", "delay": "0.1s"}})
        assert build_css_decls(node) == [
            ("transition-property", "opacity"),
            ("transition-duration", "0.2s"),
            ("transition-timing-function", "linear"),
            ("transition-delay", "0.1s"),
        ]

    def test_computed_normal_font_weight_pruned(self):
        assert build_css_decls(make_node("n1", typography={"fontWeight": "400"})) == []
        assert build_css_decls(make_node("n1", typography={"fontWeight": "700"})) == [("font-weight", "700")]

    def test_empty(self):
        assert build_css_decls(None) == []

    def test_pseudo_decls(self):
        assert build_pseudo_decls({"content": '""', "position": "absolute", "top": "0px",
                                   "border": {"width": "1px", "style": "solid", "color": "red"}}) == [
            ("content", '""'), ("position", "absolute"), ("top", "0px"), ("border", "1px solid red"),
        ]
        assert build_pseudo_decls({"content": "none"}) is None
        assert build_pseudo_decls(None) is None


class TestToReplicaCss:
    def test_missing_tree(self):
        assert to_replica_css({}) == MISSING_TREE_CSS + "\n"
        assert to_replica_css(None).startswith(MISSING_TREE_CSS)

    def test_preamble(self, blueprint):
        css = to_replica_css(blueprint)
        lines = css.splitlines()
        assert lines[1] == "* { box-sizing: border-box; }"
        assert lines[2] == "html, body { margin: 0; padding: 0; }"
        assert lines[3] == '[data-se-id="n1"] { min-height: 100vh; }'

    def test_no_initial_values_emitted(self, blueprint):
        css = to_replica_css(blueprint)
        for line in css.splitlines():
            match = _DECL_RE.match(line)
            if match:
                prop, value = match.groups()
                assert value not in INITIAL_VALUES.get(prop, ()), line

    def test_grid_rule(self, blueprint):
        rule = _rule(to_replica_css(blueprint), '[data-se-id="n9"]')
        assert "grid-template-columns: repeat(3, minmax(0, 1fr));" in rule
        assert "grid-template-rows" not in rule
        assert rule.count("gap: 40px;") == 1

    def test_state_rules(self, blueprint, state_capture):
        css = to_replica_css(blueprint, state_capture)
        assert _rule(css, '[data-se-id="n8"]:hover') == (
            '[data-se-id="n8"]:hover {\n  background-color: rgb(29, 78, 216);\n}'
        )
        assert "outline: 2px solid rgb(147, 197, 253);" in _rule(css, '[data-se-id="n8"]:focus-visible')
        after = _rule(css, '[data-se-id="n8"]::after')
        assert after.splitlines()[1] == '  content: "→";'
        assert "width: 200px" not in css

    def test_state_limit(self, blueprint, state_capture):
        css = to_replica_css(blueprint, state_capture, state_limit=0)
        assert ":hover" not in css

    def test_custom_data_attr(self, blueprint):
        css = to_replica_css(blueprint, data_attr="data-r")
        assert '[data-r="n1"]' in css
        assert "data-se-id" not in css

    def test_node_budget(self, blueprint):
        css = to_replica_css(blueprint, max_nodes=2)
        assert '[data-se-id="n3"]' not in css

    def test_media_blocks_last(self, blueprint, viewport_layouts):
        css = to_replica_css(blueprint, None, viewport_layouts)
        media = css.index("@media (max-width: 375px)")
        assert css.rindex('[data-se-id="n14"]') < media


class TestStateRules:
    def test_default_values_kept_when_they_differ_from_base(self):
        capture = {"captured": {"states": {".btn": {"states": {
            "default": {"fontWeight": "700", "opacity": "0.6"},
            "hover": {"fontWeight": "400", "opacity": "1"},
        }}}}}
        rules = build_state_rules(capture, {".btn": "n1"}, coerce_synth_options())
        assert rules == ['[data-se-id="n1"]:hover {\n  font-weight: 400;\n  opacity: 1;\n}']


class TestWalkLimited:
    def test_depth_and_count(self):
        tree = make_node("a", children=[make_node("b", children=[make_node("c")]), make_node("d")])
        assert [n["uid"] for n in walk_limited(tree, 10, 1)] == ["a", "b", "d"]
        assert [n["uid"] for n in walk_limited(tree, 2, 10)] == ["a", "b"]

    def test_options_model(self):
        opts = SynthOptions(max_nodes=3, bogus=True)
        assert opts.max_nodes == 3
        assert opts.data_attr == "data-se-id"
