"""Tests for synth/responsive.py — @media overrides from viewport snapshots."""

from replica.synth import build_responsive_overrides, render_media_blocks
from replica.synth.responsive import diff_viewport, pick_baseline, property_sort_key


def _rules(block):
    return {rule["selector"]: rule["declarations"] for rule in block["rules"]}


class TestBaseline:
    def test_desktop_preferred(self):
        layouts = {"wide": {"viewport": {"width": 1920}}, "desktop": {"viewport": {"width": 1280}}}
        assert pick_baseline(layouts) == "desktop"

    def test_widest_fallback(self):
        layouts = {"tablet": {"viewport": {"width": 768}}, "laptop": {"viewport": {"width": 1440}}}
        assert pick_baseline(layouts) == "laptop"
        assert pick_baseline({}) is None


class TestBuildResponsiveOverrides:
    def test_mobile_block(self, viewport_layouts):
        (block,) = build_responsive_overrides(viewport_layouts)
        assert block["viewport"] == "mobile"
        assert block["maxWidth"] == 375
        rules = _rules(block)
        assert rules["#top > nav"] == {"display": "none", "flex-direction": "column"}
        assert rules["body > div.features"] == {"grid-template-columns": "minmax(0, 1fr)"}
        assert rules["body > section.hero"] == {"padding": "32px 16px"}

    def test_only_differing_properties(self, viewport_layouts):
        (block,) = build_responsive_overrides(viewport_layouts)
        for decls in _rules(block).values():
            assert "gap" not in decls
            assert "flex-wrap" not in decls
            assert "max-width" not in decls

    def test_display_none_protected(self, viewport_layouts):
        (block,) = build_responsive_overrides(viewport_layouts)
        # layoutContainers reports display:block after visibility reported none
        assert _rules(block)["#top > nav"]["display"] == "none"

    def test_identical_viewports_produce_nothing(self, viewport_layouts):
        layouts = {"desktop": viewport_layouts["desktop"],
                   "tablet": dict(viewport_layouts["desktop"], viewport={"width": 768, "height": 1024})}
        assert build_responsive_overrides(layouts) == []

    def test_needs_two_layouts(self, viewport_layouts):
        assert build_responsive_overrides({"desktop": viewport_layouts["desktop"]}) == []
        assert build_responsive_overrides(None) == []

    def test_wider_than_baseline_skipped(self, viewport_layouts):
        wide = dict(viewport_layouts["mobile"], viewport={"width": 1920, "height": 1080})
        assert build_responsive_overrides({"desktop": viewport_layouts["desktop"], "wide": wide}) == []

    def test_widest_first(self, viewport_layouts):
        tablet = dict(viewport_layouts["mobile"], viewport={"width": 768, "height": 1024})
        layouts = dict(viewport_layouts, tablet=tablet)
        assert [b["maxWidth"] for b in build_responsive_overrides(layouts)] == [768, 375]

    def test_selector_map(self, viewport_layouts):
        (block,) = build_responsive_overrides(viewport_layouts, {"#top > nav": '[data-se-id="n3"]'})
        assert [r["selector"] for r in block["rules"]] == ['[data-se-id="n3"]']

    def test_equivalent_grid_tracks_not_emitted(self):
        base = {"viewport": {"width": 1280},
                "gridLayouts": [{"selector": ".g", "rect": {"width": 1240}, "gridTemplateColumns": "600px 600px",
                                 "gap": "40px"}]}
        narrow = {"viewport": {"width": 1024},
                  "gridLayouts": [{"selector": ".g", "rect": {"width": 984}, "gridTemplateColumns": "472px 472px",
                                   "gap": "40px"}]}
        assert build_responsive_overrides({"desktop": base, "laptop": narrow}) == []

    def test_pixel_rows_skipped(self):
        base = {"viewport": {"width": 1280},
                "gridLayouts": [{"selector": ".g", "gridTemplateRows": "200px"}]}
        narrow = {"viewport": {"width": 375},
                  "gridLayouts": [{"selector": ".g", "gridTemplateRows": "120px 120px"}]}
        assert build_responsive_overrides({"desktop": base, "mobile": narrow}) == []


class TestDiffViewport:
    def test_missing_baseline_record(self):
        baseline = {"flexLayouts": []}
        layout = {"flexLayouts": [{"selector": ".new", "flexDirection": "column"}]}
        assert diff_viewport(baseline, layout) == []

    def test_whitespace_insensitive(self):
        baseline = {"layoutContainers": [{"selector": ".c", "sizing": {"padding": "8px  16px"}}]}
        layout = {"layoutContainers": [{"selector": ".c", "sizing": {"padding": "8px 16px"}}]}
        assert diff_viewport(baseline, layout) == []


class TestRendering:
    def test_property_order(self):
        props = ["padding", "gap", "display", "align-items", "flex-direction"]
        assert sorted(props, key=property_sort_key) == [
            "display", "flex-direction", "align-items", "gap", "padding",
        ]

    def test_render_media_blocks(self):
        blocks = [{"viewport": "mobile", "maxWidth": 375, "rules": [
            {"selector": ".a", "declarations": {"display": "none"}},
        ]}]
        assert render_media_blocks(blocks) == "@media (max-width: 375px) {\n  .a {\n    display: none;\n  }\n}"
        assert render_media_blocks([]) == ""
