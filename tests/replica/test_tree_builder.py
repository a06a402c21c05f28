"""Tests for nodes/tree_builder.py — IR node tree construction."""

from factories import make_element
from replica.blueprint.token_refs import build_var_refs
from replica.evidence.indices import build_indices
from replica.evidence.resolver import SnapshotResolver
from replica.evidence.schemas import BuildOptions, coerce_components, coerce_state_capture
from replica.nodes import build_tree, walk_tree
from replica.nodes.tree_builder import derive_semantic_role, is_visible, sanitize_svg_markup


def _build(page, components=None, state_capture=None, **options):
    resolver = SnapshotResolver(page)
    indices = build_indices(
        coerce_components(components or {}), coerce_state_capture(state_capture), None, resolver,
    )
    return build_tree(page, indices, BuildOptions(**options), resolver)


def _by_tag(tree, tag):
    return [node for node, _ in walk_tree(tree) if node["tag"] == tag]


class TestTraversal:
    def test_uids_unique_and_preorder(self, page):
        tree, ctx = _build(page)
        uids = [node["uid"] for node, _ in walk_tree(tree)]
        assert len(uids) == len(set(uids)) == ctx.count == 14
        assert uids == [f"n{i}" for i in range(1, 15)]
        assert ctx.truncated is False

    def test_node_budget_truncates(self, page):
        tree, ctx = _build(page, max_nodes=3)
        assert [node["uid"] for node, _ in walk_tree(tree)] == ["n1", "n2", "n3"]
        assert ctx.truncated is True

    def test_depth_budget(self, page):
        tree, ctx = _build(page, max_depth=1)
        depths = [depth for _, depth in walk_tree(tree)]
        assert max(depths) == 1
        assert ctx.count == 5
        assert ctx.max_depth_seen == 1

    def test_skip_tags(self, page):
        tree, _ = _build(page, skip_tags=["footer"])
        assert not _by_tag(tree, "footer")

    def test_tiny_and_hidden_leaves_dropped(self):
        root = make_element("div", 0, 0, 500, 500, children=[
            make_element("span", 0, 0, 4, 4, text="tiny"),
            make_element("span", 0, 0, 50, 20, text="hidden", style={"visibility": "hidden"}),
            make_element("span", 0, 0, 50, 20, text="clear", style={"opacity": "0"}),
            make_element("span", 0, 0, 50, 20, text="kept"),
        ])
        tree, _ = build_tree(root)
        assert [c["text"] for c in tree["children"]] == ["kept"]

    def test_empty_root(self):
        tree, ctx = build_tree(None)
        assert tree is None
        assert ctx.count == 0


class TestEnrichment:
    def test_identity_and_attributes(self, page):
        tree, _ = _build(page)
        header = _by_tag(tree, "header")[0]
        assert header["domId"] == "top"
        assert header["selector"] == "#top"
        home = _by_tag(tree, "a")[0]
        assert home["href"] == "/"
        assert home["text"] == "Home"
        button = _by_tag(tree, "button")[0]
        assert button["buttonType"] == "button"
        assert button["rect"] == {"x": 560, "y": 400, "width": 160, "height": 48}

    def test_text_only_on_leaves(self, page):
        page["children"][1]["text"] = "Hero copy"
        tree, _ = _build(page)
        section = _by_tag(tree, "section")[0]
        assert "text" not in section
        assert _by_tag(tree, "h1")[0]["text"] == "Build faster"

    def test_component_bound_by_identity(self, page, components):
        tree, _ = _build(page, components)
        button = _by_tag(tree, "button")[0]
        assert button["component"]["id"] == "cmp-1"
        assert button["component"]["variant"] == "primary"
        assert button["semanticRole"] == "button"
        assert button["semanticSource"] == "component"
        home = _by_tag(tree, "a")[0]
        assert home["component"]["type"] == "navItem"
        assert home["semanticRole"] == "nav-item"

    def test_state_evidence(self, page, state_capture):
        tree, _ = _build(page, state_capture=state_capture)
        state = _by_tag(tree, "button")[0]["state"]
        assert state["hasInteractiveStates"] is True
        assert state["keyChanges"] == ["backgroundColor"]
        assert state["capturedStates"] == ["default", "hover", "focusVisible"]
        assert state["pseudo"]["after"]["content"] == '"→"'

    def test_heading_and_styles(self, page):
        tree, _ = _build(page)
        h1 = _by_tag(tree, "h1")[0]
        assert h1["headingLevel"] == 1
        assert h1["typography"]["fontSize"] == "56px"
        assert h1["semanticRole"] == "heading"
        features = _by_tag(tree, "div")[0]
        assert features["layout"]["grid"]["columns"] == "400px 400px 400px"

    def test_styles_can_be_disabled(self, page):
        tree, _ = _build(page, include_styles=False, include_text=False)
        for node, _ in walk_tree(tree):
            assert "layout" not in node
            assert "text" not in node

    def test_var_refs(self, page):
        resolver = SnapshotResolver(page)
        var_map = {"#2563EB": {"varName": "--brand"}}
        tree, _ = build_tree(page, {}, BuildOptions(), resolver, var_map)
        button = _by_tag(tree, "button")[0]
        assert button["varRefs"] == {"backgroundColor": "--brand"}

    def test_icon_hint(self):
        icon_button = make_element(
            "button", 0, 0, 24, 24, attributes={"aria-label": "Close"},
            svg={"viewBox": "0 0 24 24", "pathCount": 1, "rect": {"width": 24, "height": 24},
                 "markup": '<svg onclick="x()"><path d="M0 0"/><script>bad()</script></svg>'},
        )
        tree, _ = build_tree(make_element("div", 0, 0, 200, 200, children=[icon_button]))
        icon = tree["children"][0]["icon"]
        assert icon["viewBox"] == "0 0 24 24"
        assert "script" not in icon["markup"]
        assert "onclick" not in icon["markup"]


class TestSemanticHelpers:
    def test_role_precedence(self):
        assert derive_semantic_role("div", "dialog", "card") == ("card", "component")
        assert derive_semantic_role("div", "dialog", None) == ("dialog", "attribute")
        assert derive_semantic_role("nav", None, None) == ("navigation", "tag")
        assert derive_semantic_role("span", None, None) == ("span", "tag")

    def test_is_visible(self):
        assert is_visible({"style": {}}, {"width": 1, "height": 1})
        assert not is_visible({"style": {"display": "none"}}, {"width": 1, "height": 1})
        assert not is_visible({"style": {}}, {"width": 0, "height": 1})

    def test_sanitize_svg(self):
        assert sanitize_svg_markup("<script>x</script>") is None
        assert sanitize_svg_markup(None) is None

    def test_var_refs_without_map(self):
        assert build_var_refs({"visual": {"color": "red"}}, None) is None
