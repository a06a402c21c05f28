"""Tests for evidence/resolver.py — snapshot selector resolution."""

import pytest

from factories import CTA_PATH, EMPTY_PATH, make_element
from replica.evidence.resolver import (
    SelectorError,
    SnapshotResolver,
    css_escape,
    element_classes,
    parse_compound_selector,
)


def _find(root, *path):
    node = root
    for index in path:
        node = node["children"][index]
    return node


class TestCssPath:
    def test_id_short_circuits(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.selector_for(_find(page, 0)) == "#top"

    def test_path_stops_at_id_ancestor(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.selector_for(_find(page, 0, 0)) == "#top > nav"
        assert resolver.selector_for(_find(page, 0, 0, 1)) == "#top > nav > a:nth-of-type(2)"

    def test_classes_and_nth_of_type_only_for_siblings(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.selector_for(_find(page, 1, 1)) == CTA_PATH
        assert resolver.selector_for(_find(page, 2)) == "body > div.features"
        assert resolver.selector_for(_find(page, 2, 2)) == "body > div.features > div.card:nth-of-type(3)"
        assert resolver.selector_for(_find(page, 3, 0)) == EMPTY_PATH

    def test_at_most_two_classes(self):
        child = make_element("span", classes=["a", "b", "c"])
        root = make_element("div", children=[child])
        assert SnapshotResolver(root).selector_for(child) == "div > span.a.b"

    def test_depth_limited(self):
        leaf = make_element("i")
        node = leaf
        for _ in range(7):
            node = make_element("div", children=[node])
        selector = SnapshotResolver(node).selector_for(leaf)
        assert selector.count(">") == 4

    def test_explicit_selector_wins(self):
        child = make_element("span", selector="#custom span")
        root = make_element("div", children=[child])
        assert SnapshotResolver(root).selector_for(child) == "#custom span"


class TestFindBySelector:
    def test_exact_generated_path(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.find_by_selector(CTA_PATH) is _find(page, 1, 1)

    def test_compound_fallback_first_match(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.find_by_selector(".cta") is _find(page, 1, 1)
        assert resolver.find_by_selector("div.card") is _find(page, 2, 0)
        assert resolver.find_by_selector("header#top") is _find(page, 0)

    def test_same_key_for_equivalent_selectors(self, page):
        resolver = SnapshotResolver(page)
        a = resolver.find_by_selector(".cta")
        b = resolver.find_by_selector(CTA_PATH)
        assert resolver.key_for(a) == resolver.key_for(b)

    def test_unsupported_or_malformed_resolve_to_none(self, page):
        resolver = SnapshotResolver(page)
        assert resolver.find_by_selector("main .missing") is None
        assert resolver.find_by_selector("div[") is None
        assert resolver.find_by_selector("") is None

    def test_empty_root(self):
        assert SnapshotResolver(None).find_by_selector(".cta") is None


class TestSelectorHelpers:
    def test_parse_compound(self):
        assert parse_compound_selector("button#go.cta.big") == ("button", "go", ["cta", "big"])
        assert parse_compound_selector("*.x") == (None, None, ["x"])
        assert parse_compound_selector("a b") == (None, None, [])

    @pytest.mark.parametrize("selector", ["", "a[href", "> a", "a +"])
    def test_parse_compound_rejects(self, selector):
        with pytest.raises(SelectorError):
            parse_compound_selector(selector)

    def test_css_escape(self):
        assert css_escape("a:b") == "a\\:b"
        assert css_escape("1col") == "\\31 col"

    def test_class_name_string(self):
        assert element_classes({"className": "a  b"}) == ["a", "b"]
