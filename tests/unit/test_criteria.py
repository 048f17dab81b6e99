"""
Unit tests for criteria pushdown discovery.
"""

from fedsearch.criteria import And, Eq, Gt, In, Or, and_, discover_equality_filters


def test_collects_string_equality_and_membership():
    criteria = And(
        Eq("type", "product"),
        In("tags", ["red", "blue"]),
        Eq("title", "ignored, not a pushdown field"),
    )
    assert discover_equality_filters(criteria) == {
        "type": ["product"],
        "tags": ["red", "blue"],
    }


def test_walks_nested_conjunctions_and_merges_values():
    criteria = And(
        Eq("slug", "/a"),
        And(In("slug", ["/b"]), Eq("id", "doc1")),
    )
    assert discover_equality_filters(criteria) == {
        "slug": ["/a", "/b"],
        "id": ["doc1"],
    }


def test_ignores_disjunctions_and_non_string_equality():
    criteria = And(
        Or(Eq("type", "page"), Eq("type", "product")),
        Eq("type", 3),
        Gt("id", "m"),
    )
    assert discover_equality_filters(criteria) == {}


def test_nothing_to_discover_without_criteria():
    assert discover_equality_filters(None) == {}


def test_and_helper_skips_empty_clauses():
    assert and_(None, None) is None
    assert and_(Eq("type", "page"), None) == Eq("type", "page")
    assert and_(Eq("a", "1"), Eq("b", "2")) == And(Eq("a", "1"), Eq("b", "2"))
