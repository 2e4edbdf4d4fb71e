"""Tests for the heuristic fallback scorer.

The scorer is a pure function, so every test here runs without I/O.
"""

import random

import pytest

from fakes import make_product
from simreco.domain.services.fallback_svc import jaccard, pair_score, proximity, score_similar


@pytest.fixture
def abc():
    a = make_product("A", "electronics", 100.0, 4.5)
    b = make_product("B", "electronics", 110.0, 4.0)
    c = make_product("C", "books", 20.0, 4.8)
    return a, b, c


def test_category_match_dominates(abc):
    """B shares A's category and outranks C despite C's closer rating."""
    a, b, c = abc
    result = score_similar(a, [b, c], top_k=2)

    assert [i.product_id for i in result.items] == ["B", "C"]
    assert result.items[0].score > result.items[1].score
    assert result.source_product_id == "A"
    assert result.count == 2


def test_expected_weighted_score(abc):
    a, b, _ = abc
    expected = 0.4 + 0.3 * (1 - 10 / 110) + 0.15 * (1 - 0.5 / 4.5) + 0.0
    assert pair_score(a, b) == pytest.approx(expected)


def test_pure_and_order_independent(abc):
    a, b, c = abc
    extra = [make_product(f"X{i}", "electronics", 90.0 + i, 4.2) for i in range(10)]
    candidates = [b, c, *extra]

    first = score_similar(a, candidates, top_k=5)
    again = score_similar(a, candidates, top_k=5)
    shuffled = list(candidates)
    random.Random(7).shuffle(shuffled)
    reordered = score_similar(a, shuffled, top_k=5)

    assert first == again
    assert first == reordered


def test_excludes_self_and_duplicates(abc):
    a, b, c = abc
    result = score_similar(a, [a, b, b, c], top_k=10)

    ids = [i.product_id for i in result.items]
    assert "A" not in ids
    assert ids == ["B", "C"]


def test_ties_broken_by_ascending_id():
    src = make_product("S", "toys", 10.0, 3.0)
    twins = [make_product(pid, "toys", 12.0, 3.0) for pid in ("Z", "M", "Q")]

    result = score_similar(src, twins, top_k=3)

    assert [i.product_id for i in result.items] == ["M", "Q", "Z"]
    assert len({i.score for i in result.items}) == 1


def test_truncates_to_top_k_and_scores_in_range(abc):
    a, b, c = abc
    many = [make_product(f"P{i:02d}", "electronics", float(i + 1), float(i % 5)) for i in range(30)]

    result = score_similar(a, [b, c, *many], top_k=4)

    assert result.count == 4
    assert all(0.0 <= i.score <= 1.0 for i in result.items)
    scores = [i.score for i in result.items]
    assert scores == sorted(scores, reverse=True)


def test_top_k_zero_returns_empty(abc):
    a, b, c = abc
    assert score_similar(a, [b, c], top_k=0).items == []


def test_missing_numeric_features_contribute_nothing():
    assert proximity(None, 10.0) == 0.0
    assert proximity(0.0, 0.0) == 1.0
    assert proximity(50.0, 100.0) == pytest.approx(0.5)
    assert proximity(1.0, 1000.0) == pytest.approx(0.001)


def test_tag_jaccard_case_insensitive():
    assert jaccard(["Audio", "wireless"], ["audio"]) == pytest.approx(0.5)
    assert jaccard([], []) == 0.0
    assert jaccard(["a"], ["b"]) == 0.0


def test_identical_products_score_one():
    p = make_product("P1", "garden", 40.0, 4.0, ["hose"])
    twin = make_product("P2", "garden", 40.0, 4.0, ["hose"])
    assert pair_score(p, twin) == pytest.approx(1.0)
