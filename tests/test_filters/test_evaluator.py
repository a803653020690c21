"""Tests for in-process filter evaluation."""

import itertools

import pytest

from docstore.filters.ast import And, Comparison, Not
from docstore.filters.evaluator import compile_predicate, evaluate, values_equal
from docstore.filters.parser import parse_filter


def matches(expression, metadata):
    return evaluate(parse_filter(expression), metadata)


def test_equality_and_inequality():
    meta = {"country": "BG", "year": 2020}
    assert matches("country == 'BG'", meta)
    assert not matches("country == 'bg'", meta)
    assert matches("country != 'NL'", meta)
    assert matches("year == 2020.0", meta)


def test_ordering():
    meta = {"year": 2020, "name": "beta"}
    assert matches("year > 2019 && year <= 2020", meta)
    assert not matches("year < 2020", meta)
    assert matches("name > 'alpha'", meta)
    assert not matches("name >= 'gamma'", meta)


def test_mismatched_types_never_match():
    meta = {"year": "2020", "flag": True}
    assert not matches("year == 2020", meta)
    assert not matches("year > 1", meta)
    assert not matches("flag == 1", meta)
    assert matches("flag == true", meta)
    assert not matches("flag > 0", meta)


def test_missing_field():
    meta = {"country": "NL"}
    assert not matches("year == 2020", meta)
    assert not matches("year < 3000", meta)
    assert not matches("year IN (2020, 2023)", meta)
    assert matches("year != 2020", meta)
    assert matches("NOT(year == 2020)", meta)


def test_in_uses_strict_equality():
    assert matches("country IN ('BG', 'NL')", {"country": "NL"})
    assert not matches("country IN ('BG', 'NL')", {"country": "DE"})
    assert not matches("n IN (1, 2)", {"n": True})
    assert matches("n IN (1, 2)", {"n": 2.0})
    assert matches("n NOT IN (1, 2)", {"n": 3})


def test_values_equal():
    assert values_equal("a", "a")
    assert values_equal(1, 1.0)
    assert not values_equal(True, 1)
    assert not values_equal(0, False)
    assert not values_equal("1", 1)


def test_not_negates_whole_conjunction():
    a = Comparison("country", "==", "BG")
    b = Comparison("year", "==", 2020)
    node = Not(And(a, b))
    for country, year in itertools.product(["BG", "NL", None], [2020, 2023, None]):
        meta = {k: v for k, v in {"country": country, "year": year}.items() if v is not None}
        assert evaluate(node, meta) == (not (evaluate(a, meta) and evaluate(b, meta)))


def test_compile_predicate():
    predicate = compile_predicate(parse_filter("country == 'BG' && year == 2020"))
    assert predicate({"country": "BG", "year": 2020})
    assert not predicate({"country": "BG", "year": 2023})


def test_compile_predicate_none_accepts_all():
    assert compile_predicate(None)({})


def test_evaluate_is_pure():
    meta = {"country": "BG"}
    node = parse_filter("country == 'BG' || year > 1")
    evaluate(node, meta)
    assert meta == {"country": "BG"}


def test_evaluate_rejects_unknown_nodes():
    with pytest.raises(TypeError):
        evaluate("country == 'BG'", {})
