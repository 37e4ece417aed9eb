"""Tests de la pagination (valeurs dérivées, bornage) et de l'assainissement des recherches."""

from __future__ import annotations

import math

import pytest

from heritage.domain.pagination import Page, Pagination, clamp_limit, clamp_page
from heritage.infra.repo.search import like_pattern, sanitize_search_query

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_QUERY_LENGTH = 200


@pytest.mark.parametrize(
    ("total", "limit", "page"),
    [(0, 1, 1), (15, 10, 1), (15, 10, 2), (20, 10, 2), (21, 10, 3), (7, 3, 5), (100, 100, 1)],
)
def test_pagination_invariants(total: int, limit: int, page: int) -> None:
    """totalPages = ceil(total/limit), hasNext = page*limit < total, hasPrev = page > 1."""
    p = Pagination(page=page, limit=limit, total=total)
    assert p.total_pages == math.ceil(total / limit)
    assert p.has_next == (page * limit < total)
    assert p.has_prev == (page > 1)
    assert p.offset == (page - 1) * limit


def test_pagination_to_dict_shape() -> None:
    data = Pagination(page=2, limit=10, total=15).to_dict()
    assert data == {
        "page": 2,
        "limit": 10,
        "total": 15,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }


def test_page_map_keeps_pagination() -> None:
    page = Page([1, 2, 3], Pagination(page=1, limit=3, total=9))
    mapped = page.map(lambda n: n * 10)
    assert mapped.to_dict()["data"] == [10, 20, 30]
    assert mapped.pagination is page.pagination


def test_clamp_page_and_limit() -> None:
    assert clamp_page(None) == 1
    assert clamp_page("0") == 1
    assert clamp_page("-3") == 1
    assert clamp_page("abc") == 1
    assert clamp_page("4") == 4
    assert clamp_limit(None, DEFAULT_LIMIT, MAX_LIMIT) == DEFAULT_LIMIT
    assert clamp_limit("0", DEFAULT_LIMIT, MAX_LIMIT) == DEFAULT_LIMIT
    assert clamp_limit("5", DEFAULT_LIMIT, MAX_LIMIT) == 5
    assert clamp_limit(10_000, DEFAULT_LIMIT, MAX_LIMIT) == MAX_LIMIT


def test_sanitize_escapes_wildcards_and_quotes() -> None:
    assert sanitize_search_query("50%") == "50\\%"
    assert sanitize_search_query("a_b") == "a\\_b"
    assert sanitize_search_query("c:\\dir") == "c:\\\\dir"
    assert sanitize_search_query("l'été") == "l''été"


@pytest.mark.parametrize("query", ["50%", "a_b", "l'été", "c:\\dir", "100%_'\\x", "plain text"])
def test_sanitize_is_idempotent(query: str) -> None:
    once = sanitize_search_query(query)
    assert sanitize_search_query(once) == once


def test_sanitize_caps_length_and_rejects_non_strings() -> None:
    assert len(sanitize_search_query("x" * 500)) == MAX_QUERY_LENGTH
    assert sanitize_search_query(None) == ""
    assert sanitize_search_query(42) == ""
    assert sanitize_search_query("   ") == ""


def test_like_pattern_restores_single_quotes_for_bound_parameters() -> None:
    assert like_pattern(sanitize_search_query("l'été 50%")) == "%l'été 50\\%%"


def test_sanitize_reads_doubled_quote_as_escaped_quote() -> None:
    """Une paire `''` saisie est lue comme déjà échappée: elle équivaut à une apostrophe."""
    assert sanitize_search_query("''") == sanitize_search_query("'") == "''"
    assert like_pattern(sanitize_search_query("a''b")) == "%a'b%"
