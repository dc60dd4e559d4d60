"""Unit tests for page coercion, page arithmetic and search helpers."""
from __future__ import annotations

import re

import pytest

from scholaria.teaching.pagination import (
    MAX_LIMIT,
    PageRequest,
    matches_search,
    paginate_sequence,
    search_filter,
    total_pages,
)


@pytest.mark.parametrize(
    "page,limit,expected",
    [
        (None, None, (1, 10)),
        ("2", "25", (2, 25)),
        ("abc", "", (1, 10)),
        ("0", "-5", (1, 1)),
        (3, 10_000, (3, MAX_LIMIT)),
    ],
)
def test_from_query_coerces_values(page, limit, expected):
    req = PageRequest.from_query(page, limit)
    assert (req.page, req.limit) == expected


@pytest.mark.parametrize("total,limit,pages", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 5, 5)])
def test_total_pages_is_ceiling(total, limit, pages):
    assert total_pages(total, limit) == pages


def test_paginate_sequence_windows_and_overflow():
    items = list(range(23))
    page3 = paginate_sequence(items, PageRequest(page=3, limit=10))
    assert page3.items == [20, 21, 22]
    assert page3.meta() == {"page": 3, "limit": 10, "total": 23, "pages": 3}
    beyond = paginate_sequence(items, PageRequest(page=7, limit=10))
    assert beyond.items == []
    assert beyond.pages == 3


def test_matches_search_is_case_insensitive_substring():
    assert matches_search(None, ["anything"])
    assert matches_search("DATA", ["Big data", None])
    assert not matches_search("graph", ["Databases", None])


def test_search_filter_escapes_metacharacters():
    flt = search_filter("C++ (adv)", ["title", "code"])
    assert flt == {
        "$or": [
            {"title": {"$regex": re.escape("C++ (adv)"), "$options": "i"}},
            {"code": {"$regex": re.escape("C++ (adv)"), "$options": "i"}},
        ]
    }
    assert search_filter("", ["title"]) == {}
