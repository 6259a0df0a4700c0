"""
Tests for the paginated query engine and listing filters.
"""

from datetime import datetime, timedelta, timezone

import pytest

from petpromise.data_access.filters import Filter, exclude_owner, only_owner
from petpromise.services.query import paginate, parse_positive_int

from fakes import InMemoryStore

pytestmark = pytest.mark.unit


def _pets(count: int) -> InMemoryStore:
    store = InMemoryStore("pets")
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(count):
        store.seed({
            "id": f"p{i:02d}",
            "ownerEmail": "a@example.com" if i % 2 else "b@example.com",
            "name": f"Pet {i}",
            "createdAt": (start + timedelta(minutes=i)).isoformat(),
        })
    return store


class TestParsePositiveInt:
    @pytest.mark.parametrize("value, expected", [
        ("3", 3), (4, 4), (None, 7), ("abc", 7), ("0", 7), ("-2", 7), ("", 7),
    ])
    def test_falls_back_to_default(self, value, expected):
        assert parse_positive_int(value, 7) == expected


class TestPaginate:
    def test_first_page(self):
        page = paginate(_pets(25), None, 1, 10, default_limit=10)

        assert len(page.items) == 10
        assert page.total_count == 25
        assert page.total_pages == 3
        assert page.has_more is True

    def test_last_page(self):
        page = paginate(_pets(25), None, 3, 10, default_limit=10)

        assert len(page.items) == 5
        assert page.has_more is False
        assert page.total_pages == 3

    def test_newest_first(self):
        page = paginate(_pets(25), None, 1, 3, default_limit=10)

        assert [p["id"] for p in page.items] == ["p24", "p23", "p22"]

    def test_defaults_used_for_bad_input(self):
        page = paginate(_pets(25), None, "x", "y", default_limit=8)

        assert page.page == 1
        assert page.limit == 8
        assert len(page.items) == 8

    def test_page_past_end_is_empty(self):
        page = paginate(_pets(5), None, 4, 10, default_limit=10)

        assert page.items == []
        assert page.total_count == 5

    def test_count_reflects_filter(self):
        page = paginate(_pets(25), only_owner("a@example.com"), 1, 100, default_limit=10)

        assert page.total_count == 12
        assert all(p["ownerEmail"] == "a@example.com" for p in page.items)


class TestFilter:
    def test_owner_modes_are_complementary(self):
        item = {"ownerEmail": "a@example.com"}

        assert only_owner("a@example.com").matches(item)
        assert not exclude_owner("a@example.com").matches(item)

    def test_contains_is_case_insensitive(self):
        assert Filter(contains={"name": "BUD"}).matches({"name": "Little buddy"})
        assert not Filter(contains={"name": "bud"}).matches({"name": None})

    def test_merged_combines_predicates(self):
        merged = Filter(equals={"adopted": False}).merged(Filter(equals={"category": "cat"}))

        assert merged.matches({"adopted": False, "category": "cat"})
        assert not merged.matches({"adopted": False, "category": "dog"})

    def test_empty_filter_has_no_condition(self):
        assert Filter().to_condition() is None
