"""
Tests for conditional (diff-before-write) updates and status transitions.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from petpromise.core.errors import BadRequest, NotFound
from petpromise.services.mutations import (
    apply_status_transition,
    conditional_update,
    normalize_value,
)

from fakes import InMemoryStore

pytestmark = pytest.mark.unit


@pytest.fixture
def pets():
    store = InMemoryStore("pets")
    store.seed({
        "id": "p1",
        "name": "Rex",
        "age": 3,
        "adopted": False,
        "weight": 12.5,
        "createdAt": "2024-01-01T00:00:00+00:00",
    })
    return store


class TestNormalizeValue:
    @pytest.mark.parametrize("left, right", [
        (Decimal("3"), 3),
        (Decimal("12.50"), 12.5),
        (3, "3"),
        (True, "true"),
        (None, None),
        (datetime(2024, 1, 1, tzinfo=timezone.utc), "2024-01-01T00:00:00+00:00"),
    ])
    def test_equal_after_normalization(self, left, right):
        assert normalize_value(left) == normalize_value(right)

    def test_booleans_and_numbers_differ(self):
        assert normalize_value(True) != normalize_value(1)

    def test_nested_values_compare_element_wise(self):
        stored = {"weight": Decimal("5.5"), "tags": [Decimal("1.5"), "calm"]}

        assert normalize_value(stored) == normalize_value({"tags": [1.5, "calm"], "weight": 5.5})
        assert normalize_value(stored) != normalize_value({"weight": 5.5, "tags": ["calm", 1.5]})

    def test_sets_ignore_order(self):
        assert normalize_value({"b", "a"}) == normalize_value({"a", "b"})


class TestConditionalUpdate:
    def test_identical_payload_is_a_no_op(self, pets):
        before = pets.get("p1")
        pets.calls.clear()

        result = conditional_update(pets, "p1", {"name": "Rex", "age": 3, "weight": 12.5})

        assert result.changed is False
        assert pets.writes() == []
        assert pets.get("p1") == before

    def test_only_listed_field_changes(self, pets):
        result = conditional_update(pets, "p1", {"name": "Rex", "age": 4})

        assert result.changed is True
        stored = pets.get("p1")
        assert stored["age"] == 4
        assert stored["name"] == "Rex"
        assert stored["weight"] == Decimal("12.5")
        assert stored["createdAt"] == "2024-01-01T00:00:00+00:00"

    def test_resending_nested_payload_is_a_no_op(self, pets):
        payload = {"attributes": {"weight": 5.5, "tags": [1.5, "calm"]}}

        first = conditional_update(pets, "p1", payload)
        pets.calls.clear()
        second = conditional_update(pets, "p1", payload)

        assert first.changed is True
        assert second.changed is False
        assert pets.writes() == []

    def test_new_field_counts_as_change(self, pets):
        result = conditional_update(pets, "p1", {"location": "Dhaka"})

        assert result.changed is True
        assert result.item["location"] == "Dhaka"

    def test_missing_document(self, pets):
        with pytest.raises(NotFound):
            conditional_update(pets, "nope", {"name": "x"})

    @pytest.mark.parametrize("payload", [None, {}])
    def test_empty_payload(self, pets, payload):
        with pytest.raises(BadRequest):
            conditional_update(pets, "p1", payload)

    def test_document_deleted_between_read_and_write(self, pets, monkeypatch):
        monkeypatch.setattr(pets, "set_fields", lambda *args, **kwargs: None)

        with pytest.raises(NotFound):
            conditional_update(pets, "p1", {"name": "Max"})


class TestApplyStatusTransition:
    def test_applies_allowed_field(self, pets):
        result = apply_status_transition(pets, "p1", {"adopted": bool}, {"adopted": True})

        assert result.changed is True
        assert pets.get("p1")["adopted"] is True

    def test_rejects_unlisted_fields(self, pets):
        with pytest.raises(BadRequest, match="name"):
            apply_status_transition(pets, "p1", {"adopted": bool}, {"adopted": True, "name": "x"})

        assert pets.writes() == []

    def test_rejects_wrong_type(self, pets):
        with pytest.raises(BadRequest, match="bool"):
            apply_status_transition(pets, "p1", {"adopted": bool}, {"adopted": "yes"})

    def test_same_value_is_a_no_op(self, pets):
        result = apply_status_transition(pets, "p1", {"adopted": bool}, {"adopted": False})

        assert result.changed is False
