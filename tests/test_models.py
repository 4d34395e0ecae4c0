"""Tests for data models."""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from phrase_trainer.models import (
    ContentGeneration,
    Item,
    LearningRecord,
    Rating,
    ReviewCard,
    SessionStats,
)

from conftest import make_item


class TestRating:
    def test_quality(self):
        assert [r.quality for r in Rating] == [0, 2, 4, 5]

    def test_from_value(self):
        assert Rating("easy") is Rating.EASY


class TestItem:
    def test_dict_roundtrip(self):
        item = make_item("g1", "GR001")
        assert Item.from_dict(item.to_dict()) == item

    def test_frozen(self):
        item = make_item("g1", "GR001")
        with pytest.raises(dataclasses.FrozenInstanceError):
            item.code = "X"


class TestReviewCard:
    def test_join_without_record(self):
        card = ReviewCard.join(make_item("g1", "GR001"), None)
        assert card.item_id == "g1"
        assert card.practice_count == 0
        assert card.last_practiced_at is None

    def test_join_with_record(self):
        when = datetime(2026, 1, 1, tzinfo=timezone.utc)
        card = ReviewCard.join(make_item("g1", "GR001"), LearningRecord("g1", 3, 75.0, when))
        assert card.practice_count == 3
        assert card.accuracy_score == 75.0
        assert card.last_practiced_at == when

    def test_has_no_presentation_state(self):
        names = {f.name for f in dataclasses.fields(ReviewCard)}
        assert "flipped" not in names


class TestContentGeneration:
    def test_lookup_case_insensitive(self):
        gen = ContentGeneration(items=(make_item("g1", "GR001"),), fetched_at="t")
        assert gen.lookup("gr001").id == "g1"
        assert gen.lookup(" GR001 ").id == "g1"

    def test_lookup_missing(self):
        gen = ContentGeneration(items=(make_item("g1", "GR001"),), fetched_at="t")
        assert gen.lookup("nope") is None

    def test_first_duplicate_code_wins(self):
        gen = ContentGeneration(
            items=(make_item("a", "DUP"), make_item("b", "dup")), fetched_at="t"
        )
        assert gen.lookup("DUP").id == "a"

    def test_dict_roundtrip(self):
        gen = ContentGeneration(
            items=(make_item("g1", "GR001"), make_item("f1", "FD001", "food")),
            fetched_at="2026-10-19T00:00:00+00:00",
        )
        restored = ContentGeneration.from_dict(gen.to_dict())
        assert restored == gen
        assert restored.lookup("fd001").category == "food"


class TestSessionStats:
    def test_defaults(self):
        s = SessionStats()
        assert s.cards_reviewed == 0
        assert s.to_dict()["running_accuracy"] == 0.0
