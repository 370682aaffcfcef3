"""Tests for the deterministic fallback prompter."""

import pytest

from src.conversation.fallback_prompter import (
    ALL_COLLECTED_MESSAGE,
    FIELD_PROMPTS,
    next_missing_field,
    next_prompt,
)
from src.schemas.attribute_schema import FIELD_ORDER, AttributeRecord

FULL = dict(length=30, width=20, height=12, pallet_type="euro", storage=450, storage_type="rack")


class TestPriorityOrder:
    def test_order_is_fixed(self):
        assert [p.name for p in FIELD_PROMPTS] == [
            "height", "length", "width", "pallet_type", "storage", "storage_type",
        ]

    def test_covers_every_record_field(self):
        assert sorted(p.name for p in FIELD_PROMPTS) == sorted(FIELD_ORDER)

    def test_empty_record_asks_for_height(self):
        assert next_missing_field(AttributeRecord()).name == "height"
        assert "height" in next_prompt(AttributeRecord()).lower()

    def test_height_known_asks_for_length(self):
        assert next_missing_field(AttributeRecord(height=12)).name == "length"

    def test_skips_to_first_gap(self):
        record = AttributeRecord(height=12, length=30, width=20, pallet_type="euro")
        assert next_missing_field(record).name == "storage"
        assert "pallets" in next_prompt(record)

    @pytest.mark.parametrize("missing", FIELD_ORDER)
    def test_single_gap_is_asked(self, missing):
        record = AttributeRecord(**{k: v for k, v in FULL.items() if k != missing})
        assert next_missing_field(record).name == missing


class TestAllCollected:
    def test_complete_record_gets_closing_message(self):
        assert next_missing_field(AttributeRecord(**FULL)) is None
        assert next_prompt(AttributeRecord(**FULL)) == ALL_COLLECTED_MESSAGE

    def test_closing_message_mentions_generating(self):
        assert "generating" in ALL_COLLECTED_MESSAGE.lower()
