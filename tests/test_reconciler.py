"""Tests for completion detection, marker stripping, and reconciliation."""

import pytest

from src.conversation.reconciler import (
    COMPLETION_MARKER,
    CompletionReconciler,
    map_structured,
    reconcile,
    strip_marker,
)
from src.schemas.attribute_schema import AttributeRecord
from tests.conftest import FULL_STRUCTURED, EventRecorder, make_structured

EXPECTED = AttributeRecord(
    length=30, width=20, height=12, palletType="euro", storage=450, storageType="rack",
)


class TestMarkerStripping:
    def test_default_marker(self):
        assert COMPLETION_MARKER == "[CONFIGURATION_COMPLETE]"

    @pytest.mark.parametrize("text", [
        "All set!",
        f"All set! {COMPLETION_MARKER}",
        f"{COMPLETION_MARKER} All set!",
        f"All {COMPLETION_MARKER} set! {COMPLETION_MARKER}{COMPLETION_MARKER}",
        f"[CONFIGURATION_{COMPLETION_MARKER}COMPLETE]",
        COMPLETION_MARKER,
    ])
    def test_marker_never_leaks(self, text):
        assert COMPLETION_MARKER not in strip_marker(text)
        assert COMPLETION_MARKER not in reconcile(text, None).display_text

    def test_trailing_marker_and_whitespace_removed(self):
        assert strip_marker(f"Thanks, that's everything.\n\n{COMPLETION_MARKER}  ") == (
            "Thanks, that's everything."
        )

    def test_inner_marker_leaves_single_space(self):
        assert strip_marker(f"Done {COMPLETION_MARKER} thanks") == "Done thanks"

    def test_custom_marker(self):
        assert strip_marker("ok <<DONE>>", marker="<<DONE>>") == "ok"

    @pytest.mark.parametrize("marker", ["", "   ", " x", "x "])
    def test_blank_or_padded_marker_rejected(self, marker):
        with pytest.raises(ValueError, match="completion marker"):
            strip_marker("text x  x", marker=marker)

    @pytest.mark.parametrize("marker,text", [
        ("x", "xxxx"),
        ("a a", "a a a a a"),
        ("ab", "aabbab"),
    ])
    def test_self_splicing_text_terminates_clean(self, marker, text):
        assert marker not in strip_marker(text, marker=marker)


class TestReconcileRules:
    def test_structured_result_completes_with_mapped_record(self):
        result = reconcile(f"Summary. {COMPLETION_MARKER}", make_structured())
        assert result.is_complete
        assert result.merged_record == EXPECTED
        assert result.display_text == "Summary."
        assert not result.extraction_failed

    def test_structured_dict_is_accepted(self):
        result = reconcile(f"Summary. {COMPLETION_MARKER}", dict(FULL_STRUCTURED))
        assert result.merged_record == EXPECTED

    def test_marker_without_structured_reports_failure(self):
        result = reconcile(f"Summary. {COMPLETION_MARKER}", None)
        assert result.is_complete
        assert result.merged_record is None
        assert result.extraction_failed
        assert result.display_text == "Summary."

    def test_no_marker_no_structured_is_incomplete(self):
        text = "  What's the width?  "
        result = reconcile(text, None)
        assert not result.is_complete
        assert result.merged_record is None
        assert result.display_text == text

    @pytest.mark.parametrize("text,structured", [
        (f"Done {COMPLETION_MARKER}", FULL_STRUCTURED),
        (f"Done {COMPLETION_MARKER}", None),
        ("How wide is it?", None),
    ])
    def test_deterministic(self, text, structured):
        assert reconcile(text, structured) == reconcile(text, structured)


class TestFieldMapping:
    def test_capacity_becomes_storage(self):
        record = map_structured({**FULL_STRUCTURED, "capacity": "450 pallets"})
        assert record.storage == 450

    def test_numbers_coerced_from_strings(self):
        record = map_structured({**FULL_STRUCTURED, "length": "30 m", "height": "12.5"})
        assert record.length == 30.0
        assert record.height == 12.5

    def test_strings_lower_cased(self):
        record = map_structured({**FULL_STRUCTURED, "pallet_type": "EURO", "storage_type": "Drive-In"})
        assert record.pallet_type == "euro"
        assert record.storage_type == "drive-in"

    def test_invalid_values_become_unset(self):
        record = map_structured({**FULL_STRUCTURED, "width": -5, "capacity": 0})
        assert record.width is None
        assert record.storage is None

    def test_missing_and_unknown_keys(self):
        record = map_structured({"length": 30, "colour": "blue"})
        assert record == AttributeRecord(length=30)


class TestCompletionReconciler:
    def test_publishes_once(self, channel):
        recorder = EventRecorder()
        channel.subscribe(recorder)
        reconciler = CompletionReconciler(channel)

        assert reconciler.publish_completion(EXPECTED, session_id="WH-1")
        assert not reconciler.publish_completion(EXPECTED, session_id="WH-1")

        assert len(recorder.events) == 1
        assert recorder.events[0].record == EXPECTED
        assert recorder.events[0].session_id == "WH-1"
        assert reconciler.published

    def test_reconcile_does_not_publish(self, channel, recorder):
        reconciler = CompletionReconciler(channel)
        reconciler.reconcile(f"Done {COMPLETION_MARKER}", FULL_STRUCTURED)
        assert recorder.events == []

    def test_creates_channel_when_missing(self):
        assert CompletionReconciler().channel is not None
