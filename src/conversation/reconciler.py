"""
Completion detection and reconciliation of structured extraction results.

The dialogue service appends a sentinel marker to its reply once it has
gathered everything. ``reconcile`` strips that marker, maps the
structured extraction onto the attribute record shape, and decides
whether the session is complete. It is a pure function; the
``CompletionReconciler`` wrapper adds the once-only completion
notification on top.

Usage:
    result = reconcile("All set! [CONFIGURATION_COMPLETE]", structured)
    assert result.is_complete
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from src.config import settings
from src.conversation.events import CompletionChannel, CompletionEvent
from src.schemas.attribute_schema import (
    STRUCTURED_FIELD_MAP,
    AttributeRecord,
    StructuredAttributes,
)
from src.utils import normalize_label, parse_number

logger = logging.getLogger(__name__)

COMPLETION_MARKER = settings.dialogue.completion_marker

_DIMENSION_FIELDS = {"length", "width", "height"}
_COUNT_FIELDS = {"storage"}

StructuredResult = Union[StructuredAttributes, Mapping[str, Any]]


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of reconciling one assistant reply."""

    display_text: str
    merged_record: Optional[AttributeRecord]
    is_complete: bool
    extraction_failed: bool = False


def has_marker(text: str, marker: str = COMPLETION_MARKER) -> bool:
    return marker in text


def strip_marker(text: str, marker: str = COMPLETION_MARKER) -> str:
    """Remove every occurrence of the marker and trim the result.

    Raises:
        ValueError: If the marker is blank or has surrounding whitespace.
    """
    if not marker.strip() or marker != marker.strip():
        raise ValueError(f"Invalid completion marker: {marker!r}")
    pattern = re.compile(r"\s*" + re.escape(marker) + r"\s*")
    # Removal can splice a new occurrence together, so repeat until clean.
    # Each pass replaces a non-blank match with one space, so the text
    # either shrinks or loses its last occurrence.
    while marker in text:
        text = pattern.sub(" ", text)
    return text.strip()


def _coerce(document_field: str, raw: Any) -> Any:
    if document_field in _DIMENSION_FIELDS:
        value = parse_number(raw)
        return value if value is not None and value > 0 else None
    if document_field in _COUNT_FIELDS:
        value = parse_number(raw)
        if value is None or value <= 0:
            return None
        return int(round(value)) or None
    return normalize_label(raw)


def map_structured(structured: StructuredResult) -> AttributeRecord:
    """Translate structured schema names and values into an AttributeRecord."""
    if isinstance(structured, BaseModel):
        data = structured.model_dump()
    else:
        data = dict(structured)

    unknown = set(data) - set(STRUCTURED_FIELD_MAP)
    if unknown:
        logger.debug("Ignoring unknown structured fields: %s", sorted(unknown))

    document = {
        target: _coerce(target, data.get(source))
        for source, target in STRUCTURED_FIELD_MAP.items()
    }
    return AttributeRecord.from_document(document)


def reconcile(
    raw_text: str,
    structured: Optional[StructuredResult],
    marker: str = COMPLETION_MARKER,
) -> Reconciliation:
    """
    Decide completion from an assistant reply and an optional extraction.

    1. Structured result present: complete, with the mapped record.
    2. Marker present but no structured result: complete, no record,
       and ``extraction_failed`` so the caller can warn the user.
    3. Otherwise: not complete, text passed through unchanged.
    """
    if structured is not None:
        return Reconciliation(
            display_text=strip_marker(raw_text, marker),
            merged_record=map_structured(structured),
            is_complete=True,
        )
    if has_marker(raw_text, marker):
        return Reconciliation(
            display_text=strip_marker(raw_text, marker),
            merged_record=None,
            is_complete=True,
            extraction_failed=True,
        )
    return Reconciliation(display_text=raw_text, merged_record=None, is_complete=False)


class CompletionReconciler:
    """
    Session-scoped reconciler that owns the completion notification.

    ``reconcile`` stays pure; ``publish_completion`` fires the channel at
    most once for the lifetime of this object.
    """

    def __init__(
        self,
        channel: Optional[CompletionChannel] = None,
        marker: str = COMPLETION_MARKER,
    ) -> None:
        self.channel = channel or CompletionChannel()
        self.marker = marker
        self._published = False

    @property
    def published(self) -> bool:
        return self._published

    def has_marker(self, text: str) -> bool:
        return has_marker(text, self.marker)

    def strip_marker(self, text: str) -> str:
        return strip_marker(text, self.marker)

    def reconcile(
        self, raw_text: str, structured: Optional[StructuredResult]
    ) -> Reconciliation:
        return reconcile(raw_text, structured, self.marker)

    def publish_completion(
        self,
        record: Optional[AttributeRecord],
        extraction_failed: bool = False,
        session_id: str = "",
    ) -> bool:
        """Notify subscribers; returns False if already published."""
        if self._published:
            logger.debug("Completion already published, skipping")
            return False
        self._published = True
        self.channel.publish(CompletionEvent(
            record=record,
            extraction_failed=extraction_failed,
            session_id=session_id,
        ))
        logger.info("Completion published (extraction_failed=%s)", extraction_failed)
        return True
