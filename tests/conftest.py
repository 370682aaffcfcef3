"""Shared test fixtures and helpers."""

import asyncio
from typing import Any, Optional, Sequence, Union

import pytest

from src.conversation.events import CompletionChannel, CompletionEvent
from src.conversation.state_machine import SessionStateMachine
from src.errors import DialogueServiceError, PersistenceError
from src.schemas.attribute_schema import AttributeRecord, StructuredAttributes
from src.schemas.conversation_schema import DialogueReply, Message
from src.tools.config_store import JsonConfigStore
from src.tools.spreadsheet_export import SpreadsheetExporter

MARKER = "[CONFIGURATION_COMPLETE]"

FULL_STRUCTURED = {
    "length": 30,
    "width": 20,
    "height": 12,
    "pallet_type": "euro",
    "capacity": 450,
    "storage_type": "rack",
}


def make_structured(**overrides: Any) -> StructuredAttributes:
    """Helper to create a StructuredAttributes with the scenario defaults."""
    return StructuredAttributes(**{**FULL_STRUCTURED, **overrides})


def make_record(**fields: Any) -> AttributeRecord:
    return AttributeRecord(**fields)


class FakeDialogueService:
    """Scripted DialogueService for driver tests.

    ``replies`` items are reply strings or exceptions to raise; the last
    item repeats once the script runs out.
    """

    def __init__(
        self,
        replies: Sequence[Union[str, Exception]] = ("Got it. What's next?",),
        structured: Union[StructuredAttributes, Exception, None] = None,
        delay: float = 0.0,
    ) -> None:
        self._replies = list(replies)
        self._structured = structured
        self._delay = delay
        self.reply_calls: list[tuple[tuple[Message, ...], AttributeRecord]] = []
        self.extract_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def reply(self, history: Sequence[Message], record: AttributeRecord) -> DialogueReply:
        self.reply_calls.append((tuple(history), record))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            index = min(len(self.reply_calls) - 1, len(self._replies) - 1)
            item = self._replies[index]
            if isinstance(item, Exception):
                raise item
            return DialogueReply(text=item)
        finally:
            self.in_flight -= 1

    async def extract(self, text: str) -> Optional[StructuredAttributes]:
        self.extract_calls.append(text)
        if isinstance(self._structured, Exception):
            raise self._structured
        return self._structured


class RecordingStore:
    """In-memory ConfigStore that records every save."""

    def __init__(self, fail: bool = False, initial: Optional[AttributeRecord] = None) -> None:
        self.saved: list[AttributeRecord] = []
        self.fail = fail
        self.initial = initial

    def load(self) -> Optional[AttributeRecord]:
        if self.fail:
            raise PersistenceError("Failed to read configuration")
        return self.saved[-1] if self.saved else self.initial

    def save(self, record: AttributeRecord) -> None:
        if self.fail:
            raise PersistenceError("Failed to save configuration")
        self.saved.append(record)


class EventRecorder:
    """Completion subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[CompletionEvent] = []

    def __call__(self, event: CompletionEvent) -> None:
        self.events.append(event)


@pytest.fixture
def state_machine():
    return SessionStateMachine()


@pytest.fixture
def empty_record():
    return AttributeRecord()


@pytest.fixture
def channel():
    return CompletionChannel()


@pytest.fixture
def recorder(channel):
    rec = EventRecorder()
    channel.subscribe(rec)
    return rec


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def json_store(tmp_path):
    return JsonConfigStore(tmp_path / "data" / "warehouse-config.json")


@pytest.fixture
def exporter(tmp_path):
    return SpreadsheetExporter(tmp_path / "exports")


def failing_service() -> FakeDialogueService:
    return FakeDialogueService(replies=[DialogueServiceError("provider unreachable")])
