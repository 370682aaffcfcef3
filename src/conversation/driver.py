"""
Conversation driver: runs one wizard session turn by turn.

Each user turn is appended to the history, enriched with heuristic
guesses, and sent to the dialogue service together with the current
record. The reply is reconciled; on completion the record is merged
authoritatively, persisted in the background, and the completion
notification fires once. A failing dialogue call never completes the
session: the driver answers with the next deterministic question.

Turns are serialized through a lock, so at most one dialogue call is
outstanding and replies are applied in the order their turns arrived.

Usage:
    driver = ConversationDriver(OpenAIDialogueService(), JsonConfigStore())
    result = await driver.submit("It's 30 meters long and 20 wide")
    print(result.display_text)
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Optional

from src.agents.dialogue_service import DialogueService
from src.config import settings
from src.conversation.events import CompletionChannel
from src.conversation.extractor import extract
from src.conversation.fallback_prompter import next_prompt
from src.conversation.reconciler import CompletionReconciler, Reconciliation
from src.conversation.state_machine import (
    SessionState,
    SessionStateMachine,
    TransitionTrigger,
)
from src.errors import DialogueServiceError, PersistenceError, SessionCompletedError
from src.logging_context import get_session_logger, set_session_id
from src.schemas.attribute_schema import AttributeRecord, MergePolicy, StructuredAttributes, merge
from src.schemas.conversation_schema import DialogueReply, Message, Origin
from src.tools.config_store import ConfigStore

logger = get_session_logger(__name__)

DIALOGUE_UNAVAILABLE_WARNING = (
    "The assistant is unavailable right now, so I'll keep asking the basics."
)
EXTRACTION_FAILED_WARNING = (
    "I couldn't fill in your configuration automatically. "
    "Please check the values before generating the layout."
)


@dataclass(frozen=True)
class TurnResult:
    """What one user turn produced, for the presentation layer."""

    display_text: str
    record: AttributeRecord
    state: SessionState
    is_complete: bool = False
    dialogue_failed: bool = False
    extraction_failed: bool = False
    warning: Optional[str] = None


class ConversationDriver:
    """Owns the history, the record, and the lifecycle of one session."""

    def __init__(
        self,
        dialogue: DialogueService,
        store: Optional[ConfigStore] = None,
        channel: Optional[CompletionChannel] = None,
        initial_record: Optional[AttributeRecord] = None,
        greeting: str = settings.dialogue.greeting,
        timeout: float = settings.model.timeout_seconds,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or f"WH-{uuid.uuid4().hex[:8]}"
        self._dialogue = dialogue
        self._store = store
        self._reconciler = CompletionReconciler(channel)
        self._timeout = timeout
        self._record = initial_record or AttributeRecord()
        self._messages: list[Message] = [Message(origin=Origin.ASSISTANT, content=greeting)]
        self._sm = SessionStateMachine()
        self._lock = asyncio.Lock()
        self._persist_tasks: set[asyncio.Task] = set()
        self.persistence_errors: list[PersistenceError] = []

    @classmethod
    def resume(
        cls,
        dialogue: DialogueService,
        store: ConfigStore,
        **kwargs,
    ) -> "ConversationDriver":
        """Start a session seeded with the stored configuration, if readable."""
        try:
            record = store.load()
        except PersistenceError as exc:
            logger.error("Could not load stored configuration: %s", exc)
            record = None
        return cls(dialogue, store=store, initial_record=record, **kwargs)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def record(self) -> AttributeRecord:
        return self._record

    @property
    def state(self) -> SessionState:
        return self._sm.current_state

    @property
    def is_complete(self) -> bool:
        return self._sm.is_terminal()

    @property
    def channel(self) -> CompletionChannel:
        return self._reconciler.channel

    @property
    def state_machine(self) -> SessionStateMachine:
        return self._sm

    def _append(self, origin: Origin, content: str) -> Message:
        message = Message(origin=origin, content=content)
        self._messages.append(message)
        return message

    def _result(self, text: str, **kwargs) -> TurnResult:
        return TurnResult(
            display_text=text,
            record=self._record,
            state=self._sm.current_state,
            is_complete=self._sm.is_terminal(),
            **kwargs,
        )

    async def submit(self, text: str) -> TurnResult:
        """
        Process one user turn.

        Raises:
            ValueError: If the message is blank.
            SessionCompletedError: If the session already completed.
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot submit an empty message")

        async with self._lock:
            set_session_id(self.session_id)
            if self._sm.is_terminal():
                raise SessionCompletedError("This configuration session is already complete")

            self._append(Origin.USER, text)
            patch = extract(text, self._record)
            self._record = merge(self._record, patch, MergePolicy.HEURISTIC)
            self._sm.transition(TransitionTrigger.USER_TURN)

            try:
                reply = await asyncio.wait_for(
                    self._dialogue.reply(self.messages, self._record),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Dialogue call timed out after %.1fs", self._timeout)
                return self._fall_back()
            except DialogueServiceError as exc:
                logger.warning("Dialogue call failed: %s", exc)
                return self._fall_back()
            except Exception:
                logger.exception("Unexpected dialogue service error")
                return self._fall_back()

            return await self._apply_reply(reply)

    def _fall_back(self) -> TurnResult:
        prompt = next_prompt(self._record)
        self._append(Origin.ASSISTANT, prompt)
        self._sm.transition(TransitionTrigger.DIALOGUE_FAILED)
        return self._result(prompt, dialogue_failed=True, warning=DIALOGUE_UNAVAILABLE_WARNING)

    async def _extract(self, text: str) -> Optional[StructuredAttributes]:
        """Single structured extraction attempt; any failure yields None."""
        try:
            return await asyncio.wait_for(self._dialogue.extract(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Structured extraction timed out")
        except DialogueServiceError as exc:
            logger.warning("Structured extraction failed: %s", exc)
        except Exception:
            logger.exception("Unexpected structured extraction error")
        return None

    async def _apply_reply(self, reply: DialogueReply) -> TurnResult:
        structured = None
        if self._reconciler.has_marker(reply.text):
            structured = await self._extract(self._reconciler.strip_marker(reply.text))

        result = self._reconciler.reconcile(reply.text, structured)
        self._append(Origin.ASSISTANT, result.display_text)

        if not result.is_complete:
            self._sm.transition(TransitionTrigger.REPLY_RECEIVED)
            return self._result(result.display_text)
        return self._complete(result)

    def _complete(self, result: Reconciliation) -> TurnResult:
        if result.merged_record is not None:
            self._record = merge(self._record, result.merged_record, MergePolicy.AUTHORITATIVE)
        self._sm.transition(TransitionTrigger.SESSION_COMPLETED)
        logger.info("Session complete: %s", self._record.known_fields())

        if result.merged_record is not None:
            self._schedule_persist(self._record)
        else:
            logger.warning("Completion without structured record; nothing persisted")

        self._reconciler.publish_completion(
            self._record if result.merged_record is not None else None,
            extraction_failed=result.extraction_failed,
            session_id=self.session_id,
        )
        return self._result(
            result.display_text,
            extraction_failed=result.extraction_failed,
            warning=EXTRACTION_FAILED_WARNING if result.extraction_failed else None,
        )

    def _schedule_persist(self, record: AttributeRecord) -> None:
        if self._store is None:
            logger.debug("No configuration store attached; skipping save")
            return
        task = asyncio.create_task(self._persist(record))
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, record: AttributeRecord) -> None:
        try:
            await asyncio.to_thread(self._store.save, record)
        except PersistenceError as exc:
            logger.error("Configuration save failed: %s", exc)
            self.persistence_errors.append(exc)

    async def wait_for_persistence(self) -> None:
        """Wait for any background configuration writes to finish."""
        if self._persist_tasks:
            await asyncio.gather(*list(self._persist_tasks))
