"""
Dialogue service: the language model boundary of the wizard.

``DialogueService`` is the protocol the conversation driver depends on.
``OpenAIDialogueService`` implements it with the OpenAI async client:
one chat completion per user turn, and one structured parse of the
assistant's closing summary once the completion marker shows up.
"""

import logging
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from src.config import settings
from src.errors import DialogueServiceError
from src.prompts.prompt_templates import build_known_attributes_prompt
from src.prompts.system_prompts import EXTRACTION_SYSTEM_PROMPT, WIZARD_SYSTEM_PROMPT
from src.schemas.attribute_schema import AttributeRecord, StructuredAttributes
from src.schemas.conversation_schema import DialogueReply, Message, Origin

logger = logging.getLogger(__name__)

_ROLES = {Origin.USER: "user", Origin.ASSISTANT: "assistant"}


class DialogueService(Protocol):
    """What the conversation driver needs from a language model."""

    async def reply(
        self, history: Sequence[Message], record: AttributeRecord
    ) -> DialogueReply:
        """Produce the next assistant turn. Raises DialogueServiceError on failure."""
        ...

    async def extract(self, text: str) -> Optional[StructuredAttributes]:
        """Parse a summary into the six-field schema; None if it cannot."""
        ...


class OpenAIDialogueService:
    """DialogueService backed by OpenAI chat completions."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = settings.model.llm_model,
        temperature: float = settings.model.llm_temperature,
        timeout: float = settings.model.timeout_seconds,
        max_history: int = settings.model.max_history_messages,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.max_history = max_history

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # Retries are left to the user; a failed turn falls back immediately
            self._client = AsyncOpenAI(timeout=self.timeout, max_retries=0)
        return self._client

    def build_messages(
        self, history: Sequence[Message], record: AttributeRecord
    ) -> list[dict[str, str]]:
        recent = list(history)[-self.max_history:]
        return [
            {"role": "system", "content": WIZARD_SYSTEM_PROMPT},
            {"role": "system", "content": build_known_attributes_prompt(record)},
            *({"role": _ROLES[m.origin], "content": m.content} for m in recent),
        ]

    async def reply(
        self, history: Sequence[Message], record: AttributeRecord
    ) -> DialogueReply:
        try:
            completion = await self._get_client().chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=self.build_messages(history, record),
            )
        except OpenAIError as exc:
            raise DialogueServiceError(f"Chat completion failed: {exc}") from exc

        if not completion.choices or not completion.choices[0].message.content:
            raise DialogueServiceError("Chat completion returned no text")

        usage = completion.usage.model_dump() if completion.usage else None
        logger.debug("Dialogue reply received (usage=%s)", usage)
        return DialogueReply(text=completion.choices[0].message.content, usage=usage)

    async def extract(self, text: str) -> Optional[StructuredAttributes]:
        try:
            completion = await self._get_client().chat.completions.parse(
                model=self.model,
                temperature=0,
                messages=[
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                response_format=StructuredAttributes,
            )
        except (OpenAIError, ValidationError, ValueError) as exc:
            logger.warning("Structured extraction failed: %s", exc)
            return None

        if not completion.choices:
            logger.warning("Structured extraction returned no choices")
            return None
        parsed = completion.choices[0].message.parsed
        if parsed is None:
            logger.warning("Structured extraction returned no parseable result")
        return parsed
