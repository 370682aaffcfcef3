"""Conversation message and dialogue exchange schemas."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Origin(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


def _new_message_id() -> str:
    return f"MSG-{uuid.uuid4().hex[:8]}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single entry in the conversation history."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_message_id)
    origin: Origin
    content: str
    created_at: datetime = Field(default_factory=_utc_now)


class DialogueReply(BaseModel):
    """Assistant text returned by the dialogue service."""

    text: str
    usage: Optional[dict[str, Any]] = None
