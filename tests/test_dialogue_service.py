"""Tests for the OpenAI-backed dialogue service, using a stand-in client."""

from types import SimpleNamespace

import pytest
from openai import OpenAIError

from src.agents.dialogue_service import OpenAIDialogueService
from src.errors import DialogueServiceError
from src.prompts.system_prompts import EXTRACTION_SYSTEM_PROMPT, WIZARD_SYSTEM_PROMPT
from src.schemas.attribute_schema import AttributeRecord
from src.schemas.conversation_schema import Message, Origin
from tests.conftest import make_structured


class StubUsage:
    def model_dump(self):
        return {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}


def _completion(content=None, parsed=None, usage=None):
    message = SimpleNamespace(content=content, parsed=parsed)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


class StubCompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls: list[dict] = []

    async def _respond(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result

    async def create(self, **kwargs):
        return await self._respond(**kwargs)

    async def parse(self, **kwargs):
        return await self._respond(**kwargs)


def _service(result=None, error=None, **kwargs) -> tuple[OpenAIDialogueService, StubCompletions]:
    completions = StubCompletions(result, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIDialogueService(client=client, model="test-model", **kwargs), completions


HISTORY = (
    Message(origin=Origin.ASSISTANT, content="Hello!"),
    Message(origin=Origin.USER, content="It's 30 meters long"),
)


class TestBuildMessages:
    def test_system_prompts_come_first(self):
        service, _ = _service()
        messages = service.build_messages(HISTORY, AttributeRecord(length=30))
        assert messages[0] == {"role": "system", "content": WIZARD_SYSTEM_PROMPT}
        assert messages[1]["role"] == "system"
        assert "length: 30.0 m" in messages[1]["content"]
        assert messages[2:] == [
            {"role": "assistant", "content": "Hello!"},
            {"role": "user", "content": "It's 30 meters long"},
        ]

    def test_history_window(self):
        service, _ = _service(max_history=2)
        history = [Message(origin=Origin.USER, content=str(i)) for i in range(6)]
        messages = service.build_messages(history, AttributeRecord())
        assert [m["content"] for m in messages[2:]] == ["4", "5"]

    def test_marker_contract_in_system_prompt(self):
        assert "[CONFIGURATION_COMPLETE]" in WIZARD_SYSTEM_PROMPT


class TestReply:
    @pytest.mark.asyncio
    async def test_returns_text_and_usage(self):
        service, completions = _service(_completion("How wide is it?", usage=StubUsage()))
        reply = await service.reply(HISTORY, AttributeRecord())
        assert reply.text == "How wide is it?"
        assert reply.usage["total_tokens"] == 15
        assert completions.calls[0]["model"] == "test-model"

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self):
        service, _ = _service(error=OpenAIError("connection refused"))
        with pytest.raises(DialogueServiceError, match="connection refused"):
            await service.reply(HISTORY, AttributeRecord())

    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self):
        service, _ = _service(_completion(""))
        with pytest.raises(DialogueServiceError):
            await service.reply(HISTORY, AttributeRecord())


class TestExtract:
    @pytest.mark.asyncio
    async def test_returns_parsed_schema(self):
        structured = make_structured()
        service, completions = _service(_completion(parsed=structured))
        assert await service.extract("Summary text") == structured
        call = completions.calls[0]
        assert call["messages"][0] == {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT}
        assert call["messages"][1] == {"role": "user", "content": "Summary text"}

    @pytest.mark.asyncio
    async def test_provider_error_yields_none(self):
        service, _ = _service(error=OpenAIError("rate limited"))
        assert await service.extract("Summary text") is None

    @pytest.mark.asyncio
    async def test_unparseable_yields_none(self):
        service, _ = _service(_completion(parsed=None))
        assert await service.extract("Summary text") is None

    def test_extraction_prompt_lists_capacity(self):
        assert "capacity" in EXTRACTION_SYSTEM_PROMPT
