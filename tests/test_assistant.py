"""Tests for the end-to-end voice pipeline."""

from unittest.mock import AsyncMock

import pytest

from services.assistant import VoiceAssistant
from services.llm import AssistantReply, LLMError
from tests.conftest import FakeTTSProvider, make_tts


@pytest.fixture
def assistant(store, fake_llm, router, working_tts):
    return VoiceAssistant(store, fake_llm, router, working_tts)


class TestVoiceAssistant:
    @pytest.mark.asyncio
    async def test_plain_conversation(self, assistant):
        result = await assistant.process("  hello  ")
        assert result == {
            "transcription": "hello",
            "response": "Hello! How can I help?",
            "action": "none",
            "data": {},
            "audioUrl": None,
        }

    @pytest.mark.asyncio
    async def test_history_loaded_from_conversation(self, assistant, store, fake_llm):
        conversation = store.create_conversation("chat")
        store.create_message(conversation.id, "user", "my name is Ada")
        store.create_message(conversation.id, "assistant", "Nice to meet you, Ada")

        await assistant.process("what is my name?", conversation_id=conversation.id)

        text, history, image = fake_llm.process.await_args.args
        assert text == "what is my name?"
        assert history == [
            {"role": "user", "content": "my name is Ada"},
            {"role": "assistant", "content": "Nice to meet you, Ada"},
        ]
        assert image is None

    @pytest.mark.asyncio
    async def test_conversation_left_to_client(self, assistant, store):
        conversation = store.create_conversation("chat")
        store.create_message(conversation.id, "user", "earlier")

        await assistant.process("hello", conversation_id=conversation.id)

        messages = store.list_messages(conversation.id)
        assert [(m.role, m.content) for m in messages] == [("user", "earlier")]

    @pytest.mark.asyncio
    async def test_unknown_conversation_uses_empty_history(self, assistant, fake_llm, store):
        await assistant.process("hello", conversation_id="missing")
        assert fake_llm.process.await_args.args[1] == []
        assert store.messages == {}

    @pytest.mark.asyncio
    async def test_action_dispatched(self, assistant, fake_llm):
        fake_llm.process.return_value = AssistantReply(
            message="I'll remind you.", action="reminder", data={}
        )
        result = await assistant.process("remind me to call Sam in 30 minutes, urgent")
        assert result["action"] == "reminder"
        assert result["data"]["title"] == "call Sam"

    @pytest.mark.asyncio
    async def test_weather_failure_keeps_message(self, assistant, fake_llm, router):
        fake_llm.process.return_value = AssistantReply(
            message="Checking the weather.", action="weather", data={"location": "Nowhereville"}
        )
        router.weather.get_weather = AsyncMock(side_effect=RuntimeError("unknown city"))

        result = await assistant.process("weather in Nowhereville")

        assert result["response"] == "Checking the weather."
        assert result["data"] == {"location": "Nowhereville"}

    @pytest.mark.asyncio
    async def test_tts_audio_url(self, assistant, working_tts):
        result = await assistant.process("hello", generate_tts=True)
        filename = working_tts.temp_files[0].name
        assert result["audioUrl"] == f"/api/audio/{filename}"

    @pytest.mark.asyncio
    async def test_tts_failure_leaves_audio_url_empty(self, store, fake_llm, router, settings):
        broken = make_tts(settings, FakeTTSProvider("broken", fail=True))
        assistant = VoiceAssistant(store, fake_llm, router, broken)

        result = await assistant.process("hello", generate_tts=True)

        assert result["audioUrl"] is None
        assert result["response"] == "Hello! How can I help?"

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, assistant, fake_llm):
        with pytest.raises(ValueError):
            await assistant.process("   ")
        fake_llm.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self, assistant, fake_llm):
        fake_llm.process.side_effect = LLMError("Failed to process request")
        with pytest.raises(LLMError):
            await assistant.process("hello")
