"""Shared test fixtures."""

import os

# Keep test runs from writing log files next to the package
os.environ.setdefault("LOG_TO_FILE", "false")

from typing import List, Optional  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402

from core.config import Settings  # noqa: E402
from core.storage import ConversationStore  # noqa: E402
from services.email import EmailService  # noqa: E402
from services.llm import AssistantReply  # noqa: E402
from services.music import MusicService  # noqa: E402
from services.news import NewsService  # noqa: E402
from services.reminders import ReminderService  # noqa: E402
from services.tts import TTSOptions, TTSProvider, TTSProviderError, TTSService  # noqa: E402
from services.weather import WeatherService  # noqa: E402
from tools.intent_router import IntentRouter  # noqa: E402


class FakeTTSProvider(TTSProvider):
    """In-process provider that returns fixed bytes or raises."""

    def __init__(self, name: str, audio: bytes = b"ID3fake-mp3", fail: bool = False):
        self.name = name
        self.default_voice = "test-voice"
        self.audio = audio
        self.fail = fail
        self.calls: List[str] = []

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise TTSProviderError(f"{self.name} is down")
        return self.audio


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and the real filesystem."""
    return Settings(
        LOGS_PATH=tmp_path / "logs",
        UPLOADS_PATH=tmp_path / "uploads",
        LOG_TO_FILE=False,
        STT_ENABLED=False,
        OPENROUTER_API_KEY="test-key",
        OPENAI_API_KEY="",
        ELEVENLABS_API_KEY="",
        GOOGLE_CLOUD_API_KEY="",
        WEATHER_API_KEY="",
        NEWS_API_KEY="",
        SENDGRID_API_KEY="",
        GMAIL_ACCESS_TOKEN="",
    )


def make_tts(settings: Settings, *providers: FakeTTSProvider, default: Optional[str] = None) -> TTSService:
    names = [p.name for p in providers]
    service = TTSService(
        settings=settings,
        providers=providers,
        fallback_order=names,
        output_dir=settings.UPLOADS_PATH,
    )
    if default:
        service.set_default_provider(default)
    return service


@pytest.fixture
def working_tts(settings) -> TTSService:
    return make_tts(settings, FakeTTSProvider("primary"), default="primary")


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def router(settings) -> IntentRouter:
    return IntentRouter(
        weather=WeatherService(settings),
        news=NewsService(settings),
        reminders=ReminderService(),
        email=EmailService(settings),
        music=MusicService(),
        default_location=settings.WEATHER_DEFAULT_LOCATION,
        music_timeout=1.0,
    )


@pytest.fixture
def fake_llm() -> AsyncMock:
    """LLM gateway stand-in; tests set ``process.return_value`` as needed."""
    llm = AsyncMock()
    llm.process.return_value = AssistantReply(message="Hello! How can I help?")
    llm.complete.return_value = "{}"
    llm.analyze_image.return_value = "A cat on a sofa."
    return llm
