"""
Explicitly constructed service graph, one per process
"""
from dataclasses import dataclass
from typing import Optional
from core.config import settings as default_settings, Settings
from core.logger import setup_logger
from core.storage import ConversationStore
from services.assistant import VoiceAssistant
from services.documents import DocumentProcessor
from services.email import EmailService
from services.llm import LLMGateway
from services.music import MusicService
from services.news import NewsService
from services.reminders import ReminderService
from services.stt import WhisperSTT
from services.tts import TTSService
from services.weather import WeatherService
from tools.intent_router import IntentRouter

logger = setup_logger(__name__)

@dataclass
class ServiceContainer:
    settings: Settings
    store: ConversationStore
    llm: LLMGateway
    tts: TTSService
    email: EmailService
    reminders: ReminderService
    weather: WeatherService
    news: NewsService
    music: MusicService
    documents: DocumentProcessor
    stt: WhisperSTT
    router: IntentRouter
    assistant: VoiceAssistant

def build_services(settings: Optional[Settings] = None, **overrides) -> ServiceContainer:
    """
    Wire every service from settings

    Keyword overrides replace individual collaborators (e.g. ``tts=...``)
    before the router and pipeline are built on top of them.
    """
    settings = settings or default_settings

    store = overrides.get("store") or ConversationStore()
    llm = overrides.get("llm") or LLMGateway(settings)
    tts = overrides.get("tts") or TTSService(settings)
    email = overrides.get("email") or EmailService(settings)
    reminders = overrides.get("reminders") or ReminderService()
    weather = overrides.get("weather") or WeatherService(settings)
    news = overrides.get("news") or NewsService(settings)
    music = overrides.get("music") or MusicService()
    documents = overrides.get("documents") or DocumentProcessor(llm)
    stt = overrides.get("stt") or WhisperSTT(settings)

    router = overrides.get("router") or IntentRouter(
        weather=weather,
        news=news,
        reminders=reminders,
        email=email,
        music=music,
        default_location=settings.WEATHER_DEFAULT_LOCATION,
        music_timeout=settings.MUSIC_LOOKUP_TIMEOUT,
    )
    assistant = overrides.get("assistant") or VoiceAssistant(store, llm, router, tts)

    logger.info("Service container built")
    return ServiceContainer(
        settings=settings,
        store=store,
        llm=llm,
        tts=tts,
        email=email,
        reminders=reminders,
        weather=weather,
        news=news,
        music=music,
        documents=documents,
        stt=stt,
        router=router,
        assistant=assistant,
    )
