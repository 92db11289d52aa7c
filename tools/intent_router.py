"""
Intent router: maps the model's action tag to an enrichment handler

Each handler calls at most one collaborator and degrades to a safe value
on failure, so the assistant's conversational message always survives.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
from core.logger import setup_logger
from core.registry import ProviderNotFoundError
from services.email import EmailService, EmailData
from services.music import MusicService
from services.news import NewsService, NewsError
from services.reminders import ReminderService
from services.weather import WeatherService
from tools.extractors import extract_location, parse_email_text, parse_reminder_text

logger = setup_logger(__name__)

MUSIC_UNAVAILABLE = {"message": "Music service temporarily unavailable"}

Handler = Callable[[Dict[str, Any], str], Awaitable[Any]]

def _field(data: Any, key: str) -> Optional[Any]:
    """Read a key from the loosely-typed model payload"""
    if isinstance(data, dict):
        value = data.get(key)
        if isinstance(value, str):
            value = value.strip()
        return value or None
    return None

class IntentRouter:
    """Dispatch table from action tag to handler coroutine"""

    def __init__(
        self,
        weather: WeatherService,
        news: NewsService,
        reminders: ReminderService,
        email: EmailService,
        music: MusicService,
        default_location: str = "New York",
        music_timeout: float = 5.0
    ):
        self.weather = weather
        self.news = news
        self.reminders = reminders
        self.email = email
        self.music = music
        self.default_location = default_location
        self.music_timeout = music_timeout
        self.handlers: Dict[str, Handler] = {
            "weather": self.handle_weather,
            "news": self.handle_news,
            "reminder": self.handle_reminder,
            "email": self.handle_email,
            "document": self.handle_document,
            "music": self.handle_music,
        }
        logger.info(f"IntentRouter initialized with {len(self.handlers)} actions")

    async def dispatch(self, action: str, data: Any, utterance: str) -> Any:
        """
        Run the handler for ``action``

        Returns:
            Replacement response data, or ``data`` unchanged for "none",
            unknown actions and handlers that fail
        """
        handler = self.handlers.get(action)
        if handler is None:
            return data

        logger.info(f"Dispatching action: {action}")
        try:
            result = await handler(data, utterance)
        except Exception as e:
            logger.error(f"Action '{action}' failed: {e}")
            return data
        return data if result is None else result

    async def handle_weather(self, data: Any, utterance: str) -> Any:
        location = _field(data, "location") or extract_location(utterance, self.default_location)
        return await self.weather.get_weather(location)

    async def handle_news(self, data: Any, utterance: str) -> Any:
        category = _field(data, "category") or "general"
        try:
            return await self.news.get_top_headlines(category)
        except NewsError as e:
            logger.error(f"News lookup failed: {e}")
            return None

    async def handle_reminder(self, data: Any, utterance: str) -> Any:
        text = _field(data, "reminderText") or utterance
        request = parse_reminder_text(text)
        if request is None:
            logger.info("No reminder could be extracted")
            return None
        return self.reminders.create_from_request(request).to_dict()

    async def handle_email(self, data: Any, utterance: str) -> Any:
        request = parse_email_text(utterance)
        if request is None:
            logger.info("No email recipient found, skipping send")
            return None
        try:
            result = await self.email.send_email(
                EmailData(to=request.to, subject=request.subject, body=request.body)
            )
        except ProviderNotFoundError as e:
            logger.error(f"Email not sent: {e}")
            return None
        return result.to_dict()

    async def handle_document(self, data: Any, utterance: str) -> Any:
        query = _field(data, "documentQuery") or utterance
        return {"message": "Document processing initiated", "query": query}

    async def handle_music(self, data: Any, utterance: str) -> Any:
        query = _field(data, "query") or utterance
        try:
            return await asyncio.wait_for(self.music.lookup_track(query), timeout=self.music_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Music lookup timed out after {self.music_timeout}s")
        except Exception as e:
            logger.error(f"Music processing error: {e}")
        return dict(MUSIC_UNAVAILABLE)
