"""
LLM gateway: prompt construction, remote chat completion and
defensive recovery of the structured {message, action, data} reply
"""
import aiohttp
import asyncio
import re
import json
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from core.config import settings as default_settings, Settings
from core.logger import setup_logger

logger = setup_logger(__name__)

ACTIONS = ("none", "weather", "news", "reminder", "email", "document", "music")

FALLBACK_MESSAGE = "I encountered an error processing your request."

SYSTEM_PROMPT = """You are Jarvis, an advanced AI voice assistant with comprehensive capabilities. You can help with:

CORE FUNCTIONS:
- Weather information (action: "weather", include location if provided)
- News updates (action: "news", specify category if mentioned)
- Setting reminders (action: "reminder", parse natural language time/date)
- Email sending (action: "email", extract recipient and content)
- Document processing (action: "document", for summarization/analysis)
- Music control (action: "music", for playback requests)
- General conversation and knowledge queries
- Image analysis (when images are provided)

CRITICAL: You MUST respond with valid JSON only. No other text outside the JSON structure.

RESPONSE FORMAT (REQUIRED):
{
  "message": "your response here",
  "action": "none|weather|news|reminder|email|document|music",
  "data": {}
}

Example responses:
- For weather: {"message": "I'll get the weather for you.", "action": "weather", "data": {"location": "New York"}}
- For general chat: {"message": "Hello! How can I help you today?", "action": "none", "data": {}}
- For news: {"message": "Here are the latest headlines.", "action": "news", "data": {"category": "general"}}
- For reminders: {"message": "I'll remind you.", "action": "reminder", "data": {"reminderText": "call mom in 2 hours"}}
- For music: {"message": "I'll play some music for you.", "action": "music", "data": {"query": "ambient music"}}

ALWAYS respond with JSON only. Be helpful and conversational in the message field."""

DEFAULT_IMAGE_PROMPT = (
    "Analyze this image in detail. Describe what you see, identify key elements, "
    "and provide any relevant insights."
)

class LLMError(Exception):
    """Model call failed (network, quota, malformed request or response)"""

class LLMAuthenticationError(LLMError):
    """The model endpoint rejected the configured credential"""

@dataclass
class AssistantReply:
    """Structured assistant reply recovered from model output"""
    message: str
    action: str = "none"
    data: Any = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "action": self.action, "data": self.data}

_FENCE_PATTERN = re.compile(r'```(?:json)?', re.IGNORECASE)
_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)

def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None

def extract_json_object(content: str) -> Optional[Dict[str, Any]]:
    """
    Recover a JSON object from model output

    Tries, in order: the raw text, the text with code fences stripped,
    and the outermost {...} span of the stripped text.

    Returns:
        Parsed dict, or None if nothing parses
    """
    if not content:
        return None

    result = _loads_object(content)
    if result is not None:
        return result

    cleaned = _FENCE_PATTERN.sub('', content).strip()
    result = _loads_object(cleaned)
    if result is not None:
        logger.debug("Recovered JSON after stripping code fences")
        return result

    match = _OBJECT_PATTERN.search(cleaned)
    if match:
        result = _loads_object(match.group(0))
        if result is not None:
            logger.debug("Recovered JSON from embedded object")
            return result

    return None

def parse_assistant_reply(content: Optional[str]) -> AssistantReply:
    """
    Turn raw model output into an AssistantReply. Never raises.

    Unparseable output becomes the first 200 characters of the raw text
    with action "none"; unknown actions normalize to "none" and a missing
    data payload becomes an empty dict.
    """
    content = content or ""
    result = extract_json_object(content)

    if result is None:
        logger.warning(f"Model output was not JSON, using raw text: {content[:100]!r}")
        return AssistantReply(message=content[:200] or FALLBACK_MESSAGE)

    message = result.get("message")
    if not isinstance(message, str) or not message.strip():
        message = content[:200] or FALLBACK_MESSAGE

    action = result.get("action")
    if isinstance(action, str):
        action = action.strip().lower()
    if action not in ACTIONS:
        if action:
            logger.debug(f"Unrecognized action {action!r}, using 'none'")
        action = "none"

    data = result.get("data")
    if data is None:
        data = {}

    return AssistantReply(message=message, action=action, data=data)

class LLMGateway:
    """Chat-completions client for an OpenAI-compatible endpoint (OpenRouter by default)"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.api_url = self.settings.LLM_API_URL
        self.model = self.settings.LLM_MODEL_NAME
        self.history_window = self.settings.LLM_HISTORY_WINDOW
        logger.info(f"LLMGateway initialized (model: {self.model})")

    def build_messages(
        self,
        text: str,
        history: Optional[List[Dict[str, str]]] = None,
        image_data: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Build the chat payload: system prompt, recent history, current turn

        Args:
            text: Current user utterance
            history: Prior turns as {"role", "content"} dicts, oldest first
            image_data: Optional base64-encoded JPEG to inline with the turn
        """
        messages: List[Dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]

        if history and self.history_window > 0:
            for turn in history[-self.history_window:]:
                messages.append({"role": turn["role"], "content": turn["content"]})

        if image_data:
            content: Any = [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_data}"}},
            ]
        else:
            content = text
        messages.append({"role": "user", "content": content})
        return messages

    def _headers(self) -> Dict[str, str]:
        api_key = self.settings.llm_api_key
        if not api_key:
            raise LLMAuthenticationError(
                "No API key found. Please set OPENROUTER_API_KEY or OPENAI_API_KEY in your .env file."
            )
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.LLM_APP_REFERER,
            "X-Title": self.settings.LLM_APP_TITLE,
        }

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Run one non-streaming chat completion

        Returns:
            Text content of the first choice (may be empty)

        Raises:
            LLMAuthenticationError: credential missing or rejected
            LLMError: any other failure, with the underlying cause chained
        """
        headers = self._headers()
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.settings.LLM_MAX_TOKENS,
            "temperature": self.settings.LLM_TEMPERATURE if temperature is None else temperature,
            "stream": False
        }

        logger.info(f"LLM request started (messages: {len(messages)})")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.settings.LLM_TIMEOUT)
                ) as response:
                    if response.status in (401, 403):
                        logger.error(f"LLM authentication failed ({response.status})")
                        raise LLMAuthenticationError(
                            "Authentication failed. Please check your API key in the .env file."
                        )
                    if response.status != 200:
                        error = await response.text()
                        logger.error(f"LLM API error {response.status}: {error[:300]}")
                        raise LLMError(f"LLM API error {response.status}")

                    try:
                        data = await response.json()
                    except ValueError as e:
                        logger.error(f"LLM returned a non-JSON body: {e}")
                        raise LLMError("Malformed LLM response") from e
        except LLMError:
            raise
        except asyncio.TimeoutError as e:
            logger.error("LLM request timeout")
            raise LLMError("LLM request timed out") from e
        except aiohttp.ClientError as e:
            logger.error(f"LLM request error: {e}")
            raise LLMError(f"LLM request failed: {e}") from e

        try:
            content = data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"Malformed LLM response: {str(data)[:300]}")
            raise LLMError("Malformed LLM response") from e

        logger.info(f"LLM request completed ({len(content)} chars)")
        return content

    async def process(
        self,
        text: str,
        history: Optional[List[Dict[str, str]]] = None,
        image_data: Optional[str] = None
    ) -> AssistantReply:
        """Send an utterance with context and recover the structured reply"""
        if not text or not text.strip():
            raise ValueError("Utterance text is required")

        messages = self.build_messages(text, history, image_data)
        try:
            content = await self.complete(messages)
        except LLMAuthenticationError:
            raise
        except LLMError as e:
            raise LLMError(f"Failed to process request: {e}") from e

        return parse_assistant_reply(content)

    async def analyze_image(self, base64_image: str, query: Optional[str] = None) -> str:
        """Describe an image, optionally answering a question about it"""
        messages = [{
            "role": "user",
            "content": [
                {"type": "text", "text": query or DEFAULT_IMAGE_PROMPT},
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{base64_image}"}},
            ],
        }]
        content = await self.complete(messages, max_tokens=self.settings.LLM_IMAGE_MAX_TOKENS)
        return content or "Unable to analyze the image."
