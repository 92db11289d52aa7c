"""
Text-to-speech: interchangeable synthesis providers and the service that
tries them in order, writes the audio to managed temporary files and
sweeps old files on a schedule
"""
import io
import time
import uuid
import base64
import asyncio
import dataclasses
import aiohttp
import edge_tts
from abc import ABC, abstractmethod
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, List, Iterable
from gtts import gTTS
from core.config import settings as default_settings, Settings
from core.logger import setup_logger
from core.registry import ProviderRegistry

logger = setup_logger(__name__)

class TTSError(Exception):
    """Base class for synthesis failures"""

class TTSProviderNotConfiguredError(TTSError):
    """Provider is missing its credential"""

class TTSProviderError(TTSError):
    """Provider call failed (non-2xx, timeout, bad payload)"""

class AllProvidersFailedError(TTSError):
    """Requested provider and every fallback failed"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("All TTS providers failed")

@dataclass
class TTSOptions:
    voice: Optional[str] = None
    speed: float = 1.0
    pitch: float = 0.0
    language: Optional[str] = None
    style: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "TTSOptions":
        """Build options from a request payload, ignoring unknown keys"""
        data = data or {}
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

class TTSProvider(ABC):
    """Base class for synthesis backends"""

    name: str = ""
    default_voice: str = ""

    @property
    def voices(self) -> List[str]:
        """Voices this provider accepts"""
        return [self.default_voice]

    def resolve_voice(self, voice: Optional[str]) -> str:
        """Requested voice, or the default when it is unknown"""
        if not voice:
            return self.default_voice
        if voice not in self.voices:
            logger.warning(f"Unknown {self.name} voice: {voice}. Using default: {self.default_voice}")
            return self.default_voice
        return voice

    @abstractmethod
    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        """Synthesize speech and return encoded audio (MP3)"""
        pass

class HostedTTSProvider(TTSProvider):
    """Provider behind an HTTP API key"""

    label: str = ""

    def __init__(self, api_key: str, timeout: int = 30):
        self.api_key = api_key
        self.timeout = timeout

    def require_key(self):
        if not self.api_key:
            raise TTSProviderNotConfiguredError(f"{self.label} API key not configured")

    async def _post(self, url: str, payload: Dict, headers: Dict[str, str], expect_json: bool = False):
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise TTSProviderError(
                            f"{self.label} TTS failed: {response.status} - {error_text[:200]}"
                        )
                    if expect_json:
                        return await response.json()
                    return await response.read()
        except asyncio.TimeoutError as e:
            raise TTSProviderError(f"{self.label} TTS timed out") from e
        except aiohttp.ClientError as e:
            raise TTSProviderError(f"{self.label} TTS request failed: {e}") from e

class OpenAITTSProvider(HostedTTSProvider):
    name = "openai"
    label = "OpenAI"
    default_voice = "nova"
    base_url = "https://api.openai.com/v1"

    @property
    def voices(self) -> List[str]:
        return ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        self.require_key()
        return await self._post(
            f"{self.base_url}/audio/speech",
            payload={
                "model": "tts-1-hd",
                "input": text,
                "voice": self.resolve_voice(options.voice),
                "speed": options.speed or 1.0,
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        )

class ElevenLabsTTSProvider(HostedTTSProvider):
    name = "elevenlabs"
    label = "ElevenLabs"
    default_voice = "Rachel"
    base_url = "https://api.elevenlabs.io/v1"

    @property
    def voices(self) -> List[str]:
        return [
            "Rachel", "Drew", "Clyde", "Paul", "Domi", "Dave", "Fin", "Sarah",
            "Antoni", "Thomas", "Charlie", "George", "Emily", "Elli",
        ]

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        self.require_key()
        voice = self.resolve_voice(options.voice)
        return await self._post(
            f"{self.base_url}/text-to-speech/{voice}",
            payload={
                "text": text,
                "model_id": "eleven_monolingual_v1",
                "voice_settings": {
                    "stability": 0.5,
                    "similarity_boost": 0.5,
                    "style": options.style or 0.0,
                    "use_speaker_boost": True,
                },
            },
            headers={
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                "xi-api-key": self.api_key,
            }
        )

GOOGLE_VOICES: Dict[str, List[str]] = {
    "en-US": [
        "en-US-Journey-F", "en-US-News-K", "en-US-News-L",
        "en-US-Standard-A", "en-US-Standard-B", "en-US-Standard-C", "en-US-Standard-D",
        "en-US-Standard-E", "en-US-Standard-F", "en-US-Standard-G", "en-US-Standard-H",
        "en-US-Standard-I", "en-US-Standard-J",
        "en-US-Wavenet-A", "en-US-Wavenet-B", "en-US-Wavenet-C", "en-US-Wavenet-D",
        "en-US-Wavenet-E", "en-US-Wavenet-F", "en-US-Wavenet-G", "en-US-Wavenet-H",
        "en-US-Wavenet-I", "en-US-Wavenet-J",
    ],
    "en-GB": [
        "en-GB-Standard-A", "en-GB-Standard-B", "en-GB-Standard-C", "en-GB-Standard-D",
        "en-GB-Wavenet-A", "en-GB-Wavenet-B", "en-GB-Wavenet-C", "en-GB-Wavenet-D",
    ],
    "es-ES": ["es-ES-Standard-A", "es-ES-Standard-B", "es-ES-Wavenet-A", "es-ES-Wavenet-B"],
    "fr-FR": [
        "fr-FR-Standard-A", "fr-FR-Standard-B", "fr-FR-Standard-C", "fr-FR-Standard-D",
        "fr-FR-Wavenet-A", "fr-FR-Wavenet-B", "fr-FR-Wavenet-C", "fr-FR-Wavenet-D",
    ],
    "de-DE": [
        "de-DE-Standard-A", "de-DE-Standard-B", "de-DE-Standard-C", "de-DE-Standard-D",
        "de-DE-Standard-E", "de-DE-Standard-F",
        "de-DE-Wavenet-A", "de-DE-Wavenet-B", "de-DE-Wavenet-C", "de-DE-Wavenet-D",
    ],
}

class GoogleCloudTTSProvider(HostedTTSProvider):
    name = "google"
    label = "Google Cloud"
    default_voice = "en-US-Journey-F"
    default_language = "en-US"
    base_url = "https://texttospeech.googleapis.com/v1"

    @property
    def voices(self) -> List[str]:
        return [voice for voices in GOOGLE_VOICES.values() for voice in voices]

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        self.require_key()
        language = options.language if options.language in GOOGLE_VOICES else self.default_language
        voice = options.voice or self.default_voice
        if voice not in GOOGLE_VOICES[language]:
            logger.warning(f"Unknown Google Cloud voice for {language}: {voice}. Using default: {self.default_voice}")
            language, voice = self.default_language, self.default_voice

        data = await self._post(
            f"{self.base_url}/text:synthesize?key={self.api_key}",
            payload={
                "input": {"text": text},
                "voice": {"languageCode": language, "name": voice, "ssmlGender": "FEMALE"},
                "audioConfig": {
                    "audioEncoding": "MP3",
                    "speakingRate": options.speed or 1.0,
                    "pitch": options.pitch or 0.0,
                },
            },
            headers={"Content-Type": "application/json"},
            expect_json=True
        )
        try:
            return base64.b64decode(data["audioContent"])
        except (KeyError, TypeError, ValueError) as e:
            raise TTSProviderError("Google Cloud TTS returned no audio content") from e

# Edge TTS voice per language prefix
EDGE_TTS_VOICES = {
    "en": "en-US-AriaNeural",
    "hi": "hi-IN-MadhurNeural",
    "te": "te-IN-MohanNeural",
    "es": "es-ES-ElviraNeural",
    "fr": "fr-FR-DeniseNeural",
    "de": "de-DE-KatjaNeural",
}

class EdgeTTSProvider(TTSProvider):
    """Microsoft Edge neural voices via edge-tts (no credential needed)"""

    name = "edge"
    default_voice = "en-US-AriaNeural"

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    @property
    def voices(self) -> List[str]:
        extra = ["en-US-GuyNeural", "en-US-JennyNeural", "en-GB-SoniaNeural", "en-GB-RyanNeural",
                 "hi-IN-SwaraNeural", "te-IN-ShrutiNeural"]
        return list(EDGE_TTS_VOICES.values()) + extra

    def _voice_for(self, options: TTSOptions) -> str:
        if options.voice:
            return self.resolve_voice(options.voice)
        language = (options.language or "en").split("-")[0].lower()
        return EDGE_TTS_VOICES.get(language, self.default_voice)

    async def _stream(self, text: str, voice: str, rate: str) -> bytes:
        audio = bytearray()
        communicate = edge_tts.Communicate(text, voice, rate=rate)
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio.extend(chunk["data"])
        return bytes(audio)

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        voice = self._voice_for(options)
        rate = f"{round(((options.speed or 1.0) - 1.0) * 100):+d}%"
        try:
            return await asyncio.wait_for(self._stream(text, voice, rate), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TTSProviderError("Edge TTS timed out") from e
        except TTSError:
            raise
        except Exception as e:
            raise TTSProviderError(f"Edge TTS failed: {e}") from e

class GTTSProvider(TTSProvider):
    """Google Translate speech via gTTS (no credential needed)"""

    name = "gtts"
    default_voice = "default"

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    def _synthesize_sync(self, text: str, language: str) -> bytes:
        audio_buffer = io.BytesIO()
        gTTS(text=text, lang=language, slow=False).write_to_fp(audio_buffer)
        return audio_buffer.getvalue()

    async def synthesize(self, text: str, options: TTSOptions) -> bytes:
        language = (options.language or "en").split("-")[0].lower()
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self._synthesize_sync, text, language),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise TTSProviderError("gTTS timed out") from e
        except Exception as e:
            raise TTSProviderError(f"gTTS failed: {e}") from e

def default_tts_providers(settings: Settings) -> List[TTSProvider]:
    """Providers registered by default, in registration order"""
    timeout = settings.TTS_TIMEOUT
    return [
        OpenAITTSProvider(settings.OPENAI_API_KEY, timeout),
        ElevenLabsTTSProvider(settings.ELEVENLABS_API_KEY, timeout),
        GoogleCloudTTSProvider(settings.GOOGLE_CLOUD_API_KEY, timeout),
        EdgeTTSProvider(timeout),
        GTTSProvider(timeout),
    ]

class TTSService:
    """
    Synthesizes text to a temporary MP3 file, falling back across providers.

    The requested provider is tried first, then every name in
    ``fallback_order`` except the one already tried, strictly one after
    another. Only a successful attempt writes a file; each file is tracked
    until the periodic sweep, ``remove_file`` or ``cleanup`` deletes it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[Iterable[TTSProvider]] = None,
        fallback_order: Optional[List[str]] = None,
        output_dir: Optional[Path] = None
    ):
        self.settings = settings or default_settings
        self.registry = ProviderRegistry("TTS", default=self.settings.TTS_DEFAULT_PROVIDER)
        for provider in (providers if providers is not None else default_tts_providers(self.settings)):
            self.registry.register(provider)
        self.fallback_order = list(fallback_order if fallback_order is not None else self.settings.TTS_FALLBACK_ORDER)
        self.output_dir = Path(output_dir or self.settings.UPLOADS_PATH)
        self.cleanup_interval = self.settings.TTS_CLEANUP_INTERVAL
        self.max_file_age = self.settings.TTS_MAX_FILE_AGE
        self.temp_files: List[Path] = []
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info(f"TTSService initialized (providers: {self.registry.names()}, fallback: {self.fallback_order})")

    async def synthesize_to_file(
        self,
        text: str,
        provider: Optional[str] = None,
        options: Optional[TTSOptions] = None
    ) -> Path:
        """
        Synthesize ``text`` and return the path of the written audio file

        Raises:
            AllProvidersFailedError: requested provider and all fallbacks failed
        """
        provider = provider or self.registry.default
        options = options or TTSOptions()
        errors: Dict[str, str] = {}

        candidates = [provider] + [name for name in self.fallback_order if name != provider]
        for index, name in enumerate(candidates):
            if index > 0:
                logger.info(f"Trying fallback TTS provider: {name}")
            try:
                return await self._try_provider(text, name, options)
            except Exception as e:
                errors[name] = str(e)
                if index == 0:
                    logger.warning(f"Primary TTS provider '{name}' failed: {e}")
                else:
                    logger.warning(f"Fallback TTS provider '{name}' also failed: {e}")

        logger.error(f"All TTS providers failed: {errors}")
        raise AllProvidersFailedError(errors)

    async def _try_provider(self, text: str, name: str, options: TTSOptions) -> Path:
        tts_provider = self.registry.get(name)
        audio = await tts_provider.synthesize(text, dataclasses.replace(options))
        if not audio:
            raise TTSProviderError(f"TTS provider '{name}' returned no audio")

        filepath = await self._write_temp_file(audio)
        logger.info(f"TTS audio saved to: {filepath} using {name}")
        return filepath

    def _new_filename(self) -> str:
        return f"tts_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}.mp3"

    async def _write_temp_file(self, audio: bytes) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / self._new_filename()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, filepath.write_bytes, audio)
        except OSError:
            filepath.unlink(missing_ok=True)
            raise
        self.temp_files.append(filepath)
        return filepath

    def owns(self, filepath: Path) -> bool:
        """True if the path is a tracked artifact"""
        return Path(filepath) in self.temp_files

    def remove_file(self, filepath: Path):
        """Delete one artifact right away and stop tracking it"""
        filepath = Path(filepath)
        with suppress(ValueError):
            self.temp_files.remove(filepath)
        try:
            filepath.unlink(missing_ok=True)
            logger.debug(f"Removed TTS file: {filepath}")
        except OSError as e:
            logger.warning(f"Failed to delete TTS file {filepath}: {e}")

    def cleanup_temp_files(self, now: Optional[float] = None) -> int:
        """
        Delete tracked files older than the retention window

        Files that vanished are dropped from tracking.

        Returns:
            Number of files removed
        """
        now = time.time() if now is None else now
        removed = 0
        kept: List[Path] = []
        for filepath in self.temp_files:
            try:
                age = now - filepath.stat().st_mtime
                if age > self.max_file_age:
                    filepath.unlink()
                    removed += 1
                    logger.info(f"Cleaned up old TTS file: {filepath}")
                else:
                    kept.append(filepath)
            except OSError as e:
                logger.warning(f"Failed to clean up TTS file {filepath}: {e}")
        self.temp_files = kept
        return removed

    def cleanup(self):
        """Delete every tracked file"""
        for filepath in self.temp_files:
            try:
                if filepath.exists():
                    filepath.unlink()
                    logger.info(f"Cleaned up TTS file: {filepath}")
            except OSError as e:
                logger.warning(f"Failed to clean up TTS file {filepath}: {e}")
        self.temp_files = []

    async def _cleanup_loop(self):
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.cleanup_temp_files()
            if removed:
                logger.info(f"TTS sweep removed {removed} files")

    def start(self):
        """Start the periodic sweep on the running event loop"""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())
            logger.info(f"TTS cleanup sweep started (every {self.cleanup_interval}s)")

    async def stop(self):
        """Cancel the periodic sweep"""
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None
        logger.info("TTS cleanup sweep stopped")

    def get_available_providers(self) -> List[str]:
        return self.registry.names()

    def get_available_voices(self, provider: Optional[str] = None) -> Dict[str, List[str]]:
        if provider:
            return {provider: list(self.registry.get(provider).voices)}
        return {p.name: list(p.voices) for p in self.registry.all()}

    def set_default_provider(self, provider: str):
        self.registry.set_default(provider)
