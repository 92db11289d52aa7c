"""
Server-side speech-to-text using faster-whisper (loaded on first use)
"""
import asyncio
from pathlib import Path
from typing import Optional, Dict, Any
from core.config import settings as default_settings, Settings
from core.logger import setup_logger

logger = setup_logger(__name__)

class TranscriptionUnavailableError(Exception):
    """Server-side transcription is disabled or failed; the client should transcribe"""

class WhisperSTT:
    """Speech recognition using faster-whisper"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.enabled = self.settings.STT_ENABLED
        self.model = None

    def _load_model(self):
        """Load Whisper model"""
        from faster_whisper import WhisperModel

        logger.info(f"Loading Whisper model: {self.settings.WHISPER_MODEL}")
        self.model = WhisperModel(
            self.settings.WHISPER_MODEL,
            device=self.settings.WHISPER_DEVICE,
            compute_type=self.settings.WHISPER_COMPUTE_TYPE
        )
        logger.info("Whisper model loaded successfully")

    def _transcribe_sync(self, audio_path: Path) -> Dict[str, Any]:
        if self.model is None:
            self._load_model()
        segments, info = self.model.transcribe(
            str(audio_path),
            beam_size=self.settings.WHISPER_BEAM_SIZE,
            vad_filter=True
        )
        text = " ".join(segment.text for segment in segments).strip()
        logger.info(f"Transcribed: '{text}' (lang: {info.language}, prob: {info.language_probability:.2f})")
        return {"text": text, "language": info.language}

    async def transcribe_file(self, audio_path: Path) -> Dict[str, Any]:
        """
        Transcribe an uploaded audio file

        Returns:
            Dict with 'text' and 'language'

        Raises:
            TranscriptionUnavailableError: disabled, model unavailable or decode failure
        """
        if not self.enabled:
            raise TranscriptionUnavailableError("Server-side transcription is disabled")

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._transcribe_sync, Path(audio_path))
        except Exception as e:
            logger.error(f"Transcription error: {e}")
            raise TranscriptionUnavailableError(str(e)) from e
