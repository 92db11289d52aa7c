"""
JARVIS voice assistant server configuration
Environment-driven settings for the LLM, TTS, email and integrations
"""
import os
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # === Paths ===
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    LOGS_PATH: Path = PROJECT_ROOT / "logs"
    UPLOADS_PATH: Path = PROJECT_ROOT / "uploads"

    # === Server Configuration ===
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    CORS_ORIGINS: List[str] = ["*"]

    # === LLM Configuration (OpenRouter / OpenAI compatible) ===
    OPENROUTER_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    LLM_API_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    LLM_MODEL_NAME: str = "deepseek/deepseek-r1"
    LLM_MAX_TOKENS: int = 800
    LLM_IMAGE_MAX_TOKENS: int = 500
    LLM_TEMPERATURE: float = 0.7
    LLM_HISTORY_WINDOW: int = 15  # Last N turns forwarded to the model
    LLM_TIMEOUT: int = 60
    LLM_APP_TITLE: str = "Jarvis Voice Assistant"
    LLM_APP_REFERER: str = "http://localhost:5000"

    # === Speech-to-Text (faster-whisper, optional) ===
    STT_ENABLED: bool = True
    WHISPER_MODEL: str = "small"
    WHISPER_DEVICE: str = "cpu"
    WHISPER_COMPUTE_TYPE: str = "int8"
    WHISPER_BEAM_SIZE: int = 5
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB

    # === Text-to-Speech ===
    ELEVENLABS_API_KEY: str = ""
    GOOGLE_CLOUD_API_KEY: str = ""
    TTS_DEFAULT_PROVIDER: str = "openai"
    TTS_FALLBACK_ORDER: List[str] = ["openai", "elevenlabs", "google", "edge", "gtts"]
    TTS_TIMEOUT: int = 30
    TTS_CLEANUP_INTERVAL: int = 60 * 60  # Sweep every hour
    TTS_MAX_FILE_AGE: int = 24 * 60 * 60  # Keep artifacts for 24 hours

    # === Email ===
    EMAIL_DEFAULT_PROVIDER: str = "demo"
    SENDGRID_API_KEY: str = ""
    GMAIL_ACCESS_TOKEN: str = ""
    FROM_EMAIL: str = "assistant@yourapp.com"
    EMAIL_TIMEOUT: int = 15

    # === Weather (OpenWeatherMap) ===
    WEATHER_API_KEY: str = os.getenv("OPENWEATHER_API_KEY", "")
    WEATHER_API_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    WEATHER_DEFAULT_LOCATION: str = "New York"
    WEATHER_TIMEOUT: int = 10

    # === News (NewsAPI) ===
    NEWS_API_KEY: str = os.getenv("NEWSAPI_KEY", "")
    NEWS_API_URL: str = "https://newsapi.org/v2"
    NEWS_DEFAULT_COUNTRY: str = "us"
    NEWS_PAGE_SIZE: int = 5
    NEWS_TIMEOUT: int = 10

    # === Music ===
    MUSIC_LOOKUP_TIMEOUT: float = 5.0

    # === Logging ===
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_FILE_NAME: str = "assistant.log"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 3
    LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

    @property
    def llm_api_key(self) -> Optional[str]:
        """First configured model credential (OpenRouter preferred)"""
        return self.OPENROUTER_API_KEY or self.OPENAI_API_KEY or None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

# Global settings instance
settings = Settings()

# Ensure required directories exist
settings.LOGS_PATH.mkdir(exist_ok=True)
settings.UPLOADS_PATH.mkdir(exist_ok=True)
