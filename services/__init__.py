"""Assistant services - LLM, TTS, STT, email, reminders, weather, news, music, documents"""
from .llm import LLMGateway, LLMError, LLMAuthenticationError, AssistantReply
from .tts import TTSService, TTSOptions, TTSError, AllProvidersFailedError
from .stt import WhisperSTT, TranscriptionUnavailableError
from .email import EmailService, EmailData, EmailResult
from .reminders import ReminderService, Reminder

__all__ = [
    'LLMGateway', 'LLMError', 'LLMAuthenticationError', 'AssistantReply',
    'TTSService', 'TTSOptions', 'TTSError', 'AllProvidersFailedError',
    'WhisperSTT', 'TranscriptionUnavailableError',
    'EmailService', 'EmailData', 'EmailResult',
    'ReminderService', 'Reminder',
]
