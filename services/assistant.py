"""
Voice pipeline: history -> LLM -> structured reply -> intent router -> optional TTS
"""
from typing import Dict, Any, Optional
from core.logger import setup_logger
from core.storage import ConversationStore
from services.llm import LLMGateway
from services.tts import TTSService, TTSOptions, TTSError
from tools.intent_router import IntentRouter

logger = setup_logger(__name__)

AUDIO_ROUTE = "/api/audio"

class VoiceAssistant:
    """Handles one user turn end to end"""

    def __init__(
        self,
        store: ConversationStore,
        llm: LLMGateway,
        router: IntentRouter,
        tts: TTSService
    ):
        self.store = store
        self.llm = llm
        self.router = router
        self.tts = tts

    def _history(self, conversation_id: Optional[str]):
        if not conversation_id:
            return []
        if self.store.get_conversation(conversation_id) is None:
            logger.warning(f"Unknown conversation {conversation_id[:8]}, continuing without history")
            return []
        return [message.to_history() for message in self.store.list_messages(conversation_id)]

    async def process(
        self,
        text: str,
        conversation_id: Optional[str] = None,
        image_data: Optional[str] = None,
        generate_tts: bool = False,
        tts_provider: Optional[str] = None,
        tts_options: Optional[TTSOptions] = None
    ) -> Dict[str, Any]:
        """
        Process one transcribed utterance

        Returns:
            Dict with transcription, response, action, data and audioUrl

        Raises:
            ValueError: empty utterance
            LLMError: the model call failed (LLMAuthenticationError for bad credentials)
        """
        if not text or not text.strip():
            raise ValueError("No transcription text provided")
        text = text.strip()
        logger.info(f"Processing utterance: {text[:100]}")

        reply = await self.llm.process(text, self._history(conversation_id), image_data)
        data = await self.router.dispatch(reply.action, reply.data, text)

        audio_url = None
        if generate_tts:
            try:
                audio_path = await self.tts.synthesize_to_file(reply.message, tts_provider, tts_options)
                audio_url = f"{AUDIO_ROUTE}/{audio_path.name}"
            except TTSError as e:
                logger.error(f"TTS generation error: {e}")

        return {
            "transcription": text,
            "response": reply.message,
            "action": reply.action,
            "data": data,
            "audioUrl": audio_url,
        }
