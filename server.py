"""
Voice Assistant Server - FastAPI
Conversations, voice processing and the integration endpoints behind them
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from core.config import settings as default_settings, Settings
from core.logger import setup_logger
from core.registry import ProviderNotFoundError
from core.storage import ConversationNotFoundError
from services.container import ServiceContainer, build_services
from services.documents import DocumentError
from services.email import EmailData
from services.llm import LLMError, LLMAuthenticationError
from services.news import NewsError
from services.stt import TranscriptionUnavailableError
from services.tts import TTSOptions, TTSError

logger = setup_logger(__name__)

VERSION = "1.0.0"

CLIENT_SIDE_TRANSCRIPTION_MESSAGE = (
    "Server-side transcription not available. Please use client-side speech recognition."
)

# === Request Models ===

class ConversationRequest(BaseModel):
    title: str

class MessageRequest(BaseModel):
    role: str
    content: str
    audioUrl: Optional[str] = None

class ReminderRequestBody(BaseModel):
    title: str
    dueDate: str
    description: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None

class EmailRequestBody(BaseModel):
    to: str
    subject: str
    body: str
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None
    provider: Optional[str] = None

class DocumentRequest(BaseModel):
    text: Optional[str] = None
    maxLength: int = 200

class ImageRequest(BaseModel):
    imageData: Optional[str] = None
    query: Optional[str] = None

class SynthesizeRequest(BaseModel):
    text: Optional[str] = None
    provider: Optional[str] = None
    options: Dict[str, Any] = {}

def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services

router = APIRouter()

# === Health ===

@router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": VERSION,
        "services": {
            "llm": "configured" if services.settings.llm_api_key else "missing API key",
            "stt": "enabled" if services.stt.enabled else "client-side",
            "tts": services.tts.get_available_providers(),
            "email": services.email.get_available_providers(),
        }
    }

# === Conversations ===

@router.get("/api/conversations")
async def list_conversations(services: ServiceContainer = Depends(get_services)):
    return [c.to_dict() for c in services.store.list_conversations()]

@router.post("/api/conversations", status_code=201)
async def create_conversation(body: ConversationRequest, services: ServiceContainer = Depends(get_services)):
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Invalid conversation data")
    return services.store.create_conversation(title).to_dict()

@router.get("/api/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, services: ServiceContainer = Depends(get_services)):
    conversation = services.store.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation.to_dict()

@router.patch("/api/conversations/{conversation_id}")
async def update_conversation(
    conversation_id: str,
    body: ConversationRequest,
    services: ServiceContainer = Depends(get_services)
):
    conversation = services.store.update_conversation(conversation_id, title=body.title)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation.to_dict()

@router.delete("/api/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str, services: ServiceContainer = Depends(get_services)):
    if not services.store.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True}

@router.get("/api/conversations/{conversation_id}/messages")
async def list_messages(conversation_id: str, services: ServiceContainer = Depends(get_services)):
    return [m.to_dict() for m in services.store.list_messages(conversation_id)]

@router.post("/api/conversations/{conversation_id}/messages", status_code=201)
async def create_message(
    conversation_id: str,
    body: MessageRequest,
    services: ServiceContainer = Depends(get_services)
):
    try:
        message = services.store.create_message(conversation_id, body.role, body.content, body.audioUrl)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid message data: {e}")
    return message.to_dict()

# === Voice ===

UPLOAD_CHUNK_SIZE = 64 * 1024

async def _read_upload(audio: UploadFile, limit: int) -> bytes:
    """Read the upload in chunks, stopping as soon as it passes the size limit"""
    chunks = []
    size = 0
    while True:
        chunk = await audio.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=400, detail="Uploaded audio file is too large")
        chunks.append(chunk)
    return b"".join(chunks)

async def _save_upload(audio: UploadFile, settings: Settings) -> Path:
    data = await _read_upload(audio, settings.MAX_UPLOAD_BYTES)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded audio file is empty")

    suffix = Path(audio.filename or "").suffix or ".webm"
    upload_dir = Path(settings.UPLOADS_PATH)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filepath = upload_dir / f"upload_{uuid.uuid4().hex}{suffix}"
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, filepath.write_bytes, data)
    logger.info(f"Received audio: {len(data)} bytes -> {filepath.name}")
    return filepath

@router.post("/api/process-voice")
async def process_voice(
    audio: Optional[UploadFile] = File(None),
    transcriptionText: Optional[str] = Form(None),
    conversationId: Optional[str] = Form(None),
    imageData: Optional[str] = Form(None),
    generateTTS: bool = Form(False),
    ttsProvider: Optional[str] = Form(None),
    services: ServiceContainer = Depends(get_services)
):
    """
    Main voice interface

    Accepts either pre-transcribed text or an audio upload, runs the
    assistant pipeline and returns transcription, response, action,
    data and audioUrl.
    """
    text = (transcriptionText or "").strip()
    upload_path: Optional[Path] = None
    try:
        if not text:
            if audio is None:
                raise HTTPException(status_code=400, detail="No audio file or transcription text provided")
            upload_path = await _save_upload(audio, services.settings)
            try:
                transcription = await services.stt.transcribe_file(upload_path)
            except TranscriptionUnavailableError as e:
                logger.warning(f"Server-side transcription unavailable: {e}")
                return JSONResponse(
                    status_code=400,
                    content={
                        "detail": CLIENT_SIDE_TRANSCRIPTION_MESSAGE,
                        "useClientSideTranscription": True,
                    }
                )
            text = transcription.get("text", "").strip()
            if not text:
                raise HTTPException(status_code=400, detail="No speech detected")

        return await services.assistant.process(
            text,
            conversation_id=conversationId,
            image_data=imageData,
            generate_tts=generateTTS,
            tts_provider=ttsProvider,
        )

    except HTTPException:
        raise
    except LLMAuthenticationError as e:
        logger.error(f"Voice processing error: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to process voice input: LLM authentication failed, check the API key configuration"
        )
    except LLMError as e:
        logger.error(f"Voice processing error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process voice input")
    except Exception as e:
        logger.exception(f"Voice processing error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process voice input")
    finally:
        if upload_path is not None:
            upload_path.unlink(missing_ok=True)

# === Integrations ===

@router.get("/api/weather")
async def get_weather(location: Optional[str] = None, services: ServiceContainer = Depends(get_services)):
    return await services.weather.get_weather(location or services.settings.WEATHER_DEFAULT_LOCATION)

@router.get("/api/news")
async def get_news(
    category: str = "general",
    country: Optional[str] = None,
    services: ServiceContainer = Depends(get_services)
):
    try:
        return await services.news.get_top_headlines(category, country)
    except NewsError as e:
        logger.error(f"News API error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch news data")

@router.get("/api/news/search")
async def search_news(q: Optional[str] = None, services: ServiceContainer = Depends(get_services)):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    try:
        return await services.news.search_news(q.strip())
    except NewsError as e:
        logger.error(f"News search error: {e}")
        raise HTTPException(status_code=500, detail="Failed to search news")

@router.get("/api/music")
async def get_music(q: str = "ambient music", services: ServiceContainer = Depends(get_services)):
    return await services.music.lookup_track(q)

# === Reminders ===

@router.get("/api/reminders")
async def list_reminders(includeCompleted: bool = False, services: ServiceContainer = Depends(get_services)):
    return [r.to_dict() for r in services.reminders.get_reminders(include_completed=includeCompleted)]

@router.get("/api/reminders/upcoming")
async def upcoming_reminders(hours: int = 24, services: ServiceContainer = Depends(get_services)):
    return [r.to_dict() for r in services.reminders.get_upcoming_reminders(hours=hours)]

@router.post("/api/reminders", status_code=201)
async def create_reminder(body: ReminderRequestBody, services: ServiceContainer = Depends(get_services)):
    try:
        reminder = services.reminders.create_reminder(
            title=body.title,
            due_date=body.dueDate,
            description=body.description,
            priority=body.priority,
            category=body.category,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to create reminder: {e}")
    return reminder.to_dict()

@router.patch("/api/reminders/{reminder_id}/complete")
async def complete_reminder(reminder_id: str, services: ServiceContainer = Depends(get_services)):
    reminder = services.reminders.complete_reminder(reminder_id)
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder.to_dict()

# === Email ===

@router.post("/api/email/send")
async def send_email(body: EmailRequestBody, services: ServiceContainer = Depends(get_services)):
    data = EmailData(to=body.to, subject=body.subject, body=body.body, cc=body.cc or [], bcc=body.bcc or [])
    try:
        result = await services.email.send_email(data, body.provider)
    except ProviderNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()

# === Documents and images ===

@router.post("/api/document/summarize")
async def summarize_document(body: DocumentRequest, services: ServiceContainer = Depends(get_services)):
    if not body.text or not body.text.strip():
        raise HTTPException(status_code=400, detail="Text content is required")
    try:
        return await services.documents.summarize_text(body.text, body.maxLength)
    except DocumentError as e:
        logger.error(f"Document summarization error: {e}")
        raise HTTPException(status_code=500, detail="Failed to summarize document")

@router.post("/api/document/analyze")
async def analyze_document(body: DocumentRequest, services: ServiceContainer = Depends(get_services)):
    if not body.text or not body.text.strip():
        raise HTTPException(status_code=400, detail="Text content is required")
    try:
        return await services.documents.analyze_document(body.text)
    except DocumentError as e:
        logger.error(f"Document analysis error: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze document")

@router.post("/api/image/analyze")
async def analyze_image(body: ImageRequest, services: ServiceContainer = Depends(get_services)):
    if not body.imageData:
        raise HTTPException(status_code=400, detail="Image data is required")
    try:
        analysis = await services.llm.analyze_image(body.imageData, body.query)
    except LLMError as e:
        logger.error(f"Image analysis error: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze image")
    return {"analysis": analysis}

# === TTS ===

@router.post("/api/tts/synthesize")
async def synthesize_speech(body: SynthesizeRequest, services: ServiceContainer = Depends(get_services)):
    """Synthesize speech and stream the MP3; the file is deleted once sent"""
    if not body.text or not body.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    try:
        filepath = await services.tts.synthesize_to_file(
            body.text,
            body.provider,
            TTSOptions.from_dict(body.options)
        )
    except TTSError as e:
        logger.error(f"TTS synthesis error: {e}")
        raise HTTPException(status_code=500, detail="Failed to synthesize speech")

    return FileResponse(
        filepath,
        media_type="audio/mpeg",
        filename=filepath.name,
        background=BackgroundTask(services.tts.remove_file, filepath)
    )

@router.get("/api/tts/providers")
async def tts_providers(services: ServiceContainer = Depends(get_services)):
    return {
        "providers": services.tts.get_available_providers(),
        "default": services.tts.registry.default,
    }

@router.get("/api/tts/voices")
async def tts_voices(provider: Optional[str] = None, services: ServiceContainer = Depends(get_services)):
    try:
        return services.tts.get_available_voices(provider)
    except ProviderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/api/audio/{filename}")
async def get_audio(filename: str, services: ServiceContainer = Depends(get_services)):
    """Serve a generated speech file referenced by an audioUrl; it is deleted once sent"""
    if Path(filename).name != filename or not filename.endswith(".mp3"):
        raise HTTPException(status_code=400, detail="Invalid audio filename")
    filepath = services.tts.output_dir / filename
    if not services.tts.owns(filepath) or not filepath.exists():
        raise HTTPException(status_code=404, detail="Audio not found")
    return FileResponse(
        filepath,
        media_type="audio/mpeg",
        background=BackgroundTask(services.tts.remove_file, filepath)
    )

# === App ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    services: ServiceContainer = app.state.services
    logger.info("=" * 50)
    logger.info("Voice Assistant Starting")
    logger.info("=" * 50)
    logger.info(f"Host: {services.settings.HOST}:{services.settings.PORT}")
    logger.info(f"LLM model: {services.settings.LLM_MODEL_NAME}")
    logger.info(f"TTS providers: {services.tts.get_available_providers()}")
    logger.info("=" * 50)
    services.tts.start()
    try:
        yield
    finally:
        logger.info("Voice Assistant shutting down...")
        await services.tts.stop()
        services.tts.cleanup()

def create_app(settings: Optional[Settings] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the FastAPI app around one service container"""
    settings = settings or (services.settings if services else default_settings)

    app = FastAPI(
        title="JARVIS Voice Assistant",
        description="Voice assistant backend with LLM, TTS and integrations",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=False,
        log_level="info"
    )
