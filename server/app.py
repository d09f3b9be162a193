"""FastAPI server for wordsnap application."""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from functools import partial
from typing import Literal, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from core.config import MAX_AUDIO_BYTES, MODES, MODE_PRONOUNCE
from core.errors import (
    EmptyWordList, InvalidSessionOperation, InvalidUpload, QuizNotFound,
    RecognitionFailure, WordSnapError
)
from core.evaluator import AttemptEvaluator
from core.models import Quiz

from server.file_storage import FileStorage
from server.quiz_service import QuizService
from server.settings import load_settings
from server.uploads import spool_to_temp, validate_audio_type, validate_image_type

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidUpload: 400,
    RecognitionFailure: 422,
    EmptyWordList: 422,
    QuizNotFound: 404,
    InvalidSessionOperation: 409,
}


# Pydantic models for API
class CreateQuizRequest(BaseModel):
    owner_id: str
    text: str
    mode: Literal['pronounce', 'spell'] = MODE_PRONOUNCE


class AttemptRequest(BaseModel):
    word: str
    transcript: str
    mode: Optional[Literal['pronounce', 'spell']] = None


class AttemptModel(BaseModel):
    transcript: str
    pronunciation_score: float
    spelling_score: float
    feedback: str
    is_correct: bool
    timestamp: Optional[str]


class WordResultModel(BaseModel):
    word: str
    mode: str
    attempts: list[AttemptModel]
    final_score: Optional[float]
    completed: bool


class QuizResponse(BaseModel):
    session_id: str
    owner_id: str
    extracted_words: list[str]
    mode: str
    word_results: list[WordResultModel]
    current_word_index: int
    current_word: Optional[str]
    status: str
    overall_score: Optional[float]
    completed_at: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]
    version: int
    progress_display: str


class AttemptResultModel(BaseModel):
    word: str
    transcript: str
    pronunciation_score: float
    spelling_score: float
    feedback: str
    is_correct: bool
    retry: bool
    phonetic_similarity: float
    strategy: str


class AttemptResponse(BaseModel):
    result: AttemptResultModel
    quiz: QuizResponse


class TranscriptResponse(BaseModel):
    transcript: str
    use_client_recognition: bool


class WordSummary(BaseModel):
    word: str
    mode: str
    attempts: int
    final_score: Optional[float]
    completed: bool
    correct: bool


class ResultsResponse(BaseModel):
    session_id: str
    status: str
    overall_score: Optional[float]
    completed_at: Optional[str]
    total_words: int
    correct_words: int
    words: list[WordSummary]


class QuizSummary(BaseModel):
    session_id: str
    mode: str
    status: str
    word_count: int
    progress_display: str
    overall_score: Optional[float]
    created_at: Optional[str]


def quiz_response(quiz: Quiz) -> QuizResponse:
    return QuizResponse(
        **quiz.to_dict(),
        current_word=quiz.current_word,
        progress_display=quiz.get_progress_display()
    )


def create_storage(storage_type: str):
    """Use PostgreSQL by default, set WORDSNAP_STORAGE=file to use file storage."""
    if storage_type == 'file':
        logger.info("Using file storage")
        return FileStorage()
    from server.postgres_storage import PostgresStorage
    logger.info("Using PostgreSQL storage")
    return PostgresStorage()


def build_service() -> QuizService:
    """Resolve configuration once and wire the service and its collaborators."""
    storage_type = os.environ.get('WORDSNAP_STORAGE') or 'postgres'
    storage = create_storage(storage_type)
    try:
        config = storage.load_config()
    except FileNotFoundError:
        config = {}
    settings = load_settings(config)
    if settings.storage_type != storage_type:
        # Config file picked a different backend
        storage = create_storage(settings.storage_type)

    provider = None
    if settings.gemini_api_key:
        from server.gemini_provider import GeminiProvider
        provider = GeminiProvider(settings.gemini_api_key, model_name=settings.gemini_model)
        logger.info(f"AI provider initialized: {settings.gemini_model}")

    evaluator = AttemptEvaluator(settings.evaluator_config, scorer=provider)
    return QuizService(
        storage,
        evaluator,
        recognizer=provider,
        transcriber=provider,
        retry_policy=settings.retry_policy,
        max_upload_bytes=settings.max_upload_bytes
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=logging.INFO)
    app.state.service = build_service()
    yield
    app.state.service.evaluator.close()
    if hasattr(app.state.service.storage, 'close'):
        app.state.service.storage.close()


app = FastAPI(title="WordSnap API", description="Photo vocabulary pronunciation and spelling practice API",
              lifespan=lifespan)


def get_service(request: Request) -> QuizService:
    return request.app.state.service


async def run_service(func, *args, **kwargs):
    """Run a blocking service call in the executor, mapping domain errors to HTTP."""
    loop = asyncio.get_event_loop()
    try:
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))
    except WordSnapError as e:
        status_code = ERROR_STATUS.get(type(e), 400)
        logger.info(f"{func.__name__} rejected [{e.kind}]: {e.message}")
        raise HTTPException(status_code=status_code, detail={'error': e.kind, 'message': e.message})


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}")


@app.get("/")
async def root():
    """Health check."""
    return {"status": "ok", "service": "wordsnap"}


@app.post("/api/quizzes/upload", response_model=QuizResponse)
async def create_quiz_from_image(image: UploadFile = File(...),
                                 owner_id: str = Form(...),
                                 mode: str = Form(MODE_PRONOUNCE),
                                 service: QuizService = Depends(get_service)):
    """Start a quiz from the words found in a photo."""
    _check_mode(mode)
    await run_service(validate_image_type, image.content_type)
    suffix = os.path.splitext(image.filename or '')[1]
    path, size = await run_service(spool_to_temp, image.file, suffix, service.max_upload_bytes)
    quiz = await run_service(service.start_from_image, owner_id, path, image.content_type, size, mode)
    return quiz_response(quiz)


@app.post("/api/quizzes", response_model=QuizResponse)
async def create_quiz_from_text(request: CreateQuizRequest,
                                service: QuizService = Depends(get_service)):
    """Start a quiz from typed text."""
    quiz = await run_service(service.start_from_text, request.owner_id, request.text, request.mode)
    return quiz_response(quiz)


@app.get("/api/quizzes/{session_id}", response_model=QuizResponse)
async def get_quiz(session_id: str, service: QuizService = Depends(get_service)):
    quiz = await run_service(service.get_quiz, session_id)
    return quiz_response(quiz)


@app.get("/api/quizzes/{session_id}/results", response_model=ResultsResponse)
async def get_results(session_id: str, service: QuizService = Depends(get_service)):
    """Per-word results and the overall score."""
    return await run_service(service.results, session_id)


@app.get("/api/users/{owner_id}/quizzes")
async def list_quizzes(owner_id: str, service: QuizService = Depends(get_service)):
    """Quiz history for a user, newest first."""
    quizzes = await run_service(service.list_quizzes, owner_id)
    summaries = [
        QuizSummary(
            session_id=q.session_id,
            mode=q.mode,
            status=q.status,
            word_count=len(q.extracted_words),
            progress_display=q.get_progress_display(),
            overall_score=q.overall_score,
            created_at=q.created_at.isoformat()
        )
        for q in quizzes
    ]
    return {"total": len(summaries), "quizzes": summaries}


@app.post("/api/quizzes/{session_id}/attempts", response_model=AttemptResponse)
async def submit_attempt(session_id: str, request: AttemptRequest,
                         service: QuizService = Depends(get_service)):
    """Evaluate an attempt on the current word and record it."""
    result, quiz = await run_service(
        service.submit_attempt, session_id, request.word, request.transcript, request.mode
    )
    return AttemptResponse(result=AttemptResultModel(**result.to_dict()), quiz=quiz_response(quiz))


@app.post("/api/quizzes/{session_id}/audio", response_model=TranscriptResponse)
async def transcribe_attempt_audio(session_id: str, audio: UploadFile = File(...),
                                   service: QuizService = Depends(get_service)):
    """Transcribe a spoken attempt. An empty transcript tells the client to
    use its own speech recognition."""
    await run_service(service.get_quiz, session_id)
    await run_service(validate_audio_type, audio.content_type)
    suffix = os.path.splitext(audio.filename or '')[1]
    path, size = await run_service(spool_to_temp, audio.file, suffix, MAX_AUDIO_BYTES)
    transcript = await run_service(service.transcribe_audio, path, audio.content_type, size)
    return TranscriptResponse(transcript=transcript, use_client_recognition=not transcript)


@app.post("/api/quizzes/{session_id}/pause", response_model=QuizResponse)
async def pause_quiz(session_id: str, service: QuizService = Depends(get_service)):
    quiz = await run_service(service.pause, session_id)
    return quiz_response(quiz)


@app.post("/api/quizzes/{session_id}/resume", response_model=QuizResponse)
async def resume_quiz(session_id: str, service: QuizService = Depends(get_service)):
    quiz = await run_service(service.resume, session_id)
    return quiz_response(quiz)


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
