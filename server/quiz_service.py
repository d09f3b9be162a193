"""Quiz orchestration between the HTTP layer, the core engine and collaborators."""

import logging
import threading
from contextlib import contextmanager

from core.config import MAX_UPLOAD_BYTES, RetryPolicy
from core.errors import QuizNotFound, RecognitionFailure
from core.evaluator import AttemptEvaluator, AttemptResult
from core.interfaces import AudioTranscriptionEngine, ImageRecognitionEngine, QuizStore
from core.models import Quiz
from core.session import (
    check_can_record, create_quiz, pause_quiz, record_attempt, resume_quiz
)
from core.utils import extract_words

from server.uploads import remove_file, validate_audio_upload, validate_image_upload

logger = logging.getLogger(__name__)


class QuizService:
    """Runs quiz operations against storage, one operation per session at a time."""

    def __init__(self, storage: QuizStore, evaluator: AttemptEvaluator,
                 recognizer: ImageRecognitionEngine = None,
                 transcriber: AudioTranscriptionEngine = None,
                 retry_policy: RetryPolicy = None,
                 max_upload_bytes: int = MAX_UPLOAD_BYTES):
        self.storage = storage
        self.evaluator = evaluator
        self.recognizer = recognizer
        self.transcriber = transcriber
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_upload_bytes = max_upload_bytes
        # session_id -> [lock, holders and waiters]
        self._session_locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _session_lock(self, session_id: str):
        """Serialize operations on one session. The entry is dropped once unused."""
        with self._locks_guard:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = self._session_locks[session_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._session_locks[session_id]

    def _log_event(self, event: str, owner_id: str, session_id: str = None, **data) -> None:
        if hasattr(self.storage, 'log_event'):
            self.storage.log_event(event, owner_id, session_id, **data)

    def _load(self, session_id: str) -> Quiz:
        data = self.storage.load_quiz(session_id)
        if data is None:
            raise QuizNotFound(f"Quiz {session_id} not found")
        return Quiz.from_dict(data)

    def _save(self, quiz: Quiz) -> None:
        self.storage.save_quiz(quiz.to_dict())

    # Session creation

    def extract_from_image(self, image_path: str, content_type: str, size: int) -> list[str]:
        """Validate and recognize an uploaded photo. The file is always deleted."""
        try:
            validate_image_upload(content_type, size, self.max_upload_bytes)
            if self.recognizer is None:
                raise RecognitionFailure("Image recognition is not configured")
            try:
                raw_text = self.recognizer.recognize(image_path)
            except RecognitionFailure:
                logger.error(f"Recognition failed for {image_path}")
                raise
            except Exception as e:
                logger.error(f"Recognition failed for {image_path}: {type(e).__name__}: {e}")
                raise RecognitionFailure() from e
        finally:
            remove_file(image_path)
        words = extract_words(raw_text)
        logger.info(f"Extracted {len(words)} words from image")
        return words

    def _start(self, owner_id: str, words: list[str], mode: str, source: str) -> Quiz:
        quiz = create_quiz(words, mode, owner_id)
        with self._session_lock(quiz.session_id):
            self._save(quiz)
        logger.info(f"New quiz: {quiz.session_id} [Owner: {owner_id}, Mode: {mode}, Words: {len(words)}]")
        self._log_event('quiz.create', owner_id, quiz.session_id,
                        source=source, mode=mode, word_count=len(words))
        return quiz

    def start_from_image(self, owner_id: str, image_path: str, content_type: str,
                         size: int, mode: str) -> Quiz:
        words = self.extract_from_image(image_path, content_type, size)
        return self._start(owner_id, words, mode, 'image')

    def start_from_text(self, owner_id: str, text: str, mode: str) -> Quiz:
        return self._start(owner_id, extract_words(text), mode, 'text')

    # Queries

    def get_quiz(self, session_id: str) -> Quiz:
        return self._load(session_id)

    def list_quizzes(self, owner_id: str) -> list[Quiz]:
        return [Quiz.from_dict(q) for q in self.storage.list_quizzes(owner_id)]

    def results(self, session_id: str) -> dict:
        """Per-word summary of a quiz plus its aggregate score."""
        quiz = self._load(session_id)
        words = []
        for result in quiz.word_results:
            words.append({
                'word': result.word,
                'mode': result.mode,
                'attempts': len(result.attempts),
                'final_score': result.final_score,
                'completed': result.completed,
                'correct': result.is_correct
            })
        return {
            'session_id': quiz.session_id,
            'status': quiz.status,
            'overall_score': quiz.overall_score,
            'completed_at': quiz.completed_at.isoformat() if quiz.completed_at else None,
            'total_words': len(quiz.extracted_words),
            'correct_words': sum(1 for w in words if w['correct']),
            'words': words
        }

    # Attempts

    def transcribe_audio(self, audio_path: str, content_type: str = None, size: int = None) -> str:
        """Transcribe a recording, or return '' so the client uses its own recognizer.
        The file is always deleted."""
        try:
            if content_type is not None:
                validate_audio_upload(content_type, size or 0)
            if self.transcriber is None:
                return ''
            try:
                transcript = self.transcriber.transcribe(audio_path)
            except Exception as e:
                logger.error(f"Transcription failed for {audio_path}: {type(e).__name__}: {e}")
                return ''
            return (transcript or '').lower().strip()
        finally:
            remove_file(audio_path)

    def submit_attempt(self, session_id: str, word: str, transcript: str,
                       mode: str = None) -> tuple[AttemptResult, Quiz]:
        """Evaluate and record one attempt on the current word."""
        with self._session_lock(session_id):
            quiz = self._load(session_id)
            check_can_record(quiz, word)

            current = quiz.current_word_result
            word_mode = current.mode if current else (mode or quiz.mode)
            result = self.evaluator.evaluate(quiz.current_word, transcript, word_mode)

            updated = record_attempt(quiz, result, self.retry_policy, mode=word_mode)
            self._save(updated)

        logger.info(
            f"Quiz {session_id} word {quiz.current_word_index}: '{transcript}' vs '{result.word}' "
            f"-> {result.pronunciation_score}/{result.spelling_score} "
            f"{'CORRECT' if result.is_correct else 'INCORRECT'} [{result.strategy}]"
        )
        self._log_event('attempt.result', quiz.owner_id, session_id,
                        word=result.word, transcript=transcript,
                        pronunciation_score=result.pronunciation_score,
                        spelling_score=result.spelling_score,
                        is_correct=result.is_correct, strategy=result.strategy)
        if updated.is_completed:
            logger.info(f"Quiz {session_id} completed with score {updated.overall_score}")
            self._log_event('quiz.complete', quiz.owner_id, session_id,
                            overall_score=updated.overall_score)
        return result, updated

    def pause(self, session_id: str) -> Quiz:
        with self._session_lock(session_id):
            quiz = self._load(session_id)
            updated = pause_quiz(quiz)
            if updated is not quiz:
                self._save(updated)
        return updated

    def resume(self, session_id: str) -> Quiz:
        with self._session_lock(session_id):
            quiz = self._load(session_id)
            updated = resume_quiz(quiz)
            if updated is not quiz:
                self._save(updated)
        return updated
