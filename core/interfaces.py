"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class ImageRecognitionEngine(ABC):
    """Turns a photo into raw text."""

    @abstractmethod
    def recognize(self, image_path: str) -> str:
        """Return the raw text found in the image. Raises on failure."""
        pass


class AudioTranscriptionEngine(ABC):
    """Turns a spoken recording into a raw transcript."""

    @abstractmethod
    def transcribe(self, audio_path: str) -> str:
        """Return the transcript of the recording. Raises on failure."""
        pass


class QualitativeScorer(ABC):
    """External judge for pronunciation and spelling attempts."""

    @abstractmethod
    def score(self, target_word: str, transcript: str, mode: str) -> dict:
        """Judge an attempt. Returns a dict with pronunciation_score,
        spelling_score, feedback, is_correct, phonetic_similarity and
        retry_suggested."""
        pass


class QuizStore(ABC):
    """Abstract base class for quiz and config storage."""

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def load_quiz(self, session_id: str) -> dict | None:
        """Load a quiz document. Returns None if not found."""
        pass

    @abstractmethod
    def save_quiz(self, quiz: dict) -> None:
        """Save or replace a quiz document keyed by its session_id.
        Raises InvalidSessionOperation if a newer version is already stored."""
        pass

    @abstractmethod
    def list_quizzes(self, owner_id: str) -> list[dict]:
        """List quiz documents owned by a user, newest first."""
        pass
