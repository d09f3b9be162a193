"""Domain models for wordsnap application.

All records are immutable. State changes produce new records (see
core.session), which keeps a failed transition from leaving half-written
state behind.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .config import STATUS_ACTIVE, STATUS_COMPLETED


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class Attempt:
    """One scored submission against a word."""
    transcript: str
    pronunciation_score: float
    spelling_score: float
    feedback: str
    is_correct: bool
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def composite_score(self) -> float:
        return (self.pronunciation_score + self.spelling_score) / 2

    def to_dict(self) -> dict:
        return {
            'transcript': self.transcript,
            'pronunciation_score': self.pronunciation_score,
            'spelling_score': self.spelling_score,
            'feedback': self.feedback,
            'is_correct': self.is_correct,
            'timestamp': _format_time(self.timestamp)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Attempt':
        return cls(
            transcript=data.get('transcript', ''),
            pronunciation_score=data.get('pronunciation_score', 0),
            spelling_score=data.get('spelling_score', 0),
            feedback=data.get('feedback', ''),
            is_correct=data.get('is_correct', False),
            timestamp=_parse_time(data.get('timestamp')) or utcnow()
        )


@dataclass(frozen=True)
class WordResult:
    """Attempts made on one word of the quiz."""
    word: str
    mode: str
    attempts: tuple[Attempt, ...] = ()
    final_score: float | None = None
    completed: bool = False

    @property
    def is_correct(self) -> bool:
        """True when the word was resolved by a correct attempt."""
        return self.completed and bool(self.attempts) and self.attempts[-1].is_correct

    def to_dict(self) -> dict:
        return {
            'word': self.word,
            'mode': self.mode,
            'attempts': [a.to_dict() for a in self.attempts],
            'final_score': self.final_score,
            'completed': self.completed
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'WordResult':
        return cls(
            word=data['word'],
            mode=data['mode'],
            attempts=tuple(Attempt.from_dict(a) for a in data.get('attempts', [])),
            final_score=data.get('final_score'),
            completed=data.get('completed', False)
        )


@dataclass(frozen=True)
class Quiz:
    """A single user's practice run over a fixed word list."""
    session_id: str
    owner_id: str
    extracted_words: tuple[str, ...]
    mode: str
    word_results: tuple[WordResult, ...] = ()
    current_word_index: int = 0
    status: str = STATUS_ACTIVE
    overall_score: float | None = None
    completed_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 1

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def current_word(self) -> str | None:
        """The word being drilled, or None once every word is resolved."""
        if self.current_word_index < len(self.extracted_words):
            return self.extracted_words[self.current_word_index]
        return None

    @property
    def current_word_result(self) -> WordResult | None:
        if self.current_word_index < len(self.word_results):
            return self.word_results[self.current_word_index]
        return None

    def get_progress_display(self) -> str:
        """Progress as 'resolved/total' for display."""
        return f"{self.current_word_index}/{len(self.extracted_words)}"

    def to_dict(self) -> dict:
        return {
            'session_id': self.session_id,
            'owner_id': self.owner_id,
            'extracted_words': list(self.extracted_words),
            'mode': self.mode,
            'word_results': [r.to_dict() for r in self.word_results],
            'current_word_index': self.current_word_index,
            'status': self.status,
            'overall_score': self.overall_score,
            'completed_at': _format_time(self.completed_at),
            'created_at': _format_time(self.created_at),
            'updated_at': _format_time(self.updated_at),
            'version': self.version
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Quiz':
        return cls(
            session_id=data['session_id'],
            owner_id=data['owner_id'],
            extracted_words=tuple(data['extracted_words']),
            mode=data['mode'],
            word_results=tuple(WordResult.from_dict(r) for r in data.get('word_results', [])),
            current_word_index=data.get('current_word_index', 0),
            status=data.get('status', STATUS_ACTIVE),
            overall_score=data.get('overall_score'),
            completed_at=_parse_time(data.get('completed_at')),
            created_at=_parse_time(data.get('created_at')) or utcnow(),
            updated_at=_parse_time(data.get('updated_at')) or utcnow(),
            version=data.get('version', 1)
        )
