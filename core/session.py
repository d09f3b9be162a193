"""Quiz session lifecycle.

Each transition takes the current Quiz and returns a new one. Callers persist
the returned value; on any exception the old value is still the valid state.
"""

import uuid
from dataclasses import replace
from datetime import datetime

from .config import (
    MODES, STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED, RetryPolicy
)
from .errors import EmptyWordList, InvalidSessionOperation
from .evaluator import AttemptResult
from .models import Attempt, Quiz, WordResult, utcnow
from .utils import normalize


def new_session_id() -> str:
    return uuid.uuid4().hex


def create_quiz(extracted_words: list[str], mode: str, owner_id: str,
                session_id: str = None, now: datetime = None) -> Quiz:
    """Start a new active quiz over the given words."""
    if not extracted_words:
        raise EmptyWordList()
    if mode not in MODES:
        raise ValueError(f"Unknown quiz mode: {mode}")
    now = now or utcnow()
    return Quiz(
        session_id=session_id or new_session_id(),
        owner_id=owner_id,
        extracted_words=tuple(extracted_words),
        mode=mode,
        created_at=now,
        updated_at=now
    )


def _touch(quiz: Quiz, now: datetime, **changes) -> Quiz:
    return replace(quiz, updated_at=now, version=quiz.version + 1, **changes)


def pause_quiz(quiz: Quiz, now: datetime = None) -> Quiz:
    if quiz.is_completed:
        raise InvalidSessionOperation("Cannot pause a completed quiz")
    if quiz.status == STATUS_PAUSED:
        return quiz
    return _touch(quiz, now or utcnow(), status=STATUS_PAUSED)


def resume_quiz(quiz: Quiz, now: datetime = None) -> Quiz:
    if quiz.is_completed:
        raise InvalidSessionOperation("Cannot resume a completed quiz")
    if quiz.status == STATUS_ACTIVE:
        return quiz
    return _touch(quiz, now or utcnow(), status=STATUS_ACTIVE)


def check_can_record(quiz: Quiz, word: str) -> None:
    """Raise InvalidSessionOperation unless an attempt on `word` may be recorded."""
    if quiz.is_completed:
        raise InvalidSessionOperation("Quiz is already completed")
    if quiz.status != STATUS_ACTIVE:
        raise InvalidSessionOperation(f"Quiz is {quiz.status}; resume it first")
    if quiz.current_word is None:
        raise InvalidSessionOperation("No word left to drill")
    if normalize(word) != normalize(quiz.current_word):
        raise InvalidSessionOperation(
            f"Attempt is for '{word}' but the current word is '{quiz.current_word}'"
        )


def overall_score(word_results) -> float:
    """Mean of the final scores of all resolved words."""
    scores = [r.final_score for r in word_results if r.final_score is not None]
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 2)


def record_attempt(quiz: Quiz, result: AttemptResult, policy: RetryPolicy = None,
                   mode: str = None, now: datetime = None) -> Quiz:
    """Append an attempt to the current word and advance when it is resolved."""
    check_can_record(quiz, result.word)
    policy = policy or RetryPolicy()
    now = now or utcnow()

    attempt = Attempt(
        transcript=result.transcript,
        pronunciation_score=result.pronunciation_score,
        spelling_score=result.spelling_score,
        feedback=result.feedback,
        is_correct=result.is_correct,
        timestamp=now
    )

    index = quiz.current_word_index
    word_result = quiz.current_word_result
    if word_result is None:
        word_result = WordResult(word=quiz.extracted_words[index], mode=mode or quiz.mode)
    word_result = replace(word_result, attempts=word_result.attempts + (attempt,))

    resolved = attempt.is_correct or policy.exhausted(len(word_result.attempts))
    if resolved:
        word_result = replace(word_result, completed=True, final_score=attempt.composite_score)

    word_results = quiz.word_results[:index] + (word_result,) + quiz.word_results[index + 1:]
    changes = {'word_results': word_results}

    if resolved:
        changes['current_word_index'] = index + 1
        if index + 1 == len(quiz.extracted_words):
            changes['status'] = STATUS_COMPLETED
            changes['completed_at'] = now
            changes['overall_score'] = overall_score(word_results)

    return _touch(quiz, now, **changes)
