"""Attempt evaluation: qualitative scoring with a deterministic fallback."""

import concurrent.futures
import logging
from dataclasses import dataclass, asdict

from .config import (
    MODE_SPELL,
    EXCELLENT_THRESHOLD, GOOD_THRESHOLD, CLOSE_THRESHOLD,
    QUALITATIVE_CORRECT_THRESHOLD,
    EvaluatorConfig
)
from .errors import QualitativeScorerFailure
from .interfaces import QualitativeScorer
from .similarity import similarity
from .utils import normalize

logger = logging.getLogger(__name__)

STRATEGY_QUALITATIVE = 'qualitative'
STRATEGY_FALLBACK = 'fallback'

TIER_EXCELLENT = 'excellent'
TIER_GOOD = 'good'
TIER_CLOSE = 'close'
TIER_MISS = 'miss'


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of evaluating one attempt, independent of the strategy used."""
    word: str
    transcript: str
    pronunciation_score: float
    spelling_score: float
    feedback: str
    is_correct: bool
    retry: bool
    phonetic_similarity: float
    strategy: str = STRATEGY_FALLBACK

    def to_dict(self) -> dict:
        return asdict(self)


def score_tier(score: int) -> str:
    """Map a 0-100 similarity score to its feedback tier."""
    if score >= EXCELLENT_THRESHOLD:
        return TIER_EXCELLENT
    if score >= GOOD_THRESHOLD:
        return TIER_GOOD
    if score >= CLOSE_THRESHOLD:
        return TIER_CLOSE
    return TIER_MISS


def _tier_feedback(tier: str, target_word: str, transcript: str, mode: str) -> str:
    verb = 'typed' if mode == MODE_SPELL else 'said'
    if tier == TIER_EXCELLENT:
        return 'Excellent! Very close!'
    if tier == TIER_GOOD:
        return 'Good job! Minor differences but well done!'
    if tier == TIER_CLOSE:
        return f'Close! You {verb} "{transcript}". Try "{target_word}" again.'
    return f'Not quite. You {verb} "{transcript}". The word is "{target_word}". Try again!'


def fallback_evaluation(target_word: str, transcript: str, mode: str) -> AttemptResult:
    """Score an attempt by surface-string similarity to the target word."""
    target = normalize(target_word)
    heard = normalize(transcript)

    if target == heard:
        feedback = 'Perfect! Correct spelling!' if mode == MODE_SPELL else 'Perfect! Excellent pronunciation!'
        return AttemptResult(
            word=target_word,
            transcript=transcript,
            pronunciation_score=100,
            spelling_score=100,
            feedback=feedback,
            is_correct=True,
            retry=False,
            phonetic_similarity=100
        )

    score = round(100 * similarity(target, heard))
    tier = score_tier(score)
    is_correct = tier in (TIER_EXCELLENT, TIER_GOOD)
    return AttemptResult(
        word=target_word,
        transcript=transcript,
        pronunciation_score=score,
        spelling_score=score,
        feedback=_tier_feedback(tier, target_word, transcript, mode),
        is_correct=is_correct,
        retry=not is_correct,
        phonetic_similarity=score
    )


def _score_field(judgement: dict, key: str, default=None) -> float:
    value = judgement.get(key)
    if value is None and default is not None:
        value = default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QualitativeScorerFailure(f"Judgement field '{key}' is not a number: {value!r}")
    if not 0 <= value <= 100:
        raise QualitativeScorerFailure(f"Judgement field '{key}' out of range: {value}")
    return value


def qualitative_result(target_word: str, transcript: str, judgement: dict) -> AttemptResult:
    """Build a result from an external judgement.

    Correctness is derived from the scores; the judge's own is_correct and
    retry_suggested are ignored.
    """
    if not isinstance(judgement, dict):
        raise QualitativeScorerFailure(f"Judgement is not a dict: {type(judgement).__name__}")
    pronunciation = _score_field(judgement, 'pronunciation_score')
    spelling = _score_field(judgement, 'spelling_score')
    phonetic = _score_field(judgement, 'phonetic_similarity', 0)
    feedback = judgement.get('feedback')
    if not isinstance(feedback, str):
        raise QualitativeScorerFailure("Judgement feedback is missing")

    is_correct = (pronunciation >= QUALITATIVE_CORRECT_THRESHOLD
                  and spelling >= QUALITATIVE_CORRECT_THRESHOLD)
    return AttemptResult(
        word=target_word,
        transcript=transcript,
        pronunciation_score=pronunciation,
        spelling_score=spelling,
        feedback=feedback,
        is_correct=is_correct,
        retry=not is_correct,
        phonetic_similarity=phonetic,
        strategy=STRATEGY_QUALITATIVE
    )


class AttemptEvaluator:
    """Evaluates attempts with the configured strategy.

    The qualitative scorer is only used when one is supplied and the config
    enables it. Any scorer failure or timeout falls back to the deterministic
    evaluation; it is never raised to the caller.
    """

    def __init__(self, config: EvaluatorConfig = None, scorer: QualitativeScorer = None):
        self.config = config or EvaluatorConfig()
        self.scorer = scorer
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=4, thread_name_prefix='qualitative-scorer'
        )

    @property
    def uses_qualitative(self) -> bool:
        return self.scorer is not None and self.config.qualitative_enabled

    def _call_scorer(self, target_word: str, transcript: str, mode: str) -> dict:
        try:
            future = self._executor.submit(self.scorer.score, target_word, transcript, mode)
            return future.result(timeout=self.config.scorer_timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise QualitativeScorerFailure(
                f"Scorer timed out after {self.config.scorer_timeout}s"
            ) from e
        except QualitativeScorerFailure:
            raise
        except Exception as e:
            raise QualitativeScorerFailure(f"{type(e).__name__}: {e}") from e

    def evaluate(self, target_word: str, transcript: str, mode: str) -> AttemptResult:
        if self.uses_qualitative:
            try:
                judgement = self._call_scorer(target_word, transcript, mode)
                return qualitative_result(target_word, transcript, judgement)
            except QualitativeScorerFailure as e:
                logger.warning(f"Qualitative scoring failed for '{target_word}', using fallback: {e.message}")
        return fallback_evaluation(target_word, transcript, mode)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
