"""Unit tests for wordsnap core module."""

import threading
import unittest
from datetime import datetime, timezone

from core.config import (
    MODE_PRONOUNCE, MODE_SPELL,
    STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED,
    EvaluatorConfig, RetryPolicy
)
from core.errors import EmptyWordList, InvalidSessionOperation, QualitativeScorerFailure
from core.evaluator import (
    AttemptEvaluator, AttemptResult,
    STRATEGY_FALLBACK, STRATEGY_QUALITATIVE,
    TIER_EXCELLENT, TIER_GOOD, TIER_CLOSE, TIER_MISS,
    fallback_evaluation, qualitative_result, score_tier
)
from core.interfaces import QualitativeScorer
from core.models import Quiz
from core.session import create_quiz, pause_quiz, record_attempt, resume_quiz
from core.similarity import levenshtein_distance, similarity
from core.utils import extract_words, normalize


# ============================================================================
# Mock Implementations
# ============================================================================

class MockScorer(QualitativeScorer):
    """Mock qualitative scorer for testing."""

    def __init__(self):
        self.judgements = []
        self.score_calls = []
        self.error = None
        self.block = None

    def set_judgement(self, judgement):
        """Queue a judgement response."""
        self.judgements.append(judgement)

    def score(self, target_word: str, transcript: str, mode: str) -> dict:
        self.score_calls.append((target_word, transcript, mode))
        if self.block is not None:
            self.block.wait(5)
        if self.error:
            raise self.error
        if self.judgements:
            return self.judgements.pop(0)
        return {
            'pronunciation_score': 85,
            'spelling_score': 90,
            'feedback': 'Nice work',
            'is_correct': True,
            'phonetic_similarity': 88,
            'retry_suggested': False
        }


def make_result(word: str, is_correct: bool, score: float = None,
                transcript: str = None) -> AttemptResult:
    """Build an AttemptResult without running an evaluator."""
    if score is None:
        score = 100 if is_correct else 40
    return AttemptResult(
        word=word,
        transcript=transcript if transcript is not None else word,
        pronunciation_score=score,
        spelling_score=score,
        feedback='test',
        is_correct=is_correct,
        retry=not is_correct,
        phonetic_similarity=score
    )


# ============================================================================
# Test Cases
# ============================================================================

class TestExtractWords(unittest.TestCase):
    """Tests for extract_words utility function."""

    def test_dedupes_and_keeps_first_occurrence_order(self):
        result = extract_words("The Cat sat on the MAT, cat!")
        self.assertEqual(result, ["the", "cat", "sat", "mat"])

    def test_empty_string(self):
        self.assertEqual(extract_words(""), [])

    def test_none(self):
        self.assertEqual(extract_words(None), [])

    def test_punctuation_only(self):
        self.assertEqual(extract_words("... !!! ,,, ??"), [])

    def test_drops_short_tokens(self):
        self.assertEqual(extract_words("an ox is big"), ["big"])

    def test_drops_tokens_with_digits(self):
        self.assertEqual(extract_words("abc123 hello 2024"), ["hello"])

    def test_punctuation_splits_words(self):
        self.assertEqual(extract_words("well-known snake_case"), ["well", "known", "snake", "case"])

    def test_non_ascii_letters_split_words(self):
        # "naïve" splits into "na" and "ve", both too short
        self.assertEqual(extract_words("café naïve cat"), ["caf", "cat"])

    def test_non_ascii_letter_inside_long_word(self):
        self.assertEqual(extract_words("Straße"), ["stra"])

    def test_multiline_ocr_text(self):
        text = "Chapter One\n\nThe  quick\tbrown fox.\nThe QUICK one."
        self.assertEqual(extract_words(text), ["chapter", "one", "the", "quick", "brown", "fox"])

    def test_normalize(self):
        self.assertEqual(normalize("  Apple \n"), "apple")
        self.assertEqual(normalize(None), "")


class TestSimilarity(unittest.TestCase):
    """Tests for edit distance and similarity."""

    def test_known_distances(self):
        self.assertEqual(levenshtein_distance("kitten", "sitting"), 3)
        self.assertEqual(levenshtein_distance("flaw", "lawn"), 2)
        self.assertEqual(levenshtein_distance("", "abc"), 3)
        self.assertEqual(levenshtein_distance("abc", ""), 3)

    def test_distance_zero_only_for_equal_strings(self):
        self.assertEqual(levenshtein_distance("apple", "apple"), 0)
        self.assertEqual(levenshtein_distance("", ""), 0)
        self.assertGreater(levenshtein_distance("apple", "apples"), 0)

    def test_distance_is_symmetric(self):
        pairs = [("kitten", "sitting"), ("", "word"), ("through", "thru"),
                 ("elephant", "elefant"), ("abc", "cba")]
        for a, b in pairs:
            self.assertEqual(levenshtein_distance(a, b), levenshtein_distance(b, a))

    def test_similarity_of_identical_strings(self):
        self.assertEqual(similarity("word", "word"), 1.0)

    def test_similarity_of_empty_strings(self):
        self.assertEqual(similarity("", ""), 1.0)

    def test_similarity_of_disjoint_strings(self):
        self.assertEqual(similarity("abc", "xyz"), 0.0)
        self.assertEqual(similarity("", "abc"), 0.0)

    def test_similarity_uses_longer_length(self):
        self.assertAlmostEqual(similarity("cat", "cut"), 2 / 3)
        self.assertAlmostEqual(similarity("elephant", "elefant"), 0.75)


class TestScoreTier(unittest.TestCase):
    """Tests for the deterministic feedback tiers."""

    def test_every_score_maps_to_one_tier(self):
        tiers = {TIER_EXCELLENT, TIER_GOOD, TIER_CLOSE, TIER_MISS}
        for score in range(0, 101):
            self.assertIn(score_tier(score), tiers)

    def test_boundaries(self):
        self.assertEqual(score_tier(0), TIER_MISS)
        self.assertEqual(score_tier(59), TIER_MISS)
        self.assertEqual(score_tier(60), TIER_CLOSE)
        self.assertEqual(score_tier(74), TIER_CLOSE)
        self.assertEqual(score_tier(75), TIER_GOOD)
        self.assertEqual(score_tier(89), TIER_GOOD)
        self.assertEqual(score_tier(90), TIER_EXCELLENT)
        self.assertEqual(score_tier(100), TIER_EXCELLENT)


class TestFallbackEvaluation(unittest.TestCase):
    """Tests for the similarity-based evaluation."""

    def test_exact_match_is_correct_in_both_modes(self):
        for mode in (MODE_PRONOUNCE, MODE_SPELL):
            result = fallback_evaluation("apple", "apple", mode)
            self.assertTrue(result.is_correct)
            self.assertFalse(result.retry)
            self.assertEqual(result.pronunciation_score, 100)
            self.assertEqual(result.spelling_score, 100)
            self.assertEqual(result.phonetic_similarity, 100)
            self.assertEqual(result.strategy, STRATEGY_FALLBACK)

    def test_match_ignores_case_and_whitespace(self):
        result = fallback_evaluation("apple", "  Apple ", MODE_PRONOUNCE)
        self.assertTrue(result.is_correct)
        self.assertEqual(result.pronunciation_score, 100)

    def test_good_tier_is_correct(self):
        result = fallback_evaluation("elephant", "elefant", MODE_PRONOUNCE)
        self.assertEqual(result.pronunciation_score, 75)
        self.assertTrue(result.is_correct)
        self.assertIn("Good job", result.feedback)

    def test_close_tier_is_incorrect_and_echoes_both(self):
        result = fallback_evaluation("cat", "cut", MODE_PRONOUNCE)
        self.assertEqual(result.pronunciation_score, 67)
        self.assertFalse(result.is_correct)
        self.assertTrue(result.retry)
        self.assertIn('"cut"', result.feedback)
        self.assertIn('"cat"', result.feedback)

    def test_miss_tier_states_the_word(self):
        result = fallback_evaluation("through", "thru", MODE_SPELL)
        self.assertEqual(result.spelling_score, 57)
        self.assertFalse(result.is_correct)
        self.assertIn('The word is "through"', result.feedback)

    def test_empty_transcript_scores_zero(self):
        result = fallback_evaluation("apple", "", MODE_PRONOUNCE)
        self.assertEqual(result.pronunciation_score, 0)
        self.assertFalse(result.is_correct)

    def test_all_scores_equal(self):
        result = fallback_evaluation("banana", "bananas", MODE_PRONOUNCE)
        self.assertEqual(result.pronunciation_score, 86)
        self.assertEqual(result.spelling_score, result.pronunciation_score)
        self.assertEqual(result.phonetic_similarity, result.pronunciation_score)


class TestQualitativeResult(unittest.TestCase):
    """Tests for building results from external judgements."""

    def judgement(self, **overrides):
        data = {
            'pronunciation_score': 80,
            'spelling_score': 75,
            'feedback': 'Well done',
            'is_correct': True,
            'phonetic_similarity': 82,
            'retry_suggested': False
        }
        data.update(overrides)
        return data

    def test_both_scores_at_threshold_is_correct(self):
        result = qualitative_result("apple", "apple", self.judgement(pronunciation_score=70, spelling_score=70))
        self.assertTrue(result.is_correct)
        self.assertFalse(result.retry)
        self.assertEqual(result.strategy, STRATEGY_QUALITATIVE)

    def test_one_score_below_threshold_is_incorrect(self):
        result = qualitative_result("apple", "appel", self.judgement(spelling_score=69))
        self.assertFalse(result.is_correct)
        self.assertTrue(result.retry)

    def test_judge_verdict_is_not_trusted(self):
        result = qualitative_result("apple", "pear", self.judgement(
            pronunciation_score=40, spelling_score=30, is_correct=True, retry_suggested=False
        ))
        self.assertFalse(result.is_correct)
        self.assertTrue(result.retry)

    def test_missing_phonetic_similarity_defaults_to_zero(self):
        judgement = self.judgement()
        del judgement['phonetic_similarity']
        self.assertEqual(qualitative_result("apple", "apple", judgement).phonetic_similarity, 0)

    def test_null_phonetic_similarity_defaults_to_zero(self):
        result = qualitative_result("apple", "apple", self.judgement(phonetic_similarity=None))
        self.assertEqual(result.phonetic_similarity, 0)
        self.assertEqual(result.strategy, STRATEGY_QUALITATIVE)

    def test_null_required_score_raises(self):
        with self.assertRaises(QualitativeScorerFailure):
            qualitative_result("apple", "apple", self.judgement(spelling_score=None))

    def test_malformed_judgements_raise(self):
        bad = [
            self.judgement(pronunciation_score='high'),
            self.judgement(spelling_score=True),
            self.judgement(spelling_score=140),
            self.judgement(feedback=None),
            "not a dict",
        ]
        for judgement in bad:
            with self.assertRaises(QualitativeScorerFailure):
                qualitative_result("apple", "apple", judgement)


class TestAttemptEvaluator(unittest.TestCase):
    """Tests for strategy selection and fallback."""

    def setUp(self):
        self.scorer = MockScorer()

    def tearDown(self):
        if self.scorer.block is not None:
            self.scorer.block.set()

    def test_without_scorer_uses_fallback(self):
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True))
        result = evaluator.evaluate("apple", "apple", MODE_PRONOUNCE)
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)

    def test_disabled_scorer_is_not_called(self):
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=False), self.scorer)
        result = evaluator.evaluate("apple", "apple", MODE_PRONOUNCE)
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)
        self.assertEqual(self.scorer.score_calls, [])

    def test_enabled_scorer_is_used(self):
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True), self.scorer)
        result = evaluator.evaluate("apple", "appel", MODE_SPELL)
        evaluator.close()
        self.assertEqual(result.strategy, STRATEGY_QUALITATIVE)
        self.assertEqual(result.pronunciation_score, 85)
        self.assertEqual(result.spelling_score, 90)
        self.assertTrue(result.is_correct)
        self.assertEqual(self.scorer.score_calls, [("apple", "appel", MODE_SPELL)])

    def test_scorer_error_falls_back(self):
        self.scorer.error = RuntimeError("quota exceeded")
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True), self.scorer)
        result = evaluator.evaluate("apple", "apple", MODE_PRONOUNCE)
        evaluator.close()
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)
        self.assertTrue(result.is_correct)

    def test_malformed_judgement_falls_back(self):
        self.scorer.set_judgement({'feedback': 'no scores here'})
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True), self.scorer)
        result = evaluator.evaluate("cat", "cut", MODE_PRONOUNCE)
        evaluator.close()
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)
        self.assertEqual(result.pronunciation_score, 67)

    def test_timeout_falls_back(self):
        self.scorer.block = threading.Event()
        evaluator = AttemptEvaluator(
            EvaluatorConfig(qualitative_enabled=True, scorer_timeout=0.05), self.scorer
        )
        result = evaluator.evaluate("apple", "apple", MODE_PRONOUNCE)
        self.scorer.block.set()
        evaluator.close()
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)
        self.assertTrue(result.is_correct)

    def test_concurrent_calls_share_one_executor(self):
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True), self.scorer)
        executor = evaluator._executor
        barrier = threading.Barrier(4)
        results = []

        def run():
            barrier.wait()
            results.append(evaluator.evaluate("apple", "apple", MODE_PRONOUNCE))

        threads = [threading.Thread(target=run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        evaluator.close()

        self.assertIs(evaluator._executor, executor)
        self.assertEqual([r.strategy for r in results], [STRATEGY_QUALITATIVE] * 4)

    def test_evaluate_after_close_falls_back(self):
        evaluator = AttemptEvaluator(EvaluatorConfig(qualitative_enabled=True), self.scorer)
        evaluator.close()
        result = evaluator.evaluate("apple", "apple", MODE_PRONOUNCE)
        self.assertEqual(result.strategy, STRATEGY_FALLBACK)


class TestQuizLifecycle(unittest.TestCase):
    """Tests for quiz session transitions."""

    def setUp(self):
        self.quiz = create_quiz(["apple", "banana", "cherry"], MODE_PRONOUNCE, "user-1")

    def test_create_with_no_words_fails(self):
        with self.assertRaises(EmptyWordList):
            create_quiz([], MODE_PRONOUNCE, "user-1")

    def test_create_with_unknown_mode_fails(self):
        with self.assertRaises(ValueError):
            create_quiz(["apple"], "sing", "user-1")

    def test_initial_state(self):
        self.assertEqual(self.quiz.status, STATUS_ACTIVE)
        self.assertEqual(self.quiz.current_word_index, 0)
        self.assertEqual(self.quiz.current_word, "apple")
        self.assertEqual(self.quiz.word_results, ())
        self.assertIsNone(self.quiz.overall_score)
        self.assertIsNone(self.quiz.completed_at)
        self.assertEqual(self.quiz.owner_id, "user-1")

    def test_session_ids_are_unique(self):
        other = create_quiz(["apple"], MODE_SPELL, "user-1")
        self.assertNotEqual(self.quiz.session_id, other.session_id)

    def test_incorrect_then_correct_advances(self):
        quiz = record_attempt(self.quiz, make_result("apple", False))
        quiz = record_attempt(quiz, make_result("apple", True))
        self.assertEqual(quiz.current_word_index, 1)
        self.assertEqual(len(quiz.word_results[0].attempts), 2)
        self.assertTrue(quiz.word_results[0].completed)
        self.assertEqual(quiz.word_results[0].final_score, 100)

    def test_incorrect_attempt_leaves_word_open(self):
        quiz = record_attempt(self.quiz, make_result("apple", False))
        self.assertEqual(quiz.current_word_index, 0)
        self.assertFalse(quiz.word_results[0].completed)
        self.assertIsNone(quiz.word_results[0].final_score)
        self.assertEqual(quiz.current_word, "apple")

    def test_transition_does_not_modify_original(self):
        before = self.quiz.to_dict()
        record_attempt(self.quiz, make_result("apple", True))
        self.assertEqual(self.quiz.to_dict(), before)

    def test_completion_sets_overall_score(self):
        completed_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        quiz = record_attempt(self.quiz, make_result("apple", True, 100))
        quiz = record_attempt(quiz, make_result("banana", True, 80))
        quiz = record_attempt(quiz, make_result("cherry", True, 60), now=completed_at)
        self.assertEqual(quiz.status, STATUS_COMPLETED)
        self.assertEqual(quiz.overall_score, 80)
        self.assertEqual(quiz.completed_at, completed_at)
        self.assertEqual(quiz.current_word_index, 3)
        self.assertIsNone(quiz.current_word)

    def test_word_results_follow_extracted_words(self):
        quiz = self.quiz
        for word in ["apple", "banana", "cherry"]:
            quiz = record_attempt(quiz, make_result(word, True))
        for i, result in enumerate(quiz.word_results):
            self.assertEqual(result.word, quiz.extracted_words[i])

    def test_record_on_completed_quiz_fails_without_change(self):
        quiz = create_quiz(["apple"], MODE_SPELL, "user-1")
        quiz = record_attempt(quiz, make_result("apple", True))
        before = quiz.to_dict()
        with self.assertRaises(InvalidSessionOperation):
            record_attempt(quiz, make_result("apple", True))
        self.assertEqual(quiz.to_dict(), before)

    def test_record_for_other_word_fails(self):
        with self.assertRaises(InvalidSessionOperation):
            record_attempt(self.quiz, make_result("banana", True))

    def test_record_matches_word_case_insensitively(self):
        quiz = record_attempt(self.quiz, make_result("Apple ", True))
        self.assertEqual(quiz.current_word_index, 1)

    def test_record_while_paused_fails(self):
        paused = pause_quiz(self.quiz)
        with self.assertRaises(InvalidSessionOperation):
            record_attempt(paused, make_result("apple", True))

    def test_pause_and_resume(self):
        paused = pause_quiz(self.quiz)
        self.assertEqual(paused.status, STATUS_PAUSED)
        resumed = resume_quiz(paused)
        self.assertEqual(resumed.status, STATUS_ACTIVE)
        self.assertIs(pause_quiz(paused), paused)
        self.assertIs(resume_quiz(self.quiz), self.quiz)

    def test_pause_or_resume_completed_quiz_fails(self):
        quiz = create_quiz(["apple"], MODE_SPELL, "user-1")
        quiz = record_attempt(quiz, make_result("apple", True))
        with self.assertRaises(InvalidSessionOperation):
            pause_quiz(quiz)
        with self.assertRaises(InvalidSessionOperation):
            resume_quiz(quiz)

    def test_retry_policy_resolves_word_after_max_attempts(self):
        policy = RetryPolicy(max_attempts=2)
        quiz = record_attempt(self.quiz, make_result("apple", False, 40), policy)
        self.assertEqual(quiz.current_word_index, 0)
        quiz = record_attempt(quiz, make_result("apple", False, 55), policy)
        self.assertEqual(quiz.current_word_index, 1)
        word_result = quiz.word_results[0]
        self.assertTrue(word_result.completed)
        self.assertFalse(word_result.is_correct)
        self.assertEqual(word_result.final_score, 55)

    def test_no_retry_cap_by_default(self):
        quiz = self.quiz
        for _ in range(10):
            quiz = record_attempt(quiz, make_result("apple", False))
        self.assertEqual(quiz.current_word_index, 0)
        self.assertEqual(len(quiz.word_results[0].attempts), 10)

    def test_final_score_is_composite_of_both_scores(self):
        result = AttemptResult(
            word="apple", transcript="apple", pronunciation_score=80, spelling_score=60,
            feedback="ok", is_correct=True, retry=False, phonetic_similarity=70
        )
        quiz = record_attempt(self.quiz, result)
        self.assertEqual(quiz.word_results[0].final_score, 70)

    def test_word_mode_override(self):
        quiz = record_attempt(self.quiz, make_result("apple", False), mode=MODE_SPELL)
        self.assertEqual(quiz.word_results[0].mode, MODE_SPELL)

    def test_version_and_index_never_decrease(self):
        quiz = self.quiz
        versions = [quiz.version]
        indexes = [quiz.current_word_index]
        for result in [make_result("apple", False), make_result("apple", True),
                       make_result("banana", True), make_result("cherry", False)]:
            quiz = record_attempt(quiz, result)
            versions.append(quiz.version)
            indexes.append(quiz.current_word_index)
        self.assertEqual(versions, sorted(set(versions)))
        self.assertEqual(indexes, sorted(indexes))

    def test_to_dict_from_dict_preserves_state(self):
        quiz = record_attempt(self.quiz, make_result("apple", False, 50, transcript="appel"))
        restored = Quiz.from_dict(quiz.to_dict())
        self.assertEqual(restored, quiz)
        self.assertEqual(restored.word_results[0].attempts[0].transcript, "appel")


if __name__ == '__main__':
    unittest.main()
