from .models import Attempt, WordResult, Quiz
from .interfaces import (
    ImageRecognitionEngine, AudioTranscriptionEngine, QualitativeScorer, QuizStore
)
from .utils import extract_words, normalize
from .similarity import levenshtein_distance, similarity
from .evaluator import AttemptEvaluator, AttemptResult, fallback_evaluation
from .session import create_quiz, pause_quiz, resume_quiz, record_attempt
from .errors import (
    WordSnapError, InvalidUpload, RecognitionFailure, TranscriptionFailure,
    QualitativeScorerFailure, InvalidSessionOperation, EmptyWordList, QuizNotFound
)
from .config import (
    MODE_PRONOUNCE, MODE_SPELL,
    STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED,
    EvaluatorConfig, RetryPolicy
)

__all__ = [
    'Attempt', 'WordResult', 'Quiz',
    'ImageRecognitionEngine', 'AudioTranscriptionEngine', 'QualitativeScorer', 'QuizStore',
    'extract_words', 'normalize',
    'levenshtein_distance', 'similarity',
    'AttemptEvaluator', 'AttemptResult', 'fallback_evaluation',
    'create_quiz', 'pause_quiz', 'resume_quiz', 'record_attempt',
    'WordSnapError', 'InvalidUpload', 'RecognitionFailure', 'TranscriptionFailure',
    'QualitativeScorerFailure', 'InvalidSessionOperation', 'EmptyWordList', 'QuizNotFound',
    'MODE_PRONOUNCE', 'MODE_SPELL',
    'STATUS_ACTIVE', 'STATUS_PAUSED', 'STATUS_COMPLETED',
    'EvaluatorConfig', 'RetryPolicy'
]
