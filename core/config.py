"""Configuration constants for wordsnap application."""

from dataclasses import dataclass

LANGUAGE = 'English'

# Quiz modes
MODE_PRONOUNCE = 'pronounce'
MODE_SPELL = 'spell'
MODES = (MODE_PRONOUNCE, MODE_SPELL)

# Quiz status
STATUS_ACTIVE = 'active'
STATUS_PAUSED = 'paused'
STATUS_COMPLETED = 'completed'
STATUSES = (STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED)

# Word extraction
MIN_WORD_LENGTH = 3           # Tokens shorter than this are dropped

# Deterministic scoring tiers (0-100 similarity score)
EXCELLENT_THRESHOLD = 90
GOOD_THRESHOLD = 75           # Lowest score still counted as correct
CLOSE_THRESHOLD = 60

# Qualitative scoring: both scores must reach this to count as correct
QUALITATIVE_CORRECT_THRESHOLD = 70

# External calls
SCORER_TIMEOUT_SECONDS = 8.0
ENGINE_TIMEOUT_SECONDS = 30.0

# Uploads
ALLOWED_IMAGE_TYPES = frozenset({'image/jpeg', 'image/png', 'image/jpg'})
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_AUDIO_TYPES = frozenset({
    'audio/webm', 'audio/ogg', 'audio/wav', 'audio/x-wav',
    'audio/mpeg', 'audio/mp4', 'audio/x-m4a'
})
MAX_AUDIO_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class EvaluatorConfig:
    """Selects and bounds the attempt evaluation strategy."""
    qualitative_enabled: bool = False
    scorer_timeout: float = SCORER_TIMEOUT_SECONDS


@dataclass(frozen=True)
class RetryPolicy:
    """Retry cap per word. None means a word stays open until answered correctly."""
    max_attempts: int | None = None

    def exhausted(self, attempt_count: int) -> bool:
        return self.max_attempts is not None and attempt_count >= self.max_attempts
