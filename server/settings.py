"""Server settings resolved once at start-up from the environment and config file."""

import logging
import os
from dataclasses import dataclass

from core.config import (
    MAX_UPLOAD_BYTES, SCORER_TIMEOUT_SECONDS, EvaluatorConfig, RetryPolicy
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class ServerSettings:
    storage_type: str = 'postgres'
    gemini_api_key: str | None = None
    gemini_model: str = 'gemini-2.0-flash'
    qualitative_scoring: bool = True
    scorer_timeout: float = SCORER_TIMEOUT_SECONDS
    max_attempts_per_word: int | None = None
    max_upload_bytes: int = MAX_UPLOAD_BYTES

    @property
    def evaluator_config(self) -> EvaluatorConfig:
        return EvaluatorConfig(
            qualitative_enabled=self.qualitative_scoring and bool(self.gemini_api_key),
            scorer_timeout=self.scorer_timeout
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_attempts_per_word)


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _as_optional_int(value) -> int | None:
    if value is None or value == '':
        return None
    number = int(value)
    return number if number > 0 else None


def load_settings(config: dict = None, environ: dict = None) -> ServerSettings:
    """Build settings; environment variables win over config file values."""
    config = config or {}
    environ = os.environ if environ is None else environ

    def pick(env_name: str, config_key: str, default=None):
        if environ.get(env_name) not in (None, ''):
            return environ[env_name]
        return config.get(config_key, default)

    settings = ServerSettings(
        storage_type=pick('WORDSNAP_STORAGE', 'storage', 'postgres'),
        gemini_api_key=pick('GEMINI_API_KEY', 'gemini_api_key'),
        gemini_model=pick('WORDSNAP_GEMINI_MODEL', 'gemini_model', 'gemini-2.0-flash'),
        qualitative_scoring=_as_bool(pick('WORDSNAP_QUALITATIVE_SCORING', 'qualitative_scoring', True)),
        scorer_timeout=float(pick('WORDSNAP_SCORER_TIMEOUT', 'scorer_timeout_seconds', SCORER_TIMEOUT_SECONDS)),
        max_attempts_per_word=_as_optional_int(pick('WORDSNAP_MAX_ATTEMPTS', 'max_attempts_per_word')),
        max_upload_bytes=int(pick('WORDSNAP_MAX_UPLOAD_BYTES', 'max_upload_bytes', MAX_UPLOAD_BYTES))
    )
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set: running with deterministic scoring only")
    return settings
