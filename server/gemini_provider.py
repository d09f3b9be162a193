"""Gemini AI provider implementation."""

import json
import logging
import mimetypes
import time
import google.generativeai as genai

from core.config import LANGUAGE, MODE_SPELL, ENGINE_TIMEOUT_SECONDS
from core.errors import (
    QualitativeScorerFailure, RecognitionFailure, TranscriptionFailure
)
from core.interfaces import (
    AudioTranscriptionEngine, ImageRecognitionEngine, QualitativeScorer
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REQUIRED_JUDGEMENT_KEYS = ['pronunciation_score', 'spelling_score', 'feedback']


class GeminiProvider(QualitativeScorer, ImageRecognitionEngine, AudioTranscriptionEngine):
    """Gemini-backed scorer, text recognizer and transcriber."""

    def __init__(self, api_key: str, model_name: str = 'gemini-2.0-flash',
                 timeout: float = ENGINE_TIMEOUT_SECONDS):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.model_name = model_name
        self.timeout = timeout
        self.stats = {}

    def _record_call(self, call_type: str, ms: int, response) -> None:
        stats = self.stats.setdefault(call_type, {'calls': 0, 'total_ms': 0, 'total_tokens': 0})
        stats['calls'] += 1
        stats['total_ms'] += ms
        usage = getattr(response, 'usage_metadata', None)
        total_tokens = getattr(usage, 'total_token_count', 0) if usage else 0
        if isinstance(total_tokens, int):
            stats['total_tokens'] += total_tokens

    def _generate(self, contents, call_type: str) -> tuple[str, int]:
        start_time = time.time()
        response = self.model.generate_content(
            contents, request_options={'timeout': self.timeout}
        )
        ms = int((time.time() - start_time) * 1000)
        self._record_call(call_type, ms, response)
        return (response.text, ms)

    def get_stats(self) -> dict:
        """Per call type usage: calls, total_ms, total_tokens, avg_ms."""
        result = {}
        for call_type, stats in self.stats.items():
            calls = stats['calls']
            result[call_type] = {
                **stats,
                'avg_ms': round(stats['total_ms'] / calls, 1) if calls > 0 else 0
            }
        return result

    def _media_part(self, path: str, default_type: str) -> dict:
        mime_type = mimetypes.guess_type(path)[0] or default_type
        with open(path, 'rb') as f:
            return {'mime_type': mime_type, 'data': f.read()}

    def recognize(self, image_path: str) -> str:
        prompt = (
            f"Transcribe all {LANGUAGE} text visible in this image exactly as written. "
            "Return only the text, with no commentary, headings or formatting."
        )
        try:
            text, ms = self._generate([prompt, self._media_part(image_path, 'image/jpeg')], 'recognize')
        except Exception as e:
            raise RecognitionFailure(f"Gemini recognition failed: {type(e).__name__}: {e}") from e
        logger.info(f"Recognized {len(text)} chars from image in {ms}ms")
        return text

    def transcribe(self, audio_path: str) -> str:
        prompt = (
            f"Transcribe this {LANGUAGE} speech recording verbatim. "
            "Return only the words spoken, with no commentary or punctuation."
        )
        try:
            text, ms = self._generate([prompt, self._media_part(audio_path, 'audio/webm')], 'transcribe')
        except Exception as e:
            raise TranscriptionFailure(f"Gemini transcription failed: {type(e).__name__}: {e}") from e
        logger.info(f"Transcribed audio in {ms}ms")
        return text.lower().strip()

    def _evaluation_prompt(self, target_word: str, transcript: str, mode: str) -> str:
        focus = 'spelling accuracy' if mode == MODE_SPELL else 'pronunciation accuracy'
        return f"""
            You are a pronunciation and spelling evaluation AI. Evaluate the user's attempt
            strictly and provide JSON output only.

            Target word: "{target_word}"
            User attempt: "{transcript}"
            Mode: {mode}

            Scoring rules:
            - 90-100: Excellent (perfect or near-perfect)
            - 70-89: Good (minor errors)
            - 50-69: Needs Improvement (noticeable errors)
            - 0-49: Poor (significant errors)

            Return ONLY this JSON object:
            {{
              "pronunciation_score": <number 0-100>,
              "spelling_score": <number 0-100>,
              "is_correct": <boolean>,
              "feedback": "<specific feedback about pronunciation/spelling>",
              "phonetic_similarity": <number 0-100>,
              "retry_suggested": <boolean>
            }}

            Be strict but encouraging. Focus on {focus}.
        """

    def _parse_judgement(self, response: str) -> dict:
        """Extract the JSON object from a model response."""
        sanitized = response[response.find('{'):response.rfind('}') + 1]
        try:
            judgement = json.loads(sanitized)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse judgement: {e}")
            logger.error(f"Raw response:\n{response}")
            if '{' not in response:
                logger.error("Diagnosis: No opening brace '{' found in response")
            elif '}' not in response:
                logger.error("Diagnosis: No closing brace '}' found in response")
            raise QualitativeScorerFailure("Malformed judgement from Gemini") from e

        if not isinstance(judgement, dict):
            raise QualitativeScorerFailure("Judgement is not a JSON object")
        missing_keys = [k for k in REQUIRED_JUDGEMENT_KEYS if k not in judgement]
        if missing_keys:
            logger.warning(f"AI response missing keys: {missing_keys}")
            logger.warning(f"Raw response:\n{response}")
            raise QualitativeScorerFailure(f"Judgement missing keys: {missing_keys}")
        return judgement

    def score(self, target_word: str, transcript: str, mode: str) -> dict:
        response, ms = self._generate(self._evaluation_prompt(target_word, transcript, mode), 'score')
        judgement = self._parse_judgement(response)
        logger.info(f"Scored '{transcript}' against '{target_word}' in {ms}ms")
        return judgement
