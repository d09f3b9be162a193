"""File-based storage implementation."""

import json
import logging
import os
import re

from core.errors import InvalidSessionOperation
from core.interfaces import QuizStore

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r'[A-Za-z0-9_-]+')


class FileStorage(QuizStore):
    """Stores one JSON document per quiz session."""

    def __init__(self, config_file: str = None, state_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/wordsnap/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or os.path.join(project_root, 'quizzes')
        os.makedirs(self.state_dir, exist_ok=True)

    def _get_quiz_file(self, session_id: str) -> str:
        """Get quiz file path for a session."""
        if not _SAFE_ID.fullmatch(session_id or ''):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return os.path.join(self.state_dir, f'quiz_{session_id}.json')

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def load_quiz(self, session_id: str) -> dict | None:
        try:
            quiz_file = self._get_quiz_file(session_id)
        except ValueError:
            return None
        if not os.path.exists(quiz_file):
            return None
        try:
            with open(quiz_file, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading quiz {session_id}: {e}")
            return None

    def save_quiz(self, quiz: dict) -> None:
        quiz_file = self._get_quiz_file(quiz['session_id'])
        stored = self.load_quiz(quiz['session_id'])
        if stored and stored.get('version', 0) >= quiz.get('version', 0):
            raise InvalidSessionOperation(
                f"Quiz {quiz['session_id']} was modified concurrently"
            )
        # Write then rename so readers never see a partial document
        tmp_file = quiz_file + '.tmp'
        with open(tmp_file, 'w') as f:
            json.dump(quiz, f, indent=2)
        os.replace(tmp_file, quiz_file)

    def list_quizzes(self, owner_id: str) -> list[dict]:
        quizzes = []
        for filename in os.listdir(self.state_dir):
            if not (filename.startswith('quiz_') and filename.endswith('.json')):
                continue
            session_id = filename[5:-5]  # Remove 'quiz_' and '.json'
            quiz = self.load_quiz(session_id)
            if quiz and quiz.get('owner_id') == owner_id:
                quizzes.append(quiz)
        quizzes.sort(key=lambda q: q.get('created_at') or '', reverse=True)
        return quizzes
