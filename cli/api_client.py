"""REST API client for wordsnap server."""

import mimetypes
import os

import requests


class WordSnapAPIClient:
    """Client for communicating with the wordsnap REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", owner_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.owner_id = owner_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        response = self.session.get(f"{self.base_url}{endpoint}", params=params or {})
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        response = self.session.post(f"{self.base_url}{endpoint}", json=data or {})
        response.raise_for_status()
        return response.json()

    def _upload(self, endpoint: str, field: str, path: str, data: dict = None) -> dict:
        """POST a file as multipart form data."""
        content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        with open(path, 'rb') as f:
            files = {field: (os.path.basename(path), f, content_type)}
            response = self.session.post(f"{self.base_url}{endpoint}", files=files, data=data or {})
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        return self._get("/")

    def start_from_text(self, text: str, mode: str) -> dict:
        """Start a quiz from typed text."""
        return self._post("/api/quizzes", {
            'owner_id': self.owner_id,
            'text': text,
            'mode': mode
        })

    def start_from_image(self, image_path: str, mode: str) -> dict:
        """Start a quiz from a photo."""
        return self._upload("/api/quizzes/upload", 'image', image_path, {
            'owner_id': self.owner_id,
            'mode': mode
        })

    def get_quiz(self, session_id: str) -> dict:
        return self._get(f"/api/quizzes/{session_id}")

    def get_results(self, session_id: str) -> dict:
        return self._get(f"/api/quizzes/{session_id}/results")

    def list_quizzes(self) -> dict:
        """Quiz history for the current user."""
        return self._get(f"/api/users/{self.owner_id}/quizzes")

    def submit_attempt(self, session_id: str, word: str, transcript: str) -> dict:
        """Submit an attempt for evaluation."""
        return self._post(f"/api/quizzes/{session_id}/attempts", {
            'word': word,
            'transcript': transcript
        })

    def transcribe(self, session_id: str, audio_path: str) -> dict:
        """Upload a recording for transcription."""
        return self._upload(f"/api/quizzes/{session_id}/audio", 'audio', audio_path)

    def pause(self, session_id: str) -> dict:
        return self._post(f"/api/quizzes/{session_id}/pause")

    def resume(self, session_id: str) -> dict:
        return self._post(f"/api/quizzes/{session_id}/resume")
