"""Error variants raised by the quiz engine and its collaborators."""


class WordSnapError(Exception):
    """Base class for all wordsnap errors."""

    kind = 'error'
    recoverable = False

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidUpload(WordSnapError):
    """Upload rejected: wrong file type or file too large."""
    kind = 'invalid_upload'


class RecognitionFailure(WordSnapError):
    """Failed to extract text from image."""
    kind = 'recognition_failure'


class TranscriptionFailure(WordSnapError):
    """Failed to transcribe audio."""
    kind = 'transcription_failure'
    recoverable = True


class QualitativeScorerFailure(WordSnapError):
    """Qualitative scorer failed, timed out or returned a malformed judgement."""
    kind = 'qualitative_scorer_failure'
    recoverable = True


class InvalidSessionOperation(WordSnapError):
    """Operation not allowed in the current quiz state."""
    kind = 'invalid_session_operation'


class EmptyWordList(WordSnapError):
    """No words could be extracted. Please try another photo."""
    kind = 'empty_word_list'


class QuizNotFound(WordSnapError):
    """Quiz session not found."""
    kind = 'quiz_not_found'
