class TranscriptionError(Exception):
    """Raised when transcription fails."""


class TranscriptionNetworkError(TranscriptionError):
    """Raised when the transcription provider call fails due to network/infrastructure issues."""
