class ProcessorError(Exception):
    """Base exception for all processor-related errors."""

    code = "processor_error"


class InputError(ProcessorError):
    """Raised when a record or its options cannot be processed as given."""

    code = "input_error"


class UnsupportedMediaKindError(InputError):
    """Raised when no processor handles the record's kind."""

    code = "unsupported_kind"


class FetchError(InputError):
    """Raised when a record's locator cannot be read."""

    code = "fetch_error"


class DecodeError(ProcessorError):
    """Raised when loaded bytes cannot be parsed into the expected decoded form."""

    code = "decode_error"


class StageError(ProcessorError):
    """Raised when an enabled stage fails while running."""

    code = "stage_error"

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"Stage '{stage}' failed: {message}")
        self.stage = stage


class CancellationError(ProcessorError):
    """Raised when a run is cancelled before reaching a terminal state."""

    code = "cancelled"


class ProcessingTimeoutError(ProcessorError):
    """Raised when a run exceeds its configured deadline."""

    code = "timeout"
