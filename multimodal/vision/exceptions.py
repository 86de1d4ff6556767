class TextDetectionError(Exception):
    """Raised when an OCR engine fails."""
