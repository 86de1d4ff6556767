from abc import ABC, abstractmethod

from PIL import Image

from multimodal.processor.results import DetectedFace, DetectedObject, DetectedText


class BaseObjectDetector(ABC):
    """Contract for all object detection adapters."""

    @abstractmethod
    def detect(self, image: Image.Image) -> list[DetectedObject]:
        """Detect labelled objects in a decoded image.

        Implementations are called from a worker thread and must not mutate
        ``image``.
        """


class BaseFaceDetector(ABC):
    """Contract for all face detection adapters."""

    @abstractmethod
    def detect(self, image: Image.Image) -> list[DetectedFace]:
        """Detect faces (with optional landmarks) in a decoded image."""


class BaseTextDetector(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    def detect(self, image: Image.Image, language: str | None = None) -> list[DetectedText]:
        """Detect text regions in a decoded image.

        Raises:
            TextDetectionError: if the OCR engine fails.
        """
