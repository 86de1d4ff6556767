from typing import TypeVar

from multimodal.config.settings import Settings
from multimodal.vision.base import BaseFaceDetector, BaseObjectDetector, BaseTextDetector
from multimodal.vision.example_detectors import (
    ExampleFaceDetector,
    ExampleObjectDetector,
    ExampleTextDetector,
)

T = TypeVar("T")


class VisionFactory:
    """Creates the configured detector adapters."""

    OBJECT_DETECTORS: dict[str, type[BaseObjectDetector]] = {
        "example": ExampleObjectDetector,
    }
    FACE_DETECTORS: dict[str, type[BaseFaceDetector]] = {
        "example": ExampleFaceDetector,
    }
    TEXT_DETECTORS = ("example", "tesseract")

    @classmethod
    def create_object_detector(cls, settings: Settings) -> BaseObjectDetector:
        return cls._pick(cls.OBJECT_DETECTORS, settings.object_detector, "object detector")()

    @classmethod
    def create_face_detector(cls, settings: Settings) -> BaseFaceDetector:
        return cls._pick(cls.FACE_DETECTORS, settings.face_detector, "face detector")()

    @classmethod
    def create_text_detector(cls, settings: Settings) -> BaseTextDetector:
        engine = settings.text_detector.lower()
        if engine == "example":
            return ExampleTextDetector()
        if engine == "tesseract":
            # pytesseract is an optional extra; import only when selected
            from multimodal.vision.tesseract_adapter import TesseractTextDetector

            return TesseractTextDetector()
        raise ValueError(
            f"Unknown text detector '{engine}'. Choose from: {list(cls.TEXT_DETECTORS)}"
        )

    @staticmethod
    def _pick(adapters: dict[str, type[T]], name: str, label: str) -> type[T]:
        adapter_cls = adapters.get(name.lower())
        if adapter_cls is None:
            raise ValueError(f"Unknown {label} '{name.lower()}'. Choose from: {list(adapters)}")
        return adapter_cls
