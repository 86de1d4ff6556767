"""Example vision adapters.

Use these as a reference when implementing real detectors. They run no model:
results are derived from the image geometry only, so they are deterministic.
"""

from PIL import Image

from multimodal.processor.results import (
    BoundingBox,
    DetectedFace,
    DetectedObject,
    DetectedText,
    FaceLandmarks,
)
from multimodal.vision.base import BaseFaceDetector, BaseObjectDetector, BaseTextDetector


def _centered_box(image: Image.Image, scale: float) -> BoundingBox:
    width = max(1, int(image.width * scale))
    height = max(1, int(image.height * scale))
    return BoundingBox(
        x=(image.width - width) // 2,
        y=(image.height - height) // 2,
        width=width,
        height=height,
    )


class ExampleObjectDetector(BaseObjectDetector):
    """Reports one object covering the central region of the image."""

    def detect(self, image: Image.Image) -> list[DetectedObject]:
        return [
            DetectedObject(label="object", confidence=0.95, bounding_box=_centered_box(image, 0.5))
        ]


class ExampleFaceDetector(BaseFaceDetector):
    """Reports one face with landmarks placed proportionally inside its box."""

    def detect(self, image: Image.Image) -> list[DetectedFace]:
        box = _centered_box(image, 0.3)

        def point(fx: float, fy: float) -> tuple[int, int]:
            return (box.x + int(box.width * fx), box.y + int(box.height * fy))

        return [
            DetectedFace(
                confidence=0.92,
                bounding_box=box,
                landmarks=FaceLandmarks(
                    left_eye=point(0.25, 0.25),
                    right_eye=point(0.75, 0.25),
                    nose=point(0.5, 0.5),
                    left_mouth=point(0.25, 0.75),
                    right_mouth=point(0.75, 0.75),
                ),
            )
        ]


class ExampleTextDetector(BaseTextDetector):
    """Reports no text; stands in where no OCR engine is installed."""

    def detect(self, image: Image.Image, language: str | None = None) -> list[DetectedText]:
        _ = image, language
        return []
