import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.image_processor import ImageProcessor
from multimodal.processor.models import ImageProcessingOptions, ImageRecord, ProcessingStatus
from multimodal.vision.base import BaseTextDetector
from multimodal.vision.example_detectors import (
    ExampleFaceDetector,
    ExampleObjectDetector,
    ExampleTextDetector,
)
from multimodal.vision.exceptions import TextDetectionError


def _make_processor(text_detector: BaseTextDetector | None = None) -> ImageProcessor:
    return ImageProcessor(
        MediaLoader(Path(".")),
        ExampleObjectDetector(),
        ExampleFaceDetector(),
        text_detector or ExampleTextDetector(),
    )


class TestImageProcessor:
    @pytest.mark.asyncio
    async def test_detect_objects_only(self, png_bytes: bytes) -> None:
        result = await _make_processor().process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(detect_objects=True)
        )
        assert result.status is ProcessingStatus.COMPLETED
        assert result.progress == 1.0
        assert result.detected_objects is not None and len(result.detected_objects) == 1
        assert result.detected_faces is None
        assert result.detected_text is None
        assert result.enhanced_image is None
        assert result.background_removed_image is None
        assert result.resized_image is None

    @pytest.mark.asyncio
    async def test_all_detectors(self, png_bytes: bytes) -> None:
        result = await _make_processor().process(
            ImageRecord(data=png_bytes),
            ImageProcessingOptions(detect_objects=True, detect_faces=True, detect_text=True),
        )
        assert result.detected_faces is not None and len(result.detected_faces) == 1
        assert result.detected_text == []

    @pytest.mark.asyncio
    async def test_resize_produces_new_record(self, png_bytes: bytes) -> None:
        processor = _make_processor()
        result = await processor.process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(resize_width=32)
        )
        resized = result.resized_image
        assert resized is not None
        assert resized.id == f"{processor.run_id}-resized"
        assert (resized.width, resized.height) == (32, 24)
        assert resized.format == "png"
        assert resized.data is not None
        assert Image.open(io.BytesIO(resized.data)).size == (32, 24)

    @pytest.mark.asyncio
    async def test_enhance_with_quality_writes_jpeg(self, png_bytes: bytes) -> None:
        result = await _make_processor().process(
            ImageRecord(data=png_bytes),
            ImageProcessingOptions(enhance_quality=True, quality=0.7),
        )
        assert result.enhanced_image is not None
        assert result.enhanced_image.format == "jpeg"

    @pytest.mark.asyncio
    async def test_background_removal(self, png_bytes: bytes) -> None:
        result = await _make_processor().process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(remove_background=True)
        )
        assert result.background_removed_image is not None
        assert result.background_removed_image.format == "png"

    @pytest.mark.asyncio
    async def test_invalid_resize_is_input_error(self, png_bytes: bytes) -> None:
        result = await _make_processor().process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(resize_width=0)
        )
        assert result.status is ProcessingStatus.FAILED
        assert result.error_code == "input_error"

    @pytest.mark.asyncio
    async def test_undecodable_image_fails(self) -> None:
        result = await _make_processor().process(
            ImageRecord(data=b"not an image"), ImageProcessingOptions(detect_objects=True)
        )
        assert result.status is ProcessingStatus.FAILED
        assert result.error_code == "decode_error"
        assert result.detected_objects is None

    @pytest.mark.asyncio
    async def test_ocr_failure_fails_run(self, png_bytes: bytes) -> None:
        detector = MagicMock(spec=BaseTextDetector)
        detector.detect.side_effect = TextDetectionError("engine missing")
        result = await _make_processor(detector).process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(detect_text=True)
        )
        assert result.status is ProcessingStatus.FAILED
        assert result.error == "Stage 'text_detection' failed: engine missing"

    @pytest.mark.asyncio
    async def test_language_is_passed_to_ocr(self, png_bytes: bytes) -> None:
        detector = MagicMock(spec=BaseTextDetector)
        detector.detect.return_value = []
        await _make_processor(detector).process(
            ImageRecord(data=png_bytes), ImageProcessingOptions(detect_text=True, language="fr")
        )
        assert detector.detect.call_args.args[1] == "fr"
