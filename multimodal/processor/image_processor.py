import asyncio
from collections.abc import Callable
from typing import cast

from PIL import Image

from multimodal.logging.logger import Log
from multimodal.processor.base import BaseProcessor, Stage
from multimodal.processor.exceptions import InputError
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.models import (
    ImageProcessingOptions,
    ImageRecord,
    MediaKind,
    MediaRecord,
    ProcessingOptions,
)
from multimodal.processor.results import ImageProcessingResult
from multimodal.vision import transforms
from multimodal.vision.base import BaseFaceDetector, BaseObjectDetector, BaseTextDetector

ImageTransform = Callable[[Image.Image], Image.Image]


class ImageProcessor(BaseProcessor):
    """Decodes an image with Pillow and runs detectors and pixel transforms on it."""

    kind = MediaKind.IMAGE
    record_type = ImageRecord
    options_type = ImageProcessingOptions

    def __init__(
        self,
        loader: MediaLoader,
        object_detector: BaseObjectDetector,
        face_detector: BaseFaceDetector,
        text_detector: BaseTextDetector,
        *,
        run_id: str | None = None,
    ) -> None:
        super().__init__(loader, run_id=run_id)
        self._object_detector = object_detector
        self._face_detector = face_detector
        self._text_detector = text_detector

    def _new_result(self, record: MediaRecord) -> ImageProcessingResult:
        return ImageProcessingResult(id=self.run_id, input_data=record)

    def _validate(self, record: MediaRecord, options: ProcessingOptions) -> None:
        super()._validate(record, options)
        options = cast(ImageProcessingOptions, options)
        for name in ("resize_width", "resize_height"):
            value = getattr(options, name)
            if value is not None and value <= 0:
                raise InputError(f"{name} must be positive, got {value}")

    async def _decode(self, record: ImageRecord, options: ImageProcessingOptions) -> Image.Image:
        raw = await self._loader.load(record, self._lifecycle.abort, options.max_size)
        image = await asyncio.to_thread(transforms.decode, raw)
        Log.info(f"Decoded {image.format or 'image'} {image.width}x{image.height} for run {self.run_id}")
        return image

    def _plan_stages(
        self,
        image: Image.Image,
        result: ImageProcessingResult,
        options: ImageProcessingOptions,
    ) -> list[Stage]:
        stages: list[Stage] = []
        if options.detect_objects:
            stages.append(Stage("object_detection", lambda: self._detect_objects(image, result)))
        if options.detect_faces:
            stages.append(Stage("face_detection", lambda: self._detect_faces(image, result)))
        if options.detect_text:
            stages.append(Stage("text_detection", lambda: self._detect_text(image, result, options)))
        if options.enhance_quality:
            stages.append(Stage("enhancement", lambda: self._enhance(image, result, options)))
        if options.remove_background:
            stages.append(Stage("background_removal", lambda: self._remove_background(image, result)))
        if options.resize_width is not None or options.resize_height is not None:
            stages.append(Stage("resize", lambda: self._resize(image, result, options)))
        return stages

    async def _detect_objects(self, image: Image.Image, result: ImageProcessingResult) -> None:
        result.detected_objects = await asyncio.to_thread(self._object_detector.detect, image)

    async def _detect_faces(self, image: Image.Image, result: ImageProcessingResult) -> None:
        result.detected_faces = await asyncio.to_thread(self._face_detector.detect, image)

    async def _detect_text(
        self,
        image: Image.Image,
        result: ImageProcessingResult,
        options: ImageProcessingOptions,
    ) -> None:
        result.detected_text = await asyncio.to_thread(
            self._text_detector.detect, image, options.language
        )

    async def _enhance(
        self,
        image: Image.Image,
        result: ImageProcessingResult,
        options: ImageProcessingOptions,
    ) -> None:
        result.enhanced_image = await self._render(image, transforms.enhance, "enhanced", options.quality)

    async def _remove_background(self, image: Image.Image, result: ImageProcessingResult) -> None:
        result.background_removed_image = await self._render(image, transforms.remove_background, "nobg")

    async def _resize(
        self,
        image: Image.Image,
        result: ImageProcessingResult,
        options: ImageProcessingOptions,
    ) -> None:
        result.resized_image = await self._render(
            image,
            lambda source: transforms.resize(source, options.resize_width, options.resize_height),
            "resized",
            options.quality,
        )

    async def _render(
        self,
        image: Image.Image,
        transform: ImageTransform,
        suffix: str,
        quality: float | None = None,
    ) -> ImageRecord:
        def work() -> tuple[bytes, str, int, int]:
            output = transform(image)
            data, fmt = transforms.encode(output, quality)
            return data, fmt, output.width, output.height

        data, fmt, width, height = await asyncio.to_thread(work)
        return ImageRecord(
            id=f"{self.run_id}-{suffix}",
            data=data,
            width=width,
            height=height,
            format=fmt,
        )
