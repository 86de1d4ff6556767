from collections.abc import Callable
from pathlib import Path

from multimodal.audio.base import BaseTranscriber
from multimodal.audio.factory import TranscriberFactory
from multimodal.config.settings import Settings
from multimodal.pdf.base import BasePdfExtractor
from multimodal.pdf.factory import PdfExtractorFactory
from multimodal.processor.audio_processor import AudioProcessor
from multimodal.processor.base import BaseProcessor
from multimodal.processor.document_processor import DocumentProcessor
from multimodal.processor.exceptions import UnsupportedMediaKindError
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.image_processor import ImageProcessor
from multimodal.processor.models import MediaKind
from multimodal.summarization.factory import SummarizerFactory
from multimodal.summarization.summarizer import Summarizer
from multimodal.vision.base import BaseFaceDetector, BaseObjectDetector, BaseTextDetector
from multimodal.vision.factory import VisionFactory


class ProcessorFactory:
    """Builds a fresh processor for each record kind from shared capabilities."""

    def __init__(
        self,
        settings: Settings,
        loader: MediaLoader,
        *,
        object_detector: BaseObjectDetector,
        face_detector: BaseFaceDetector,
        text_detector: BaseTextDetector,
        transcriber: BaseTranscriber,
        pdf_extractor: BasePdfExtractor,
        summarizer: Summarizer,
    ) -> None:
        self._settings = settings
        self._loader = loader
        self._object_detector = object_detector
        self._face_detector = face_detector
        self._text_detector = text_detector
        self._transcriber = transcriber
        self._pdf_extractor = pdf_extractor
        self._summarizer = summarizer
        self._builders: dict[MediaKind, Callable[[], BaseProcessor]] = {
            MediaKind.IMAGE: self._image,
            MediaKind.AUDIO: self._audio,
            MediaKind.DOCUMENT: self._document,
        }

    @property
    def supported_kinds(self) -> list[MediaKind]:
        return list(self._builders)

    def create(self, kind: MediaKind) -> BaseProcessor:
        builder = self._builders.get(kind)
        if builder is None:
            raise UnsupportedMediaKindError(
                f"No processor for media kind '{kind.value}'. "
                f"Supported: {[k.value for k in self._builders]}"
            )
        return builder()

    def _image(self) -> ImageProcessor:
        return ImageProcessor(
            self._loader,
            self._object_detector,
            self._face_detector,
            self._text_detector,
        )

    def _audio(self) -> AudioProcessor:
        return AudioProcessor(
            self._loader,
            self._transcriber,
            silence_threshold=self._settings.silence_threshold,
            silence_frame_samples=self._settings.silence_frame_samples,
            noise_highpass_hz=self._settings.noise_highpass_hz,
            noise_lowpass_hz=self._settings.noise_lowpass_hz,
        )

    def _document(self) -> DocumentProcessor:
        return DocumentProcessor(self._loader, self._pdf_extractor, self._summarizer)


def build_processor_factory(settings: Settings, files_root: Path | None = None) -> ProcessorFactory:
    """Wire the configured adapters into a processor factory."""
    if files_root is None and settings.files_root:
        files_root = Path(settings.files_root)
    loader = MediaLoader(
        files_root,
        timeout_seconds=settings.fetch_timeout_seconds,
        max_bytes=settings.max_input_bytes or None,
    )
    return ProcessorFactory(
        settings,
        loader,
        object_detector=VisionFactory.create_object_detector(settings),
        face_detector=VisionFactory.create_face_detector(settings),
        text_detector=VisionFactory.create_text_detector(settings),
        transcriber=TranscriberFactory.create(settings),
        pdf_extractor=PdfExtractorFactory.create(settings),
        summarizer=SummarizerFactory.create(settings),
    )
