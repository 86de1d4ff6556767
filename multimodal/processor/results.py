from dataclasses import dataclass, field
from datetime import datetime

from multimodal.processor.models import (
    AudioRecord,
    ImageRecord,
    MediaRecord,
    ProcessingStatus,
    utcnow,
)


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class DetectedObject:
    label: str
    confidence: float
    bounding_box: BoundingBox | None = None


@dataclass(frozen=True)
class FaceLandmarks:
    left_eye: tuple[int, int] | None = None
    right_eye: tuple[int, int] | None = None
    nose: tuple[int, int] | None = None
    left_mouth: tuple[int, int] | None = None
    right_mouth: tuple[int, int] | None = None


@dataclass(frozen=True)
class DetectedFace:
    confidence: float
    bounding_box: BoundingBox | None = None
    landmarks: FaceLandmarks | None = None


@dataclass(frozen=True)
class DetectedText:
    text: str
    confidence: float
    bounding_box: BoundingBox | None = None


@dataclass(frozen=True)
class TranscriptSegment:
    start: float  # seconds
    end: float
    text: str
    confidence: float


@dataclass(frozen=True)
class LanguageDetection:
    language: str
    confidence: float


@dataclass(frozen=True)
class Transcription:
    """Output of a transcriber capability."""

    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: LanguageDetection | None = None


@dataclass(frozen=True)
class ExtractedTable:
    rows: int
    columns: int
    data: list[list[str]]
    page: int


@dataclass(frozen=True)
class DocumentMetadata:
    title: str | None = None
    author: str | None = None
    creation_date: str | None = None
    modification_date: str | None = None
    keywords: list[str] = field(default_factory=list)
    page_count: int | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    """Point-in-time copy of a run's lifecycle state."""

    id: str
    status: ProcessingStatus
    progress: float
    error: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclass
class ProcessingResult:
    """Accumulates stage outputs while a run moves through its lifecycle."""

    id: str
    input_data: MediaRecord
    status: ProcessingStatus = ProcessingStatus.PENDING
    progress: float = 0.0
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    duration: float | None = None  # seconds
    error: str | None = None
    error_code: str | None = None


@dataclass
class ImageProcessingResult(ProcessingResult):
    detected_objects: list[DetectedObject] | None = None
    detected_faces: list[DetectedFace] | None = None
    detected_text: list[DetectedText] | None = None
    enhanced_image: ImageRecord | None = None
    background_removed_image: ImageRecord | None = None
    resized_image: ImageRecord | None = None


@dataclass
class AudioProcessingResult(ProcessingResult):
    transcript: str | None = None
    segments: list[TranscriptSegment] | None = None
    language_detection: LanguageDetection | None = None
    silence_removed_audio: AudioRecord | None = None
    noise_reduced_audio: AudioRecord | None = None
    adjusted_audio: AudioRecord | None = None

    @property
    def processed_audio(self) -> AudioRecord | None:
        """Most-processed audio output produced by this run, if any."""
        return self.adjusted_audio or self.noise_reduced_audio or self.silence_removed_audio


@dataclass
class DocumentProcessingResult(ProcessingResult):
    extracted_text: str | None = None
    extracted_images: list[ImageRecord] | None = None
    extracted_tables: list[ExtractedTable] | None = None
    document_metadata: DocumentMetadata | None = None
    summary: str | None = None
