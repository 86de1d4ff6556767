import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class MediaKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"
    VIDEO = "video"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def new_id(prefix: str) -> str:
    """Build a unique identifier such as ``mmp-3f2a...``."""
    return f"{prefix}-{uuid.uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MediaRecord:
    """Common fields of every input record handed to the pipeline."""

    id: str = field(default_factory=lambda: new_id("media"))
    created_at: datetime = field(default_factory=utcnow)
    metadata: dict[str, object] = field(default_factory=dict)

    kind: MediaKind = field(init=False, default=MediaKind.TEXT)


@dataclass(frozen=True)
class TextRecord(MediaRecord):
    content: str = ""
    language: str | None = None

    kind: MediaKind = field(init=False, default=MediaKind.TEXT)


@dataclass(frozen=True)
class ImageRecord(MediaRecord):
    url: str | None = None
    data: bytes | None = None
    base64: str | None = None
    width: int | None = None
    height: int | None = None
    format: str | None = None
    alt: str | None = None
    caption: str | None = None

    kind: MediaKind = field(init=False, default=MediaKind.IMAGE)


@dataclass(frozen=True)
class AudioRecord(MediaRecord):
    url: str | None = None
    data: bytes | None = None
    base64: str | None = None
    duration: float | None = None  # seconds
    format: str | None = None
    transcript: str | None = None

    kind: MediaKind = field(init=False, default=MediaKind.AUDIO)


@dataclass(frozen=True)
class DocumentRecord(MediaRecord):
    url: str | None = None
    data: bytes | None = None
    base64: str | None = None
    content: str | None = None  # text extracted upstream, if any
    format: str = "pdf"
    page_count: int | None = None
    title: str | None = None
    author: str | None = None

    kind: MediaKind = field(init=False, default=MediaKind.DOCUMENT)


@dataclass(frozen=True)
class VideoRecord(MediaRecord):
    url: str | None = None
    duration: float | None = None
    format: str | None = None
    width: int | None = None
    height: int | None = None
    thumbnail: str | None = None
    transcript: str | None = None

    kind: MediaKind = field(init=False, default=MediaKind.VIDEO)


@dataclass(frozen=True)
class ProcessingOptions:
    """Options shared by every processor."""

    max_size: int | None = None  # bytes
    timeout_seconds: float | None = None
    quality: float | None = None  # 0-1
    language: str | None = None


@dataclass(frozen=True)
class ImageProcessingOptions(ProcessingOptions):
    detect_objects: bool = False
    detect_faces: bool = False
    detect_text: bool = False
    enhance_quality: bool = False
    remove_background: bool = False
    resize_width: int | None = None
    resize_height: int | None = None


@dataclass(frozen=True)
class AudioProcessingOptions(ProcessingOptions):
    transcribe: bool = False
    transcription_language: str | None = None
    remove_silence: bool = False
    reduce_noise: bool = False
    speed_factor: float | None = None
    volume_factor: float | None = None


@dataclass(frozen=True)
class DocumentProcessingOptions(ProcessingOptions):
    extract_text: bool = False
    extract_images: bool = False
    extract_tables: bool = False
    include_metadata: bool = False
    page_range: tuple[int, int] | None = None  # 1-based, inclusive
