import argparse
import asyncio
import json
import sys
from dataclasses import asdict, fields, is_dataclass
from pathlib import Path
from typing import Any

from multimodal.config.settings import Settings
from multimodal.logging.logger import Log
from multimodal.processor.models import (
    AudioProcessingOptions,
    AudioRecord,
    DocumentProcessingOptions,
    DocumentRecord,
    ImageProcessingOptions,
    ImageRecord,
    MediaRecord,
    ProcessingOptions,
    ProcessingStatus,
)
from multimodal.processor.results import ProcessingResult
from multimodal.service.media_service import MediaService, build_media_service

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"})
AUDIO_EXTENSIONS = frozenset({".wav", ".flac", ".ogg", ".aiff", ".aif"})
DOCUMENT_EXTENSIONS = frozenset({".pdf", ".txt", ".md", ".csv", ".html", ".json"})
_BASE_FIELDS = frozenset(item.name for item in fields(ProcessingResult))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multimodal-process",
        description="Run images, audio clips and documents through the media pipeline.",
    )
    parser.add_argument("files", nargs="+", type=Path)
    parser.add_argument("--timeout", type=float, default=None, help="per-run deadline in seconds")
    parser.add_argument("--quality", type=float, default=None, help="re-encode quality in [0, 1]")
    parser.add_argument("--language", default=None)

    image = parser.add_argument_group("image")
    image.add_argument("--detect-objects", action="store_true")
    image.add_argument("--detect-faces", action="store_true")
    image.add_argument("--detect-text", action="store_true")
    image.add_argument("--enhance", action="store_true")
    image.add_argument("--remove-background", action="store_true")
    image.add_argument("--resize-width", type=int, default=None)
    image.add_argument("--resize-height", type=int, default=None)

    audio = parser.add_argument_group("audio")
    audio.add_argument("--transcribe", action="store_true")
    audio.add_argument("--remove-silence", action="store_true")
    audio.add_argument("--reduce-noise", action="store_true")
    audio.add_argument("--speed", type=float, default=None)
    audio.add_argument("--volume", type=float, default=None)

    document = parser.add_argument_group("document")
    document.add_argument("--extract-text", action="store_true")
    document.add_argument("--extract-images", action="store_true")
    document.add_argument("--extract-tables", action="store_true")
    document.add_argument("--metadata", action="store_true")
    document.add_argument("--pages", type=int, nargs=2, metavar=("START", "END"), default=None)

    parser.add_argument("--output-dir", type=Path, default=None, help="write produced media here")
    return parser


def build_job(path: Path, args: argparse.Namespace) -> tuple[MediaRecord, ProcessingOptions]:
    """Infer the record kind from the file extension and build its options."""
    suffix = path.suffix.lower()
    locator = str(path.resolve())
    common: dict[str, Any] = {
        "timeout_seconds": args.timeout,
        "quality": args.quality,
        "language": args.language,
    }
    if suffix in IMAGE_EXTENSIONS:
        return ImageRecord(url=locator, format=suffix.lstrip(".")), ImageProcessingOptions(
            detect_objects=args.detect_objects,
            detect_faces=args.detect_faces,
            detect_text=args.detect_text,
            enhance_quality=args.enhance,
            remove_background=args.remove_background,
            resize_width=args.resize_width,
            resize_height=args.resize_height,
            **common,
        )
    if suffix in AUDIO_EXTENSIONS:
        return AudioRecord(url=locator, format=suffix.lstrip(".")), AudioProcessingOptions(
            transcribe=args.transcribe,
            remove_silence=args.remove_silence,
            reduce_noise=args.reduce_noise,
            speed_factor=args.speed,
            volume_factor=args.volume,
            **common,
        )
    if suffix in DOCUMENT_EXTENSIONS:
        record = DocumentRecord(url=locator, format=suffix.lstrip("."), title=path.stem)
        return record, DocumentProcessingOptions(
            extract_text=args.extract_text,
            extract_images=args.extract_images,
            extract_tables=args.extract_tables,
            include_metadata=args.metadata,
            page_range=(args.pages[0], args.pages[1]) if args.pages else None,
            **common,
        )
    raise ValueError(f"Cannot infer media kind of {path}")


def summarize_result(path: Path, result: ProcessingResult, output_dir: Path | None) -> dict[str, Any]:
    """JSON-friendly view of a result; produced media is written out or reduced to its size."""
    summary: dict[str, Any] = {
        "file": str(path),
        "run_id": result.id,
        "status": result.status.value,
        "progress": result.progress,
        "duration": result.duration,
        "error": result.error,
        "error_code": result.error_code,
    }
    for item in fields(result):
        if item.name in _BASE_FIELDS:
            continue
        value = getattr(result, item.name)
        if value is None:
            continue
        summary[item.name] = _jsonable(value, output_dir)
    return summary


def _jsonable(value: Any, output_dir: Path | None) -> Any:
    if isinstance(value, (ImageRecord, AudioRecord)):
        return _write_media(value, output_dir)
    if isinstance(value, list):
        return [_jsonable(item, output_dir) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def _write_media(record: ImageRecord | AudioRecord, output_dir: Path | None) -> dict[str, Any]:
    data = record.data or b""
    described: dict[str, Any] = {"id": record.id, "format": record.format, "bytes": len(data)}
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / f"{record.id}.{record.format or 'bin'}"
        target.write_bytes(data)
        described["path"] = str(target)
    return described


async def run(paths: list[Path], args: argparse.Namespace, service: MediaService) -> int:
    jobs = [(path, *build_job(path, args)) for path in paths]
    results = await asyncio.gather(
        *(service.process_and_wait(record, options) for _, record, options in jobs)
    )
    failed = 0
    for (path, _, _), result in zip(jobs, results):
        print(json.dumps(summarize_result(path, result, args.output_dir), default=str))
        if result.status is not ProcessingStatus.COMPLETED:
            failed += 1
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    """Entry point: load settings -> build service -> process files concurrently."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level, sys.stderr)  # stdout carries the JSON results

    try:
        service = build_media_service(settings)
        return asyncio.run(run(args.files, args, service))
    except ValueError as exc:
        Log.error(str(exc))
        return 2


if __name__ == "__main__":
    sys.exit(main())
