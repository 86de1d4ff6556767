import asyncio
import base64
import binascii
from pathlib import Path
from urllib.parse import unquote_to_bytes, urlsplit

import httpx

from multimodal.logging.logger import Log
from multimodal.processor.exceptions import (
    CancellationError,
    DecodeError,
    FetchError,
    InputError,
)
from multimodal.processor.models import MediaRecord


def decode_base64_payload(payload: str) -> bytes:
    """Decode a bare base64 string or a ``data:<mime>;base64,<data>`` URL."""
    if payload.startswith("data:"):
        header, _, body = payload.partition(",")
        if not header.endswith(";base64"):
            return unquote_to_bytes(body)
        payload = body
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 payload: {exc}") from exc


class MediaLoader:
    """Reads a record's bytes from its inline payload or its locator.

    Supported locators: ``http(s)://`` URLs, ``data:`` URLs, ``file://`` URLs
    and filesystem paths. Relative paths resolve under ``files_root``.
    """

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        *,
        timeout_seconds: float = 30,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._timeout_seconds = timeout_seconds
        self._max_bytes = max_bytes
        self._transport = transport

    async def load(
        self,
        record: MediaRecord,
        abort: asyncio.Event | None = None,
        max_size: int | None = None,
    ) -> bytes:
        """Return the raw bytes behind a record.

        Raises:
            InputError: if the record has neither a locator nor an inline payload,
                or the payload exceeds ``max_size`` (default: the loader-wide cap).
            FetchError: if the locator cannot be read.
            DecodeError: if an inline base64 payload is malformed.
            CancellationError: if the abort signal is raised around the read.
        """
        self._check_abort(record, abort)
        data: bytes | None = getattr(record, "data", None)
        encoded: str | None = getattr(record, "base64", None)
        url: str | None = getattr(record, "url", None)

        if data:
            raw = data
        elif encoded:
            raw = decode_base64_payload(encoded)
        elif url:
            raw = await self._fetch(url)
        else:
            raise InputError(f"Record {record.id} has neither a locator nor an inline payload")

        self._check_abort(record, abort)
        max_size = max_size if max_size is not None else self._max_bytes
        if max_size is not None and len(raw) > max_size:
            raise InputError(
                f"Record {record.id} payload is {len(raw)} bytes, limit is {max_size}"
            )
        Log.debug(f"Loaded {len(raw)} bytes for record {record.id}")
        return raw

    async def _fetch(self, url: str) -> bytes:
        scheme = urlsplit(url).scheme.lower()
        if scheme in ("http", "https"):
            return await self._fetch_http(url)
        if scheme == "data":
            return decode_base64_payload(url)
        if scheme in ("", "file") or len(scheme) == 1:  # drive letters look like schemes
            return await asyncio.to_thread(self._read_path, self._resolve_path(url))
        raise FetchError(f"Unsupported locator scheme '{scheme}' in {url}")

    async def _fetch_http(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Failed to load {url}: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to load {url}: {exc}") from exc

    def _resolve_path(self, locator: str) -> Path:
        if locator.startswith("file://"):
            return Path(unquote_to_bytes(urlsplit(locator).path).decode())
        path = Path(locator)
        return path if path.is_absolute() else self._files_root / path

    @staticmethod
    def _read_path(path: Path) -> bytes:
        if not path.is_file():
            raise FetchError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FetchError(f"Failed to read {path}: {exc}") from exc

    @staticmethod
    def _check_abort(record: MediaRecord, abort: asyncio.Event | None) -> None:
        if abort is not None and abort.is_set():
            raise CancellationError(f"Loading record {record.id} was cancelled")
