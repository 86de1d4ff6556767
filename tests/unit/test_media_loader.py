import asyncio
import base64
from pathlib import Path

import httpx
import pytest

from multimodal.processor.exceptions import (
    CancellationError,
    DecodeError,
    FetchError,
    InputError,
)
from multimodal.processor.file_loader import MediaLoader, decode_base64_payload
from multimodal.processor.models import DocumentRecord, ImageRecord


def _transport(status: int = 200, content: bytes = b"remote bytes") -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=content)

    return httpx.MockTransport(handler)


class TestDecodeBase64Payload:
    def test_decodes_bare_base64(self) -> None:
        assert decode_base64_payload(base64.b64encode(b"abc").decode()) == b"abc"

    def test_decodes_data_url(self) -> None:
        payload = "data:image/png;base64," + base64.b64encode(b"png").decode()
        assert decode_base64_payload(payload) == b"png"

    def test_decodes_percent_encoded_data_url(self) -> None:
        assert decode_base64_payload("data:text/plain,hello%20world") == b"hello world"

    def test_invalid_base64_raises_decode_error(self) -> None:
        with pytest.raises(DecodeError, match="Invalid base64"):
            decode_base64_payload("not base64!!")


class TestInlinePayloads:
    @pytest.mark.asyncio
    async def test_inline_data_wins(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        record = ImageRecord(data=b"inline", base64=base64.b64encode(b"other").decode())
        assert await loader.load(record) == b"inline"

    @pytest.mark.asyncio
    async def test_base64_payload(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        record = ImageRecord(base64=base64.b64encode(b"encoded").decode())
        assert await loader.load(record) == b"encoded"

    @pytest.mark.asyncio
    async def test_no_source_raises_input_error(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        with pytest.raises(InputError, match="neither a locator nor an inline payload"):
            await loader.load(ImageRecord())


class TestLocalFiles:
    @pytest.mark.asyncio
    async def test_relative_path_resolves_under_files_root(self, tmp_path: Path) -> None:
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.pdf").write_bytes(b"%PDF test content")
        loader = MediaLoader(tmp_path)
        assert await loader.load(DocumentRecord(url="docs/a.pdf")) == b"%PDF test content"

    @pytest.mark.asyncio
    async def test_absolute_path(self, tmp_path: Path) -> None:
        target = tmp_path / "b.txt"
        target.write_bytes(b"text")
        loader = MediaLoader(Path("/nonexistent"))
        assert await loader.load(DocumentRecord(url=str(target), format="txt")) == b"text"

    @pytest.mark.asyncio
    async def test_file_url(self, tmp_path: Path) -> None:
        target = tmp_path / "c.txt"
        target.write_bytes(b"via url")
        loader = MediaLoader(tmp_path)
        assert await loader.load(DocumentRecord(url=target.as_uri(), format="txt")) == b"via url"

    @pytest.mark.asyncio
    async def test_missing_file_raises_fetch_error(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        with pytest.raises(FetchError, match="File not found"):
            await loader.load(DocumentRecord(url="missing.pdf"))


class TestHttpLocators:
    @pytest.mark.asyncio
    async def test_fetches_http_url(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path, transport=_transport(content=b"from server"))
        record = ImageRecord(url="https://media.example.com/a.png")
        assert await loader.load(record) == b"from server"

    @pytest.mark.asyncio
    async def test_http_error_status_raises_fetch_error(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path, transport=_transport(status=404))
        with pytest.raises(FetchError, match="HTTP 404"):
            await loader.load(ImageRecord(url="https://media.example.com/missing.png"))

    @pytest.mark.asyncio
    async def test_unsupported_scheme_raises_fetch_error(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        with pytest.raises(FetchError, match="Unsupported locator scheme 'ftp'"):
            await loader.load(ImageRecord(url="ftp://media.example.com/a.png"))


class TestLimitsAndAbort:
    @pytest.mark.asyncio
    async def test_payload_over_max_size_raises(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path)
        with pytest.raises(InputError, match="limit is 3"):
            await loader.load(ImageRecord(data=b"1234"), max_size=3)

    @pytest.mark.asyncio
    async def test_loader_wide_cap_applies_without_option(self, tmp_path: Path) -> None:
        loader = MediaLoader(tmp_path, max_bytes=2)
        with pytest.raises(InputError, match="limit is 2"):
            await loader.load(ImageRecord(data=b"123"))

    @pytest.mark.asyncio
    async def test_raised_abort_signal_cancels_load(self, tmp_path: Path) -> None:
        abort = asyncio.Event()
        abort.set()
        loader = MediaLoader(tmp_path)
        with pytest.raises(CancellationError):
            await loader.load(ImageRecord(data=b"x"), abort)
