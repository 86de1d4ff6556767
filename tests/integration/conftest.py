from pathlib import Path

import pytest

from multimodal.config.settings import Settings


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings(_env_file=None, max_concurrent_runs=2)


@pytest.fixture()
def media_on_disk(
    tmp_path: Path,
    png_bytes: bytes,
    wav_bytes: bytes,
    long_text_pdf_bytes: bytes,
    table_pdf_bytes: bytes,
) -> Path:
    """Write one file of each kind under a fresh files root and return the root."""
    (tmp_path / "square.png").write_bytes(png_bytes)
    (tmp_path / "tone.wav").write_bytes(wav_bytes)
    (tmp_path / "report.pdf").write_bytes(long_text_pdf_bytes)
    (tmp_path / "table.pdf").write_bytes(table_pdf_bytes)
    (tmp_path / "notes.md").write_text("# Notes\n\nShort note.", encoding="utf-8")
    return tmp_path
