import io

import numpy as np
import pytest
import soundfile as sf
from PIL import Image
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle

SAMPLE_RATE = 8000

LONG_TEXT = (
    "The quarterly report covers revenue, staffing and the product roadmap. "
    "Revenue grew by twelve percent while headcount stayed flat. "
    "The roadmap adds offline mode and a new export format next quarter."
)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def long_text_pdf_bytes() -> bytes:
    """Generate a PDF whose text is long enough to be summarized."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle("Quarterly report")
    c.setAuthor("Finance team")
    c.setKeywords("revenue, roadmap")
    text = c.beginText(72, 720)
    for sentence in LONG_TEXT.split(". "):
        text.textLine(sentence)
    c.drawText(text)
    c.save()
    return buf.getvalue()


@pytest.fixture()
def table_pdf_bytes() -> bytes:
    """Generate a PDF with one ruled 3x2 table."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=letter)
    table = Table([["Name", "Qty"], ["apple", "3"], ["pear", "5"]])
    table.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 1, colors.black)]))
    doc.build([table])
    return buf.getvalue()


@pytest.fixture()
def image_pdf_bytes() -> bytes:
    """Generate a PDF with one embedded raster image."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawImage(ImageReader(Image.new("RGB", (40, 30), (200, 30, 30))), 72, 600, width=80, height=60)
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """A 64x48 PNG: white background with a red square in the middle."""
    image = Image.new("RGB", (64, 48), (255, 255, 255))
    image.paste((220, 20, 20), (22, 14, 42, 34))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def tone_samples() -> np.ndarray:
    """One second of a 440 Hz tone followed by one second of silence, mono."""
    t = np.arange(SAMPLE_RATE) / SAMPLE_RATE
    tone = 0.5 * np.sin(2 * np.pi * 440 * t)
    samples = np.concatenate([tone, np.zeros(SAMPLE_RATE)]).astype(np.float32)
    return samples.reshape(-1, 1)


@pytest.fixture()
def wav_bytes(tone_samples: np.ndarray) -> bytes:
    """Two seconds of 16-bit mono WAV built from ``tone_samples``."""
    buf = io.BytesIO()
    sf.write(buf, tone_samples, SAMPLE_RATE, format="WAV", subtype="PCM_16")
    return buf.getvalue()
