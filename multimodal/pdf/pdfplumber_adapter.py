import io
from typing import Any

import pdfplumber

from multimodal.pdf.base import (
    BasePdfExtractor,
    PageRange,
    clean_cells,
    page_indices,
    split_keywords,
)
from multimodal.pdf.exceptions import PdfExtractionError
from multimodal.processor.models import ImageRecord
from multimodal.processor.results import DocumentMetadata, ExtractedTable

IMAGE_RESOLUTION = 150


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text, tables, images and metadata from PDF using pdfplumber."""

    def __init__(self, image_resolution: int = IMAGE_RESOLUTION) -> None:
        self._image_resolution = image_resolution

    def extract(self, pdf_bytes: bytes, page_range: PageRange | None = None) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [
                    pdf.pages[i].extract_text() or ""
                    for i in page_indices(len(pdf.pages), page_range)
                ]
            return "\n".join(pages).strip()
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

    def extract_tables(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ExtractedTable]:
        tables: list[ExtractedTable] = []
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for i in page_indices(len(pdf.pages), page_range):
                    for raw in pdf.pages[i].extract_tables():
                        data = clean_cells(raw)
                        tables.append(
                            ExtractedTable(
                                rows=len(data),
                                columns=max((len(row) for row in data), default=0),
                                data=data,
                                page=i + 1,
                            )
                        )
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber table extraction failed: {exc}") from exc
        return tables

    def extract_images(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ImageRecord]:
        images: list[ImageRecord] = []
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for i in page_indices(len(pdf.pages), page_range):
                    page = pdf.pages[i]
                    for n, info in enumerate(page.images, start=1):
                        images.append(self._render_image(page, info, i + 1, n))
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber image extraction failed: {exc}") from exc
        return images

    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                info: dict[str, Any] = pdf.metadata or {}
                page_count = len(pdf.pages)
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber metadata extraction failed: {exc}") from exc
        return DocumentMetadata(
            title=info.get("Title") or None,
            author=info.get("Author") or None,
            creation_date=info.get("CreationDate") or None,
            modification_date=info.get("ModDate") or None,
            keywords=split_keywords(info.get("Keywords")),
            page_count=page_count,
        )

    def _render_image(self, page: Any, info: dict[str, Any], page_number: int, n: int) -> ImageRecord:
        # Embedded streams may use filters Pillow cannot read, so crop the rendered page.
        bbox = (
            max(info["x0"], 0),
            max(info["top"], 0),
            min(info["x1"], page.width),
            min(info["bottom"], page.height),
        )
        rendered = page.crop(bbox).to_image(resolution=self._image_resolution).original
        buffer = io.BytesIO()
        rendered.save(buffer, format="PNG")
        return ImageRecord(
            id=f"page{page_number}-image{n}",
            data=buffer.getvalue(),
            width=rendered.width,
            height=rendered.height,
            format="png",
            metadata={"page": page_number},
        )
