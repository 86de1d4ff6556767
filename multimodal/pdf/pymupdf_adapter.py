from typing import Any

import pymupdf

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


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text, tables, images and metadata from PDF using PyMuPDF."""

    def extract(self, pdf_bytes: bytes, page_range: PageRange | None = None) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [doc[i].get_text() for i in page_indices(doc.page_count, page_range)]
            return "\n".join(pages).strip()
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    def extract_tables(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ExtractedTable]:
        tables: list[ExtractedTable] = []
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                for i in page_indices(doc.page_count, page_range):
                    for table in doc[i].find_tables().tables:
                        data = clean_cells(table.extract())
                        tables.append(
                            ExtractedTable(
                                rows=len(data),
                                columns=max((len(row) for row in data), default=0),
                                data=data,
                                page=i + 1,
                            )
                        )
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf table extraction failed: {exc}") from exc
        return tables

    def extract_images(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ImageRecord]:
        images: list[ImageRecord] = []
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                for i in page_indices(doc.page_count, page_range):
                    for n, entry in enumerate(doc[i].get_images(full=True), start=1):
                        extracted: dict[str, Any] = doc.extract_image(entry[0])
                        images.append(
                            ImageRecord(
                                id=f"page{i + 1}-image{n}",
                                data=extracted["image"],
                                width=extracted.get("width"),
                                height=extracted.get("height"),
                                format=extracted.get("ext"),
                                metadata={"page": i + 1},
                            )
                        )
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf image extraction failed: {exc}") from exc
        return images

    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                info: dict[str, Any] = doc.metadata or {}
                page_count = doc.page_count
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf metadata extraction failed: {exc}") from exc
        return DocumentMetadata(
            title=info.get("title") or None,
            author=info.get("author") or None,
            creation_date=info.get("creationDate") or None,
            modification_date=info.get("modDate") or None,
            keywords=split_keywords(info.get("keywords")),
            page_count=page_count,
        )
