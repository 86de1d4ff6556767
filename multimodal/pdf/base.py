from abc import ABC, abstractmethod

from multimodal.processor.models import ImageRecord
from multimodal.processor.results import DocumentMetadata, ExtractedTable

PageRange = tuple[int, int]


def page_indices(page_count: int, page_range: PageRange | None) -> range:
    """Zero-based indices for a 1-based inclusive range, clipped to the document."""
    if page_range is None:
        return range(page_count)
    start, end = page_range
    return range(max(start, 1) - 1, min(end, page_count))


class BasePdfExtractor(ABC):
    """Contract for all PDF extraction adapters.

    Every method is synchronous and is called from a worker thread.
    """

    @abstractmethod
    def extract(self, pdf_bytes: bytes, page_range: PageRange | None = None) -> str:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.
            page_range: Optional 1-based inclusive page range.

        Returns:
            Extracted text as a single normalized string.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @abstractmethod
    def extract_tables(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ExtractedTable]:
        """Extract tables as rows of cell strings."""

    @abstractmethod
    def extract_images(
        self, pdf_bytes: bytes, page_range: PageRange | None = None
    ) -> list[ImageRecord]:
        """Extract embedded images as inline image records."""

    @abstractmethod
    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        """Read the document information dictionary and page count."""


def split_keywords(raw: object) -> list[str]:
    if not raw:
        return []
    parts = str(raw).replace(";", ",").split(",")
    return [part.strip() for part in parts if part.strip()]


def clean_cells(rows: list[list[object]]) -> list[list[str]]:
    return [["" if cell is None else str(cell).strip() for cell in row] for row in rows]
