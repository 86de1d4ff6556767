from collections.abc import Callable

from multimodal.config.settings import Settings
from multimodal.pdf.base import BasePdfExtractor
from multimodal.pdf.pdfplumber_adapter import PdfPlumberAdapter
from multimodal.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Creates the configured PDF engine for document runs."""

    ADAPTERS: dict[str, Callable[[Settings], BasePdfExtractor]] = {
        "pdfplumber": lambda settings: PdfPlumberAdapter(
            image_resolution=settings.pdf_image_resolution
        ),
        # PyMuPDF extracts embedded image streams as-is, so no render resolution.
        "pymupdf": lambda settings: PyMuPdfAdapter(),
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.strip().lower()
        build = cls.ADAPTERS.get(engine)
        if build is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        if settings.pdf_image_resolution <= 0:
            raise ValueError(
                f"pdf_image_resolution must be positive, got {settings.pdf_image_resolution}"
            )
        return build(settings)
