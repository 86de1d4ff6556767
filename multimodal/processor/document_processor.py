import asyncio
from dataclasses import dataclass
from typing import cast

from multimodal.logging.logger import Log
from multimodal.pdf.base import BasePdfExtractor
from multimodal.processor.base import BaseProcessor, Stage
from multimodal.processor.exceptions import DecodeError, InputError
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.models import (
    DocumentProcessingOptions,
    DocumentRecord,
    MediaKind,
    MediaRecord,
    ProcessingOptions,
)
from multimodal.processor.results import DocumentMetadata, DocumentProcessingResult
from multimodal.summarization.summarizer import Summarizer

TEXT_FORMATS = frozenset({"txt", "md", "csv", "html", "json"})
PDF_MAGIC = b"%PDF"


@dataclass(frozen=True)
class DecodedDocument:
    """Loaded document: raw PDF bytes, or the text of a text-based format."""

    format: str
    data: bytes | None = None
    text: str | None = None

    @property
    def is_pdf(self) -> bool:
        return self.format == "pdf"


class DocumentProcessor(BaseProcessor):
    """Extracts text, images, tables and metadata from documents and summarizes long text."""

    kind = MediaKind.DOCUMENT
    record_type = DocumentRecord
    options_type = DocumentProcessingOptions

    def __init__(
        self,
        loader: MediaLoader,
        pdf_extractor: BasePdfExtractor,
        summarizer: Summarizer,
        *,
        run_id: str | None = None,
    ) -> None:
        super().__init__(loader, run_id=run_id)
        self._pdf = pdf_extractor
        self._summarizer = summarizer

    def _new_result(self, record: MediaRecord) -> DocumentProcessingResult:
        return DocumentProcessingResult(id=self.run_id, input_data=record)

    def _validate(self, record: MediaRecord, options: ProcessingOptions) -> None:
        super()._validate(record, options)
        record = cast(DocumentRecord, record)
        options = cast(DocumentProcessingOptions, options)
        fmt = record.format.lower()
        if fmt != "pdf" and fmt not in TEXT_FORMATS:
            raise InputError(f"Unsupported document format '{record.format}'")
        if options.page_range is not None:
            start, end = options.page_range
            if start < 1 or end < start:
                raise InputError(f"Invalid page_range {options.page_range}")

    async def _decode(
        self, record: DocumentRecord, options: DocumentProcessingOptions
    ) -> DecodedDocument:
        fmt = record.format.lower()
        if record.data is None and record.base64 is None and record.url is None:
            if record.content is None:
                raise InputError(f"Record {record.id} has neither a locator nor an inline payload")
            return DecodedDocument(format=fmt, text=record.content)

        raw = await self._loader.load(record, self._lifecycle.abort, options.max_size)
        if fmt == "pdf":
            if not raw.startswith(PDF_MAGIC):
                raise DecodeError(f"Record {record.id} is not a PDF document")
            Log.info(f"Loaded {len(raw)} byte PDF for run {self.run_id}")
            return DecodedDocument(format=fmt, data=raw)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Record {record.id} is not valid UTF-8 {fmt} text") from exc
        return DecodedDocument(format=fmt, text=text)

    def _plan_stages(
        self,
        document: DecodedDocument,
        result: DocumentProcessingResult,
        options: DocumentProcessingOptions,
    ) -> list[Stage]:
        stages: list[Stage] = []
        if options.extract_text:
            stages.append(Stage("text_extraction", lambda: self._extract_text(document, result, options)))
        if options.extract_images:
            stages.append(Stage("image_extraction", lambda: self._extract_images(document, result, options)))
        if options.extract_tables:
            stages.append(Stage("table_extraction", lambda: self._extract_tables(document, result, options)))
        if options.include_metadata:
            stages.append(Stage("metadata_extraction", lambda: self._extract_metadata(document, result)))
        return stages

    async def _extract_text(
        self,
        document: DecodedDocument,
        result: DocumentProcessingResult,
        options: DocumentProcessingOptions,
    ) -> None:
        if document.is_pdf and document.data is not None:
            text = await asyncio.to_thread(self._pdf.extract, document.data, options.page_range)
        else:
            text = document.text or ""
        result.extracted_text = text
        self._report("text_extraction", 0.5)

        # Summarize only once the full text is available.
        result.summary = await self._summarizer.summarize(text)

    async def _extract_images(
        self,
        document: DecodedDocument,
        result: DocumentProcessingResult,
        options: DocumentProcessingOptions,
    ) -> None:
        if not document.is_pdf or document.data is None:
            result.extracted_images = []
            return
        images = await asyncio.to_thread(self._pdf.extract_images, document.data, options.page_range)
        result.extracted_images = images

    async def _extract_tables(
        self,
        document: DecodedDocument,
        result: DocumentProcessingResult,
        options: DocumentProcessingOptions,
    ) -> None:
        if not document.is_pdf or document.data is None:
            result.extracted_tables = []
            return
        tables = await asyncio.to_thread(self._pdf.extract_tables, document.data, options.page_range)
        result.extracted_tables = tables

    async def _extract_metadata(
        self, document: DecodedDocument, result: DocumentProcessingResult
    ) -> None:
        record = cast(DocumentRecord, result.input_data)
        if document.is_pdf and document.data is not None:
            metadata = await asyncio.to_thread(self._pdf.extract_metadata, document.data)
            result.document_metadata = DocumentMetadata(
                title=metadata.title or record.title,
                author=metadata.author or record.author,
                creation_date=metadata.creation_date,
                modification_date=metadata.modification_date,
                keywords=metadata.keywords,
                page_count=metadata.page_count,
            )
            return
        result.document_metadata = DocumentMetadata(
            title=record.title,
            author=record.author,
            page_count=record.page_count,
        )
