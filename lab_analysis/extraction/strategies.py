import asyncio
import re
from abc import ABC, abstractmethod
from typing import ClassVar

from lab_analysis.extraction.models import ExtractionOutcome, ExtractionUnit, PdfDiagnostics
from lab_analysis.extraction.payload import (
    data_uri_mime_type,
    decode_payload,
    is_pdf,
    sniff_image_mime_type,
)
from lab_analysis.logging.logger import Log
from lab_analysis.pdf.base import BasePdfExtractor
from lab_analysis.pdf.exceptions import PdfExtractionError, PdfRenderError
from lab_analysis.pdf.rasterizer import PdfRasterizer
from lab_analysis.processor.models import AnalysisRequest, ContentKind

HIGH_QUALITY_CHARS_PER_PAGE = 200

_INLINE_WHITESPACE = re.compile(r"[ \t\f\v]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces and blank lines left by PDF text layers."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_WHITESPACE.sub(" ", text)
    lines = [line.strip() for line in text.split("\n")]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


class BaseExtractionStrategy(ABC):
    """One way of turning a request payload into analyzable units."""

    name: ClassVar[str]

    @abstractmethod
    async def attempt(self, request: AnalysisRequest) -> ExtractionOutcome:
        """Try to extract units from ``request``.

        Returns a failed outcome with a diagnostic when the strategy does not
        apply or does not yield enough signal.

        Raises:
            ExtractionError: if the payload cannot be decoded.
        """


class NotesAsTextStrategy(BaseExtractionStrategy):
    """Uses operator notes, or previously extracted raw text, as the document text."""

    name = "notes-as-text"

    async def attempt(self, request: AnalysisRequest) -> ExtractionOutcome:
        if request.text_only and request.notes and request.notes.strip():
            return self._outcome(request.notes.strip(), "text-only request with notes")
        if request.kind is ContentKind.RAW_TEXT and request.payload:
            payload = request.payload
            if isinstance(payload, bytes):
                payload = payload.decode("utf-8", errors="replace")
            text = payload.strip()
            if text:
                return self._outcome(text, "raw text payload")
            return ExtractionOutcome.failure(self.name, "raw text payload is blank")
        if request.text_only:
            return ExtractionOutcome.failure(self.name, "text-only request without notes")
        return ExtractionOutcome.failure(self.name, "not a text-only request")

    def _outcome(self, text: str, diagnostic: str) -> ExtractionOutcome:
        return ExtractionOutcome(
            strategy_name=self.name,
            success=True,
            extracted_text=text,
            length=len(text),
            diagnostic=diagnostic,
            units=(ExtractionUnit.from_text(text),),
        )


class PdfTextStrategy(BaseExtractionStrategy):
    """Reads the PDF text layer.

    The extracted text must be longer than ``min_length``, or longer than
    ``min_length_high_quality`` when the request is flagged high quality.
    """

    name = "pdf-text"

    def __init__(
        self,
        extractor: BasePdfExtractor,
        min_length: int,
        min_length_high_quality: int,
    ) -> None:
        self._extractor = extractor
        self._min_length = min_length
        self._min_length_high_quality = min_length_high_quality

    async def attempt(self, request: AnalysisRequest) -> ExtractionOutcome:
        if request.payload is None or request.kind not in (ContentKind.PDF, None):
            return ExtractionOutcome.failure(self.name, "no PDF payload")
        data = decode_payload(request.payload)
        if not is_pdf(data):
            return ExtractionOutcome.failure(self.name, "payload is not a PDF")

        try:
            pdf_text = await asyncio.to_thread(self._extractor.extract, data)
        except PdfExtractionError as exc:
            Log.warning(f"PDF text extraction failed: {exc}", plan_id=request.plan_id)
            return ExtractionOutcome.failure(self.name, str(exc))

        text = normalize_whitespace(pdf_text.text)
        diagnostics = self.diagnose(len(text), pdf_text.page_count)
        threshold = (
            self._min_length_high_quality if request.quality_hint else self._min_length
        )
        Log.info(
            "PDF text extracted",
            plan_id=request.plan_id,
            characters=len(text),
            threshold=threshold,
            pages=diagnostics.page_count,
        )
        if len(text) <= threshold:
            return ExtractionOutcome(
                strategy_name=self.name,
                success=False,
                extracted_text=text,
                length=len(text),
                diagnostic=(
                    f"extracted {len(text)} characters, need more than {threshold}; "
                    f"{diagnostics.describe()}"
                ),
            )
        return ExtractionOutcome(
            strategy_name=self.name,
            success=True,
            extracted_text=text,
            length=len(text),
            diagnostic=diagnostics.describe(),
            units=(ExtractionUnit.from_text(text),),
        )

    @staticmethod
    def diagnose(characters: int, page_count: int) -> PdfDiagnostics:
        average = characters / page_count if page_count else 0.0
        return PdfDiagnostics(
            page_count=page_count,
            characters=characters,
            average_chars_per_page=average,
            likely_high_quality=average > HIGH_QUALITY_CHARS_PER_PAGE,
        )


class VisionStrategy(BaseExtractionStrategy):
    """Hands raster images, or PDF pages rendered to images, to a vision model."""

    name = "vision"

    def __init__(self, rasterizer: PdfRasterizer) -> None:
        self._rasterizer = rasterizer

    async def attempt(self, request: AnalysisRequest) -> ExtractionOutcome:
        if request.payload is None or request.kind is ContentKind.RAW_TEXT:
            return ExtractionOutcome.failure(self.name, "no binary payload")
        data = decode_payload(request.payload)
        if not data:
            return ExtractionOutcome.failure(self.name, "payload is empty")

        if is_pdf(data):
            return await self._from_pdf(request, data)

        mime_type = (
            sniff_image_mime_type(data)
            or data_uri_mime_type(request.payload)
            or request.mime_type
        )
        if not mime_type.startswith("image/"):
            return ExtractionOutcome.failure(self.name, "payload is not a supported image")
        return ExtractionOutcome(
            strategy_name=self.name,
            success=True,
            length=len(data),
            diagnostic=f"image {mime_type}, {len(data)} bytes",
            units=(ExtractionUnit.from_image(data, mime_type),),
        )

    async def _from_pdf(self, request: AnalysisRequest, data: bytes) -> ExtractionOutcome:
        try:
            pages = await asyncio.to_thread(self._rasterizer.render, data)
        except PdfRenderError as exc:
            Log.warning(f"PDF rendering failed: {exc}", plan_id=request.plan_id)
            return ExtractionOutcome.failure(self.name, str(exc))
        if not pages:
            return ExtractionOutcome.failure(self.name, "PDF has no pages")
        Log.info("PDF rendered for vision analysis", plan_id=request.plan_id, pages=len(pages))
        return ExtractionOutcome(
            strategy_name=self.name,
            success=True,
            length=sum(len(page.data) for page in pages),
            diagnostic=f"rendered {len(pages)} PDF pages",
            units=tuple(
                ExtractionUnit.from_image(page.data, page.mime_type, page=page.page_number)
                for page in pages
            ),
        )
