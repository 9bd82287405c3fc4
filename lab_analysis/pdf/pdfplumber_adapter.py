import io

import pdfplumber

from lab_analysis.pdf.base import BasePdfExtractor
from lab_analysis.pdf.exceptions import PdfExtractionError
from lab_analysis.pdf.models import PdfText


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text from PDF using pdfplumber."""

    def extract(self, pdf_bytes: bytes) -> PdfText:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return PdfText(pages=pages)
