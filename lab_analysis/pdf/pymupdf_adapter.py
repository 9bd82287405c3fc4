import pymupdf

from lab_analysis.pdf.base import BasePdfExtractor
from lab_analysis.pdf.exceptions import PdfExtractionError
from lab_analysis.pdf.models import PdfText


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> PdfText:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
        return PdfText(pages=pages)
