import pytest

from lab_analysis.pdf.exceptions import PdfExtractionError
from lab_analysis.pdf.pymupdf_adapter import PyMuPdfAdapter


class TestPyMuPdfAdapter:
    def test_extract_returns_text_per_page(self, multi_page_pdf_bytes: bytes) -> None:
        result = PyMuPdfAdapter().extract(multi_page_pdf_bytes)
        assert result.page_count == 2
        assert "Page one content" in result.text
        assert "Page two content" in result.text

    def test_extract_raises_on_invalid_bytes(self) -> None:
        with pytest.raises(PdfExtractionError, match="pymupdf"):
            PyMuPdfAdapter().extract(b"not a pdf")
