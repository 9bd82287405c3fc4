from abc import ABC, abstractmethod

from lab_analysis.pdf.models import PdfText


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfText holding the text of every page in order.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
