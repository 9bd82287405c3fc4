class PdfError(Exception):
    """Base exception for PDF handling."""


class PdfExtractionError(PdfError):
    """Raised when text cannot be extracted from a PDF."""


class PdfRenderError(PdfError):
    """Raised when PDF pages cannot be rendered to images."""
