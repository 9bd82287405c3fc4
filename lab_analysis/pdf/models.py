from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Text extracted from a PDF, one string per page."""

    pages: list[str]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        return "\n".join(self.pages).strip()


@dataclass(frozen=True)
class RenderedPage:
    """One PDF page rasterized to an image. ``page_number`` is 1-based."""

    page_number: int
    data: bytes
    mime_type: str = "image/png"
