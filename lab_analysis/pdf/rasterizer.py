import pymupdf

from lab_analysis.logging.logger import Log
from lab_analysis.pdf.exceptions import PdfRenderError
from lab_analysis.pdf.models import RenderedPage


class PdfRasterizer:
    """Renders PDF pages to PNG images for vision models."""

    def __init__(self, dpi: int, max_pages: int) -> None:
        self._dpi = dpi
        self._max_pages = max_pages

    def render(self, pdf_bytes: bytes) -> list[RenderedPage]:
        """Render up to ``max_pages`` pages, in document order.

        Raises:
            PdfRenderError: if the document cannot be opened or rendered.
        """
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                total = doc.page_count
                rendered = [
                    RenderedPage(
                        page_number=index + 1,
                        data=doc[index].get_pixmap(dpi=self._dpi).tobytes("png"),
                    )
                    for index in range(min(total, self._max_pages))
                ]
        except Exception as exc:
            raise PdfRenderError(f"pymupdf rendering failed: {exc}") from exc
        if total > self._max_pages:
            Log.warning(
                "PDF has more pages than the vision limit, rendering the first pages only",
                pages=total,
                max_pages=self._max_pages,
            )
        return rendered
