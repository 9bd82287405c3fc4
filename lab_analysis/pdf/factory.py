from lab_analysis.config.settings import Settings
from lab_analysis.pdf.base import BasePdfExtractor
from lab_analysis.pdf.pdfplumber_adapter import PdfPlumberAdapter
from lab_analysis.pdf.pymupdf_adapter import PyMuPdfAdapter
from lab_analysis.pdf.rasterizer import PdfRasterizer


class PdfExtractorFactory:
    """Creates the correct PDF extractor based on settings."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()

    @classmethod
    def create_rasterizer(cls, settings: Settings) -> PdfRasterizer:
        return PdfRasterizer(dpi=settings.pdf_render_dpi, max_pages=settings.max_vision_pages)
