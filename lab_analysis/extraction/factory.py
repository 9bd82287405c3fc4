from lab_analysis.config.settings import Settings
from lab_analysis.extraction.chain import ExtractionChain
from lab_analysis.extraction.strategies import (
    NotesAsTextStrategy,
    PdfTextStrategy,
    VisionStrategy,
)
from lab_analysis.pdf.factory import PdfExtractorFactory


class ExtractionChainFactory:
    """Creates the extraction chain in its fixed strategy order."""

    @classmethod
    def create(cls, settings: Settings) -> ExtractionChain:
        return ExtractionChain(
            [
                NotesAsTextStrategy(),
                PdfTextStrategy(
                    PdfExtractorFactory.create(settings),
                    min_length=settings.pdf_min_text_length,
                    min_length_high_quality=settings.pdf_min_text_length_high_quality,
                ),
                VisionStrategy(PdfExtractorFactory.create_rasterizer(settings)),
            ]
        )
