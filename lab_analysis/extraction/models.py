from dataclasses import dataclass, field
from enum import Enum

NO_STRATEGY = "none"


class UnitKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class ExtractionUnit:
    """One analyzable unit: a block of text or one page image.

    ``page`` is 1-based.
    """

    kind: UnitKind
    page: int = 1
    text: str = ""
    data: bytes = b""
    mime_type: str = ""

    @classmethod
    def from_text(cls, text: str, page: int = 1) -> "ExtractionUnit":
        return cls(kind=UnitKind.TEXT, page=page, text=text)

    @classmethod
    def from_image(cls, data: bytes, mime_type: str, page: int = 1) -> "ExtractionUnit":
        return cls(kind=UnitKind.IMAGE, page=page, data=data, mime_type=mime_type)


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result of one strategy attempt."""

    strategy_name: str
    success: bool
    extracted_text: str = ""
    length: int = 0
    diagnostic: str = ""
    units: tuple[ExtractionUnit, ...] = field(default_factory=tuple)

    @classmethod
    def failure(cls, strategy_name: str, diagnostic: str) -> "ExtractionOutcome":
        return cls(strategy_name=strategy_name, success=False, diagnostic=diagnostic)


@dataclass(frozen=True)
class PdfDiagnostics:
    page_count: int
    characters: int
    average_chars_per_page: float
    likely_high_quality: bool

    def describe(self) -> str:
        return (
            f"pages={self.page_count} chars={self.characters} "
            f"avg_chars_per_page={self.average_chars_per_page:.1f} "
            f"likely_high_quality={self.likely_high_quality}"
        )
