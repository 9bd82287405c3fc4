from dataclasses import dataclass, field
from typing import Any

GENERIC_SUMMARY = (
    "Lab results analysis completed. Review the markers and recommendations for details."
)

GENERIC_RECOMMENDATIONS: tuple[str, ...] = (
    "Keep healthy habits such as a balanced diet and regular physical activity.",
    "Repeat routine lab tests periodically as advised by your physician.",
    "Consult a specialist for a detailed interpretation of the results.",
)

FALLBACK_SUMMARY = (
    "The results could not be analyzed because the response was not in a readable "
    "format. Please consult a healthcare professional."
)

FALLBACK_RECOMMENDATIONS: tuple[str, ...] = (
    "Consult a healthcare professional for a complete interpretation of the results.",
    "If needed, request a new analysis through the system.",
)


@dataclass(frozen=True)
class OutOfRangeEntry:
    """A lab marker whose value falls outside its reference range."""

    name: str
    value: str
    unit: str = ""
    reference: str = ""
    interpretation: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "reference": self.reference,
            "interpretation": self.interpretation,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Canonical analysis output shared with rendering and export."""

    summary: str
    out_of_range: list[OutOfRangeEntry] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire schema (field names are part of the contract)."""
        return {
            "summary": self.summary,
            "outOfRange": [entry.to_dict() for entry in self.out_of_range],
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def fallback(cls, summary: str = FALLBACK_SUMMARY) -> "AnalysisResult":
        """The 'could not analyze' result used when nothing usable came back."""
        return cls(
            summary=summary,
            out_of_range=[],
            recommendations=list(FALLBACK_RECOMMENDATIONS),
        )


@dataclass(frozen=True)
class NormalizedResponse:
    """Normalizer output plus whether the provider response was usable."""

    result: AnalysisResult
    recovered: bool
    diagnostic: str = ""
