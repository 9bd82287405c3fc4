from dataclasses import dataclass
from enum import Enum
from typing import Any

from lab_analysis.normalization.models import AnalysisResult

DEFAULT_PAGE_KEY = "lab_analysis"


class ContentKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    RAW_TEXT = "raw-text"


@dataclass(frozen=True)
class AnalysisRequest:
    """One request to analyze the lab document attached to a plan.

    ``payload`` holds the raw artifact: bytes, a base64 or data-URI string for
    binary kinds, or plain text for ``raw-text``. ``quality_hint`` is caller
    supplied and only selects the PDF text threshold.
    """

    plan_id: str
    tenant_id: str
    kind: ContentKind | None = None
    payload: bytes | str | None = None
    notes: str | None = None
    text_only: bool = False
    quality_hint: bool = False
    mime_type: str = ""
    patient_data: dict[str, Any] | None = None
    page_key: str = DEFAULT_PAGE_KEY


@dataclass(frozen=True)
class PlanDocument:
    """Document store view of a plan's lab artifact."""

    plan_id: str
    tenant_id: str
    kind: ContentKind | None
    payload: bytes | str | None
    quality_hint: bool = False
    mime_type: str = ""
    notes: str | None = None
    patient_data: dict[str, Any] | None = None

    def to_request(self, page_key: str = DEFAULT_PAGE_KEY) -> AnalysisRequest:
        return AnalysisRequest(
            plan_id=self.plan_id,
            tenant_id=self.tenant_id,
            kind=self.kind,
            payload=self.payload,
            notes=self.notes,
            text_only=self.payload is None and bool(self.notes),
            quality_hint=self.quality_hint,
            mime_type=self.mime_type,
            patient_data=self.patient_data,
            page_key=page_key,
        )


@dataclass(frozen=True)
class UnitAnalysis:
    """Normalized result for one extraction unit (page)."""

    page: int
    result: AnalysisResult
    success: bool
    diagnostic: str = ""
    tokens_used: int = 0


@dataclass(frozen=True)
class CombinedAnalysis:
    result: AnalysisResult
    total_pages: int
    processed_pages: int
    success: bool
