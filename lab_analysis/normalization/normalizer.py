"""Shapes raw provider output into the canonical AnalysisResult."""

from collections.abc import Mapping
from typing import Any

from lab_analysis.logging.logger import Log
from lab_analysis.normalization.aliases import (
    ENTRY_ALIASES,
    RECOMMENDATION_TEXT_ALIASES,
    RESULT_ALIASES,
    lookup,
)
from lab_analysis.normalization.base import BaseNormalizer
from lab_analysis.normalization.models import (
    GENERIC_RECOMMENDATIONS,
    GENERIC_SUMMARY,
    AnalysisResult,
    NormalizedResponse,
    OutOfRangeEntry,
)
from lab_analysis.normalization.parsing import parse_json_object

MIN_SUMMARY_LENGTH = 30
MIN_INFORMATIVE_SUMMARY_LENGTH = 50
MIN_RECOMMENDATION_LENGTH = 10
SUMMARY_SAMPLE_SIZE = 3

DEFAULT_ENTRY_NAME = "Marker"
DEFAULT_ENTRY_VALUE = "?"
DEFAULT_ENTRY_REFERENCE = "Reference value not specified"
DEFAULT_ENTRY_INTERPRETATION = "Clinical significance not specified"


class ResponseNormalizer(BaseNormalizer):
    """Turns provider responses into results that always satisfy the schema."""

    def normalize(self, raw: Any) -> AnalysisResult:
        return self.normalize_detailed(raw).result

    def normalize_detailed(self, raw: Any) -> NormalizedResponse:
        """Normalize ``raw`` and report whether it held a usable result."""
        try:
            return self._normalize(raw)
        except Exception as exc:  # noqa: BLE001
            Log.exception(f"Normalization failed, using fallback result: {exc}")
            return NormalizedResponse(
                result=AnalysisResult.fallback(),
                recovered=False,
                diagnostic=f"normalization error: {exc}",
            )

    def _normalize(self, raw: Any) -> NormalizedResponse:
        data = self._to_mapping(raw)
        if data is None:
            Log.warning("Provider response could not be parsed, using fallback result")
            Log.debug(f"Unparseable provider response:\n{raw!r}")
            return NormalizedResponse(
                result=AnalysisResult.fallback(),
                recovered=False,
                diagnostic="unparseable response",
            )

        raw_summary = lookup(data, RESULT_ALIASES["summary"])
        raw_out_of_range = lookup(data, RESULT_ALIASES["outOfRange"])
        raw_recommendations = lookup(data, RESULT_ALIASES["recommendations"])
        out_of_range = self._build_out_of_range(raw_out_of_range)
        recommendations = self._build_recommendations(raw_recommendations)
        summary = self._build_summary(raw_summary, out_of_range)
        result = AnalysisResult(
            summary=summary,
            out_of_range=out_of_range,
            recommendations=recommendations,
        )
        Log.info(
            f"Normalization complete: {len(out_of_range)} out-of-range markers, "
            f"{len(recommendations)} recommendations"
        )
        if raw_summary is None and raw_out_of_range is None and raw_recommendations is None:
            Log.warning("Provider response has none of the expected fields")
            return NormalizedResponse(
                result=result, recovered=False, diagnostic="no recognised fields"
            )
        return NormalizedResponse(result=result, recovered=True)

    @staticmethod
    def _to_mapping(raw: Any) -> Mapping[str, Any] | None:
        if isinstance(raw, AnalysisResult):
            return raw.to_dict()
        if isinstance(raw, Mapping):
            return raw
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8", errors="replace")
        if isinstance(raw, str):
            return parse_json_object(raw)
        return None

    def _build_out_of_range(self, raw: Any) -> list[OutOfRangeEntry]:
        if not isinstance(raw, list):
            return []
        entries: list[OutOfRangeEntry] = []
        for item in raw:
            if isinstance(item, Mapping):
                entries.append(self._build_entry(item))
        return entries

    @staticmethod
    def _build_entry(item: Mapping[str, Any]) -> OutOfRangeEntry:
        def text(field: str, default: str) -> str:
            value = lookup(item, ENTRY_ALIASES[field])
            if value is None or isinstance(value, (Mapping, list)):
                return default
            rendered = str(value).strip()
            return rendered or default

        return OutOfRangeEntry(
            name=text("name", DEFAULT_ENTRY_NAME),
            value=text("value", DEFAULT_ENTRY_VALUE),
            unit=text("unit", ""),
            reference=text("reference", DEFAULT_ENTRY_REFERENCE),
            interpretation=text("interpretation", DEFAULT_ENTRY_INTERPRETATION),
        )

    @staticmethod
    def _build_recommendations(raw: Any) -> list[str]:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raw = []
        kept: list[str] = []
        for item in raw:
            if isinstance(item, Mapping):
                item = lookup(item, RECOMMENDATION_TEXT_ALIASES)
            if not isinstance(item, str):
                continue
            text = item.strip()
            if len(text) >= MIN_RECOMMENDATION_LENGTH:
                kept.append(text)
        if not kept:
            return list(GENERIC_RECOMMENDATIONS)
        return kept

    @staticmethod
    def _build_summary(raw: Any, out_of_range: list[OutOfRangeEntry]) -> str:
        summary = raw.strip() if isinstance(raw, str) else ""
        if len(summary) <= MIN_SUMMARY_LENGTH:
            summary = GENERIC_SUMMARY
        if len(summary) >= MIN_INFORMATIVE_SUMMARY_LENGTH and summary != GENERIC_SUMMARY:
            return summary
        if not out_of_range:
            return summary
        return synthesize_summary(out_of_range)


def synthesize_summary(out_of_range: list[OutOfRangeEntry]) -> str:
    """Build a summary from the first few out-of-range markers."""
    sample = ", ".join(
        f"{entry.name} ({entry.value})" for entry in out_of_range[:SUMMARY_SAMPLE_SIZE]
    )
    suffix = " and others." if len(out_of_range) > SUMMARY_SAMPLE_SIZE else "."
    return (
        f"Analysis identified {len(out_of_range)} lab values outside the reference "
        f"range, including: {sample}{suffix}"
    )
