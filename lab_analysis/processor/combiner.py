"""Merges per-page analyses into one result."""

from lab_analysis.logging.logger import Log
from lab_analysis.normalization.models import (
    GENERIC_RECOMMENDATIONS,
    GENERIC_SUMMARY,
    AnalysisResult,
    OutOfRangeEntry,
)
from lab_analysis.normalization.normalizer import synthesize_summary
from lab_analysis.processor.models import CombinedAnalysis, UnitAnalysis

MIN_PAGE_SUMMARY_LENGTH = 20
MAX_SUMMARY_LENGTH = 500


def combine(units: list[UnitAnalysis], total_pages: int) -> CombinedAnalysis:
    """Combine page results, skipping failed pages.

    The summary is taken from the first informative page rather than
    concatenated. Markers are de-duplicated by exact name and recommendations
    by exact text, first occurrence wins in both cases.
    """
    succeeded = [unit for unit in units if unit.success]
    if not succeeded:
        Log.warning("No page produced a usable analysis", total_pages=total_pages)
        return CombinedAnalysis(
            result=AnalysisResult.fallback(),
            total_pages=total_pages,
            processed_pages=0,
            success=False,
        )

    if len(succeeded) == 1 and total_pages <= 1:
        return CombinedAnalysis(
            result=succeeded[0].result,
            total_pages=total_pages,
            processed_pages=1,
            success=True,
        )

    markers = _unique_markers(succeeded)
    result = AnalysisResult(
        summary=_combined_summary(succeeded, markers),
        out_of_range=markers,
        recommendations=_unique_recommendations(succeeded),
    )
    Log.info(
        "Combined page analyses",
        total_pages=total_pages,
        processed_pages=len(succeeded),
        markers=len(result.out_of_range),
    )
    return CombinedAnalysis(
        result=result,
        total_pages=total_pages,
        processed_pages=len(succeeded),
        success=True,
    )


def _combined_summary(units: list[UnitAnalysis], markers: list[OutOfRangeEntry]) -> str:
    summary = next(
        (
            unit.result.summary
            for unit in units
            if len(unit.result.summary) > MIN_PAGE_SUMMARY_LENGTH
            and unit.result.summary != GENERIC_SUMMARY
        ),
        None,
    )
    if summary is None:
        summary = synthesize_summary(markers) if markers else GENERIC_SUMMARY
    if len(summary) > MAX_SUMMARY_LENGTH:
        summary = summary[:MAX_SUMMARY_LENGTH]
    additional = len(units) - 1
    if additional > 0:
        summary = f"{summary} (+ {additional} additional pages analyzed)"
    return summary


def _unique_markers(units: list[UnitAnalysis]) -> list[OutOfRangeEntry]:
    seen: set[str] = set()
    markers: list[OutOfRangeEntry] = []
    for unit in units:
        for entry in unit.result.out_of_range:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            markers.append(entry)
    return markers


def _unique_recommendations(units: list[UnitAnalysis]) -> list[str]:
    seen: set[str] = set()
    recommendations: list[str] = []
    for unit in units:
        for text in unit.result.recommendations:
            if text not in seen:
                seen.add(text)
                recommendations.append(text)
    if not recommendations:
        return list(GENERIC_RECOMMENDATIONS)
    return recommendations
