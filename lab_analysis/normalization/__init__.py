from lab_analysis.normalization.base import BaseNormalizer
from lab_analysis.normalization.models import AnalysisResult, OutOfRangeEntry
from lab_analysis.normalization.normalizer import ResponseNormalizer

__all__ = ["AnalysisResult", "BaseNormalizer", "OutOfRangeEntry", "ResponseNormalizer"]
