from abc import ABC, abstractmethod
from typing import Any

from lab_analysis.normalization.models import AnalysisResult


class BaseNormalizer(ABC):
    """Contract for turning provider output into an AnalysisResult."""

    @abstractmethod
    def normalize(self, raw: Any) -> AnalysisResult:
        """Shape a raw provider response into the canonical result.

        Args:
            raw: Provider response text, or an already-structured mapping.

        Returns:
            AnalysisResult with a summary longer than 30 characters and
            list-valued outOfRange and recommendations.

        Never raises: unusable input yields the fallback result.
        """
