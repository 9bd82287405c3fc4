from abc import ABC, abstractmethod

from lab_analysis.normalization.models import AnalysisResult
from lab_analysis.processor.models import PlanDocument


class BaseDocumentStore(ABC):
    """Read-only access to the lab document attached to a plan."""

    @abstractmethod
    def get_plan_document(self, plan_id: str) -> PlanDocument:
        """Return the plan's document.

        Raises:
            DocumentNotFoundError: if the plan does not exist.
        """


class BaseResultStore(ABC):
    """Write-only sink for finished analyses."""

    @abstractmethod
    def save_plan_analysis(self, plan_id: str, result: AnalysisResult) -> None:
        """Persist the analysis for a plan, replacing any earlier one."""
