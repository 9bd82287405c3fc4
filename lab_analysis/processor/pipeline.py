from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from lab_analysis.extraction.models import ExtractionOutcome
from lab_analysis.gateway.models import ProviderConfig
from lab_analysis.processor.models import AnalysisRequest, CombinedAnalysis, UnitAnalysis
from lab_analysis.progress.models import Lease


@dataclass(slots=True)
class PipelineContext:
    request: AnalysisRequest
    lease: Lease
    config: ProviderConfig | None = None
    extraction: ExtractionOutcome | None = None
    unit_results: list[UnitAnalysis] = field(default_factory=list)
    combined: CombinedAnalysis | None = None


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError


class Pipeline:
    """Runs steps in order over one context."""

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        self._steps = list(steps)

    async def run(self, context: PipelineContext) -> PipelineContext:
        for step in self._steps:
            context = await step.run(context)
        return context
