"""Ordered, short-circuiting extraction strategy chain."""

from collections.abc import Callable, Sequence

from lab_analysis.extraction.exceptions import ExtractionError
from lab_analysis.extraction.models import NO_STRATEGY, ExtractionOutcome
from lab_analysis.extraction.strategies import BaseExtractionStrategy
from lab_analysis.logging.logger import Log
from lab_analysis.processor.models import AnalysisRequest

AttemptCallback = Callable[[str, int, int], None]


class ExtractionChain:
    """Runs strategies one after another until one succeeds.

    Strategies are never run concurrently: each later strategy costs more
    than the one before it.
    """

    def __init__(self, strategies: Sequence[BaseExtractionStrategy]) -> None:
        self._strategies = list(strategies)

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    async def run(
        self,
        request: AnalysisRequest,
        on_attempt: AttemptCallback | None = None,
    ) -> ExtractionOutcome:
        """Return the first successful outcome, or a terminal ``none`` failure.

        ``on_attempt`` is called with the strategy name, its 1-based position
        and the number of strategies before each attempt.
        """
        diagnostics: list[str] = []
        total = len(self._strategies)
        for position, strategy in enumerate(self._strategies, start=1):
            if on_attempt is not None:
                on_attempt(strategy.name, position, total)
            Log.info(
                "Trying extraction strategy",
                plan_id=request.plan_id,
                strategy=strategy.name,
            )
            try:
                outcome = await strategy.attempt(request)
            except ExtractionError as exc:
                outcome = ExtractionOutcome.failure(strategy.name, str(exc))

            if outcome.success:
                Log.info(
                    "Extraction strategy succeeded",
                    plan_id=request.plan_id,
                    strategy=strategy.name,
                    units=len(outcome.units),
                    length=outcome.length,
                )
                return outcome
            Log.info(
                f"Extraction strategy failed: {outcome.diagnostic}",
                plan_id=request.plan_id,
                strategy=strategy.name,
            )
            diagnostics.append(f"{strategy.name}: {outcome.diagnostic}")

        Log.warning("All extraction strategies failed", plan_id=request.plan_id)
        return ExtractionOutcome.failure(NO_STRATEGY, "; ".join(diagnostics))
