import asyncio

from lab_analysis.budget.exceptions import TokenLimitReachedError
from lab_analysis.extraction.chain import ExtractionChain
from lab_analysis.extraction.models import ExtractionUnit, UnitKind
from lab_analysis.gateway.config_store import BaseProviderConfigStore
from lab_analysis.gateway.gateway import ModelGateway
from lab_analysis.gateway.models import ImageContent, ProviderConfig, TextContent
from lab_analysis.gateway.prompt_loader import LAB_TEXT_PROMPT, LAB_VISION_PROMPT, load_prompt
from lab_analysis.logging.logger import Log
from lab_analysis.normalization.models import AnalysisResult
from lab_analysis.normalization.normalizer import ResponseNormalizer
from lab_analysis.processor.combiner import combine
from lab_analysis.processor.exceptions import AnalysisFailedError, ExtractionFailedError
from lab_analysis.processor.models import UnitAnalysis
from lab_analysis.processor.pipeline import PipelineContext, PipelineStep
from lab_analysis.processor.stores import BaseResultStore
from lab_analysis.progress.tracker import ProgressTracker


class LoadConfigStep(PipelineStep):
    def __init__(self, config_store: BaseProviderConfigStore) -> None:
        self._config_store = config_store

    async def run(self, context: PipelineContext) -> PipelineContext:
        page_key = context.request.page_key
        context.config = await asyncio.to_thread(self._config_store.get_active_config, page_key)
        Log.info(
            "Loaded AI configuration",
            plan_id=context.request.plan_id,
            page_key=page_key,
            model=context.config.model_id,
            provider=context.config.provider_kind.value,
        )
        return context


class ExtractStep(PipelineStep):
    def __init__(self, chain: ExtractionChain, tracker: ProgressTracker) -> None:
        self._chain = chain
        self._tracker = tracker

    async def run(self, context: PipelineContext) -> PipelineContext:
        def on_attempt(strategy: str, position: int, total: int) -> None:
            self._tracker.update(
                context.lease,
                processed=0,
                total=0,
                message=f"Extracting content ({strategy}, step {position} of {total})",
            )

        outcome = await self._chain.run(context.request, on_attempt=on_attempt)
        context.extraction = outcome
        if not outcome.success:
            raise ExtractionFailedError(
                f"Could not extract content from the document: {outcome.diagnostic}"
            )
        return context


class AnalyzeUnitsStep(PipelineStep):
    """Sends every extracted unit through the gateway and normalizer."""

    def __init__(
        self,
        gateway: ModelGateway,
        normalizer: ResponseNormalizer,
        tracker: ProgressTracker,
    ) -> None:
        self._gateway = gateway
        self._normalizer = normalizer
        self._tracker = tracker
        self._text_prompt = load_prompt(LAB_TEXT_PROMPT)
        self._vision_prompt = load_prompt(LAB_VISION_PROMPT)

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.config is None or context.extraction is None:
            raise ValueError("PipelineContext.config and extraction must be set before analysis")
        units = list(context.extraction.units)
        total = len(units)
        self._tracker.update(
            context.lease, processed=0, total=total, message=f"Analyzing page 1 of {total}"
        )
        for index, unit in enumerate(units, start=1):
            context.unit_results.append(await self._analyze(context, context.config, unit))
            message = (
                f"Analyzing page {index + 1} of {total}"
                if index < total
                else "Combining results"
            )
            self._tracker.update(context.lease, processed=index, total=total, message=message)
        return context

    async def _analyze(
        self,
        context: PipelineContext,
        config: ProviderConfig,
        unit: ExtractionUnit,
    ) -> UnitAnalysis:
        request = context.request
        if unit.kind is UnitKind.IMAGE:
            content: TextContent | ImageContent = ImageContent(unit.data, unit.mime_type)
            instruction = config.prompt_template or self._vision_prompt
        else:
            content = TextContent(self._text_payload(unit.text, request.patient_data))
            instruction = config.prompt_template or self._text_prompt

        response = await self._gateway.analyze(
            content,
            instruction,
            config,
            request.tenant_id,
            page_key=request.page_key,
        )
        if response.token_limit_reached:
            raise TokenLimitReachedError(response.message)
        if not response.success:
            Log.warning(
                f"Page analysis failed: {response.message}",
                plan_id=request.plan_id,
                page=unit.page,
            )
            return UnitAnalysis(
                page=unit.page,
                result=AnalysisResult.fallback(),
                success=False,
                diagnostic=response.message,
            )

        normalized = self._normalizer.normalize_detailed(response.raw)
        return UnitAnalysis(
            page=unit.page,
            result=normalized.result,
            success=normalized.recovered,
            diagnostic=normalized.diagnostic,
            tokens_used=response.tokens_used,
        )

    @staticmethod
    def _text_payload(text: str, patient_data: dict[str, object] | None) -> object:
        if not patient_data:
            return text
        return {"patient_data": patient_data, "lab_results": text}


class CombineStep(PipelineStep):
    async def run(self, context: PipelineContext) -> PipelineContext:
        combined = combine(context.unit_results, total_pages=len(context.unit_results))
        context.combined = combined
        if not combined.success:
            reasons = "; ".join(
                f"page {unit.page}: {unit.diagnostic}"
                for unit in context.unit_results
                if unit.diagnostic
            )
            raise AnalysisFailedError(f"AI analysis failed for every page: {reasons}")
        return context


class PersistResultStep(PipelineStep):
    def __init__(self, result_store: BaseResultStore) -> None:
        self._result_store = result_store

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.combined is None:
            raise ValueError("PipelineContext.combined must be set before persist")
        await asyncio.to_thread(
            self._result_store.save_plan_analysis,
            context.request.plan_id,
            context.combined.result,
        )
        Log.info("Saved plan analysis", plan_id=context.request.plan_id)
        return context


class MarkCompletedStep(PipelineStep):
    def __init__(self, tracker: ProgressTracker) -> None:
        self._tracker = tracker

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.combined is None:
            raise ValueError("PipelineContext.combined must be set before completion")
        combined = context.combined
        message = "Analysis completed"
        if combined.processed_pages < combined.total_pages:
            message = (
                f"Analysis completed for {combined.processed_pages} of "
                f"{combined.total_pages} pages"
            )
        self._tracker.complete(context.lease, combined.result, message=message)
        return context
