from lab_analysis.budget.ledger import BaseTokenLedger
from lab_analysis.budget.quota import TokenBudgeter
from lab_analysis.config.settings import Settings
from lab_analysis.extraction.factory import ExtractionChainFactory
from lab_analysis.gateway.config_store import BaseProviderConfigStore
from lab_analysis.gateway.factory import GatewayFactory
from lab_analysis.normalization.normalizer import ResponseNormalizer
from lab_analysis.processor.pipeline import Pipeline
from lab_analysis.processor.service import AnalysisService
from lab_analysis.processor.steps import (
    AnalyzeUnitsStep,
    CombineStep,
    ExtractStep,
    LoadConfigStep,
    MarkCompletedStep,
    PersistResultStep,
)
from lab_analysis.processor.stores import BaseDocumentStore, BaseResultStore
from lab_analysis.progress.tracker import ProgressTracker


def build_pipeline(
    settings: Settings,
    *,
    tracker: ProgressTracker,
    budgeter: TokenBudgeter,
    config_store: BaseProviderConfigStore,
    result_store: BaseResultStore,
) -> Pipeline:
    """Pipeline: load config -> extract -> analyze pages -> combine -> persist -> complete."""
    gateway = GatewayFactory.create(settings, budgeter)
    return Pipeline(
        [
            LoadConfigStep(config_store),
            ExtractStep(ExtractionChainFactory.create(settings), tracker),
            AnalyzeUnitsStep(gateway, ResponseNormalizer(), tracker),
            CombineStep(),
            PersistResultStep(result_store),
            MarkCompletedStep(tracker),
        ]
    )


def build_analysis_service(
    settings: Settings,
    *,
    ledger: BaseTokenLedger,
    document_store: BaseDocumentStore,
    result_store: BaseResultStore,
    config_store: BaseProviderConfigStore,
    tracker: ProgressTracker | None = None,
) -> AnalysisService:
    """Build an AnalysisService with all required adapters."""
    tracker = tracker or ProgressTracker()
    budgeter = TokenBudgeter(
        ledger,
        default_limit=settings.tenant_token_limit,
        tenant_limits=settings.tenant_token_limits,
    )
    pipeline = build_pipeline(
        settings,
        tracker=tracker,
        budgeter=budgeter,
        config_store=config_store,
        result_store=result_store,
    )
    return AnalysisService(
        pipeline=pipeline,
        tracker=tracker,
        budgeter=budgeter,
        document_store=document_store,
        max_payload_bytes=settings.max_payload_bytes,
        deadline_seconds=settings.analysis_deadline_seconds,
    )
