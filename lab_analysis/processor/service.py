"""Accepts analysis requests and runs each one as its own asyncio task."""

import asyncio
from dataclasses import dataclass

from lab_analysis.budget.exceptions import TokenLimitReachedError
from lab_analysis.budget.quota import TOKEN_LIMIT_MESSAGE, TokenBudgeter
from lab_analysis.logging.logger import Log
from lab_analysis.normalization.models import AnalysisResult
from lab_analysis.processor.exceptions import ProcessorError
from lab_analysis.processor.models import DEFAULT_PAGE_KEY, AnalysisRequest
from lab_analysis.processor.pipeline import Pipeline, PipelineContext
from lab_analysis.processor.stores import BaseDocumentStore
from lab_analysis.processor.validation import validate_request
from lab_analysis.progress.exceptions import ProgressStateError
from lab_analysis.progress.models import Lease, ProgressEntry
from lab_analysis.progress.tracker import ProgressTracker

ALREADY_IN_PROGRESS_MESSAGE = "Analysis already in progress"


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    plan_id: str
    snapshot: ProgressEntry | None = None
    already_in_progress: bool = False
    token_limit_reached: bool = False
    message: str = ""


class AnalysisService:
    """Entry point for document analysis.

    ``submit`` validates the request and checks the tenant quota before a
    progress entry exists, so rejected requests never spend tokens. Accepted
    requests run in the background under a deadline; a timeout or
    cancellation fails the entry with the fallback result and frees the plan
    id for a new request.
    """

    def __init__(
        self,
        *,
        pipeline: Pipeline,
        tracker: ProgressTracker,
        budgeter: TokenBudgeter,
        document_store: BaseDocumentStore,
        max_payload_bytes: int,
        deadline_seconds: float,
    ) -> None:
        self._pipeline = pipeline
        self._tracker = tracker
        self._budgeter = budgeter
        self._document_store = document_store
        self._max_payload_bytes = max_payload_bytes
        self._deadline_seconds = deadline_seconds
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def tracker(self) -> ProgressTracker:
        return self._tracker

    async def submit(self, request: AnalysisRequest) -> SubmitResult:
        """Start analyzing ``request`` in the background.

        Raises:
            InputError: if the request can never be analyzed.
        """
        validate_request(request, self._max_payload_bytes)

        quota = await asyncio.to_thread(self._budgeter.check_quota, request.tenant_id)
        if not quota.allowed:
            return SubmitResult(
                accepted=False,
                plan_id=request.plan_id,
                token_limit_reached=True,
                message=quota.message or TOKEN_LIMIT_MESSAGE,
            )

        begin = self._tracker.try_begin(request.plan_id)
        if not begin.accepted or begin.lease is None:
            return SubmitResult(
                accepted=False,
                plan_id=request.plan_id,
                snapshot=begin.snapshot,
                already_in_progress=True,
                message=ALREADY_IN_PROGRESS_MESSAGE,
            )

        lease = begin.lease
        task = asyncio.create_task(
            self._run(request, lease), name=f"analysis-{request.plan_id}"
        )
        self._tasks[request.plan_id] = task
        task.add_done_callback(lambda done: self._finish(lease, done))
        Log.info("Analysis accepted", plan_id=request.plan_id, tenant=request.tenant_id)
        return SubmitResult(
            accepted=True,
            plan_id=request.plan_id,
            snapshot=begin.snapshot,
            message="Analysis started",
        )

    async def submit_for_plan(
        self,
        plan_id: str,
        page_key: str = DEFAULT_PAGE_KEY,
    ) -> SubmitResult:
        """Load the plan's document from the document store and submit it.

        Raises:
            DocumentNotFoundError: if the plan does not exist.
            InputError: if the stored document can never be analyzed.
        """
        document = await asyncio.to_thread(self._document_store.get_plan_document, plan_id)
        return await self.submit(document.to_request(page_key))

    async def wait(self, plan_id: str) -> ProgressEntry | None:
        """Wait for the plan's running analysis, then return its entry."""
        task = self._tasks.get(plan_id)
        if task is not None:
            await asyncio.wait({task})
        return self._tracker.snapshot(plan_id)

    def cancel(self, plan_id: str) -> bool:
        """Cancel the plan's running analysis. Returns False if none is running."""
        task = self._tasks.get(plan_id)
        if task is None or task.done():
            return False
        Log.info("Cancelling analysis", plan_id=plan_id)
        return task.cancel()

    def is_running(self, plan_id: str) -> bool:
        task = self._tasks.get(plan_id)
        return task is not None and not task.done()

    async def _run(self, request: AnalysisRequest, lease: Lease) -> None:
        context = PipelineContext(request=request, lease=lease)
        try:
            await asyncio.wait_for(self._pipeline.run(context), timeout=self._deadline_seconds)
        except asyncio.TimeoutError:
            Log.warning(
                "Analysis deadline expired",
                plan_id=request.plan_id,
                deadline_seconds=self._deadline_seconds,
            )
            self._fail(lease, f"Analysis did not finish within {self._deadline_seconds} seconds")
        except asyncio.CancelledError:
            self._fail(lease, "Analysis was cancelled")
            raise
        except TokenLimitReachedError as exc:
            self._fail(lease, str(exc) or TOKEN_LIMIT_MESSAGE, token_limit_reached=True)
        except ProcessorError as exc:
            self._fail(lease, str(exc))
        except Exception as exc:  # noqa: BLE001
            Log.exception(f"Unexpected analysis failure: {exc}", plan_id=request.plan_id)
            self._fail(lease, "Unexpected error during analysis")

    def _fail(self, lease: Lease, error: str, token_limit_reached: bool = False) -> None:
        try:
            self._tracker.fail(
                lease,
                error,
                result=AnalysisResult.fallback(),
                token_limit_reached=token_limit_reached,
            )
        except ProgressStateError as exc:
            Log.warning(f"Could not record analysis failure: {exc}", plan_id=lease.plan_id)

    def _finish(self, lease: Lease, task: asyncio.Task[None]) -> None:
        if self._tasks.get(lease.plan_id) is task:
            del self._tasks[lease.plan_id]
        if not task.cancelled():
            return
        # cancelled before the task body started running
        entry = self._tracker.snapshot(lease.plan_id)
        if entry is not None and entry.is_live and entry.generation == lease.generation:
            self._fail(lease, "Analysis was cancelled")
