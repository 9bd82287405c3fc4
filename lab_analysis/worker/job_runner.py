import asyncio

from lab_analysis.config.settings import Settings
from lab_analysis.database.models import JobRecord
from lab_analysis.database.repositories.job_repository import JobRepository
from lab_analysis.logging.logger import Log
from lab_analysis.processor.exceptions import DocumentNotFoundError, InputError
from lab_analysis.processor.service import AnalysisService
from lab_analysis.progress.models import ProgressStatus


class JobRunner:
    """Run one job through the analysis service and apply retry logic.

    Only errors raised before the analysis starts (database outages while
    loading the plan) are retried. A failed analysis is final: it already
    carries a fallback result, and quota failures must not be retried.
    """

    def __init__(
        self,
        service: AnalysisService,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._service = service
        self._job_repo = job_repo
        self._settings = settings

    async def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} for plan {job.plan_id} (attempt {job.attempts + 1})")
        try:
            submitted = await self._service.submit_for_plan(job.plan_id, job.page_key)
            if not submitted.accepted:
                await self._mark_failed(job, submitted.message)
                return
            entry = await self._service.wait(job.plan_id)
        except (DocumentNotFoundError, InputError) as exc:
            await self._mark_failed(job, str(exc))
            return
        except Exception as exc:  # noqa: BLE001
            await self._handle_failure(job, exc)
            return

        if entry is not None and entry.status is ProgressStatus.COMPLETED:
            await asyncio.to_thread(self._job_repo.mark_done, job.id)
            Log.info(f"Job {job.id} completed successfully")
            return
        error = entry.error if entry is not None and entry.error else "Analysis failed"
        await self._mark_failed(job, error)

    async def _mark_failed(self, job: JobRecord, error: str) -> None:
        await asyncio.to_thread(self._job_repo.mark_failed, job.id, error)
        Log.error(f"Job {job.id} failed: {error}")

    async def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Job {job.id} failed: {exc}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            await asyncio.to_thread(self._job_repo.mark_failed, job.id, str(exc))
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            await asyncio.to_thread(self._job_repo.increment_attempts, job.id)
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
