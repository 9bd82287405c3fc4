import asyncio

from lab_analysis.config.settings import Settings
from lab_analysis.database.connection import get_connection
from lab_analysis.database.models import JobRecord
from lab_analysis.database.repositories.job_repository import JobRepository
from lab_analysis.logging.logger import Log
from lab_analysis.worker.job_runner import JobRunner


class Worker:
    """Poll loop: wait for a free slot -> claim -> dispatch as a task."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings

    async def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until cancelled.

        At most ``max_concurrent_jobs`` jobs run at once. If max_jobs is set,
        stop claiming after that many jobs and wait for them (for testing).
        """
        Log.info(
            "Worker started, polling for jobs",
            max_concurrent_jobs=self._settings.max_concurrent_jobs,
        )
        slots = asyncio.Semaphore(self._settings.max_concurrent_jobs)
        running: set[asyncio.Task[None]] = set()
        jobs_started = 0
        try:
            while max_jobs is None or jobs_started < max_jobs:
                await slots.acquire()
                job = await asyncio.to_thread(self._try_claim_job)
                if job is None:
                    slots.release()
                    Log.debug("No jobs available, sleeping")
                    await self._wait_for_jobs()
                    continue
                task = asyncio.create_task(self._run_job(job, slots), name=f"job-{job.id}")
                running.add(task)
                task.add_done_callback(running.discard)
                jobs_started += 1
        finally:
            if running:
                await asyncio.gather(*running, return_exceptions=True)
            Log.info("Worker stopped")

    async def _run_job(self, job: JobRecord, slots: asyncio.Semaphore) -> None:
        try:
            await self._job_runner.run(job)
        except Exception as exc:  # noqa: BLE001
            Log.error(f"Job {job.id} could not be finalized: {exc}")
        finally:
            slots.release()

    async def _wait_for_jobs(self) -> None:
        await asyncio.sleep(self._settings.job_poll_interval_seconds)

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next pending job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
