import asyncio

from lab_analysis.config.settings import Settings
from lab_analysis.database.connection import close_pool, init_pool
from lab_analysis.database.repositories.ai_configuration_repository import (
    AIConfigurationRepository,
)
from lab_analysis.database.repositories.job_repository import JobRepository
from lab_analysis.database.repositories.plan_repository import PlanRepository
from lab_analysis.database.repositories.token_usage_repository import TokenUsageRepository
from lab_analysis.logging.logger import Log
from lab_analysis.processor.processor import build_analysis_service
from lab_analysis.worker.job_runner import JobRunner
from lab_analysis.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        plans = PlanRepository()
        service = build_analysis_service(
            settings,
            ledger=TokenUsageRepository(),
            document_store=plans,
            result_store=plans,
            config_store=AIConfigurationRepository(settings),
        )
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(service, job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        asyncio.run(worker.run())
    except KeyboardInterrupt:
        Log.info("Worker shutting down gracefully")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
