from dataclasses import dataclass
from datetime import datetime

from lab_analysis.processor.models import DEFAULT_PAGE_KEY


@dataclass
class JobRecord:
    """Represents a row from the analysis_jobs table."""

    id: int
    plan_id: str
    status: str
    attempts: int
    page_key: str = DEFAULT_PAGE_KEY
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
