from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from lab_analysis.normalization.models import AnalysisResult


class ProgressStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


LIVE_STATUSES = frozenset({ProgressStatus.PENDING, ProgressStatus.IN_PROGRESS})


@dataclass(frozen=True)
class ProgressEntry:
    """Snapshot of one plan's analysis progress.

    ``generation`` identifies the request that owns the entry; a new request
    for the same plan gets a new generation.
    """

    plan_id: str
    status: ProgressStatus
    start_time: datetime
    last_update_time: datetime
    generation: int
    progress: int = 0
    total_units: int = 0
    processed_units: int = 0
    message: str = ""
    result: AnalysisResult | None = None
    error: str | None = None
    token_limit_reached: bool = False

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES


@dataclass(frozen=True)
class Lease:
    """Write access to one generation of a plan's entry."""

    plan_id: str
    generation: int


@dataclass(frozen=True)
class BeginResult:
    accepted: bool
    snapshot: ProgressEntry
    lease: Lease | None = None
