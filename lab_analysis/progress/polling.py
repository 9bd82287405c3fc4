from datetime import datetime, timezone
from typing import Any

from lab_analysis.progress.models import ProgressEntry, ProgressStatus
from lab_analysis.progress.tracker import ProgressTracker


def elapsed_ms(entry: ProgressEntry, now: datetime | None = None) -> int:
    """Milliseconds since the analysis was requested."""
    now = now or datetime.now(timezone.utc)
    return max(0, int((now - entry.start_time).total_seconds() * 1000))


def to_payload(entry: ProgressEntry, now: datetime | None = None) -> dict[str, Any]:
    """Render an entry in the shape returned to polling clients.

    ``data`` carries the analysis once completed, and the fallback result on
    failure so the client always has something to render.
    """
    payload: dict[str, Any] = {
        "status": entry.status.value,
        "progress": entry.progress,
        "totalUnits": entry.total_units,
        "processedUnits": entry.processed_units,
        "message": entry.message,
        "elapsedTime": elapsed_ms(entry, now),
    }
    if not entry.is_live and entry.result is not None:
        payload["data"] = entry.result.to_dict()
    if entry.status is ProgressStatus.FAILED:
        payload["error"] = entry.error or entry.message
        if entry.token_limit_reached:
            payload["tokenLimitReached"] = True
    return payload


def status_payload(
    tracker: ProgressTracker,
    plan_id: str,
    now: datetime | None = None,
) -> dict[str, Any] | None:
    """Polling view for ``plan_id``; None when no analysis was ever requested."""
    entry = tracker.snapshot(plan_id)
    if entry is None:
        return None
    return to_payload(entry, now)
