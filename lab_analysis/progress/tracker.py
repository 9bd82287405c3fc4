"""Keyed, lock-protected store of per-plan progress entries.

Only the holder of the lease returned by ``try_begin`` may change an entry,
so a plan never has two writers. Entries are immutable snapshots that are
replaced on every change.
"""

import itertools
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from lab_analysis.logging.logger import Log
from lab_analysis.normalization.models import AnalysisResult
from lab_analysis.progress.exceptions import ProgressStateError
from lab_analysis.progress.models import BeginResult, Lease, ProgressEntry, ProgressStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressTracker:
    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, ProgressEntry] = {}
        self._generations = itertools.count(1)
        self._lock = threading.Lock()

    def try_begin(self, plan_id: str, message: str = "Analysis queued") -> BeginResult:
        """Open a pending entry unless the plan already has a live one.

        A terminal entry from an earlier request is replaced.
        """
        with self._lock:
            current = self._entries.get(plan_id)
            if current is not None and current.is_live:
                Log.warning(
                    "Analysis already in progress, rejecting request",
                    plan_id=plan_id,
                    progress=current.progress,
                )
                return BeginResult(accepted=False, snapshot=current)
            now = self._clock()
            entry = ProgressEntry(
                plan_id=plan_id,
                status=ProgressStatus.PENDING,
                start_time=now,
                last_update_time=now,
                generation=next(self._generations),
                message=message,
            )
            self._entries[plan_id] = entry
        Log.info("Progress entry opened", plan_id=plan_id, generation=entry.generation)
        return BeginResult(
            accepted=True,
            snapshot=entry,
            lease=Lease(plan_id=plan_id, generation=entry.generation),
        )

    def update(
        self,
        lease: Lease,
        *,
        processed: int,
        total: int,
        message: str = "",
    ) -> ProgressEntry:
        """Move the entry to in_progress. Progress never decreases."""
        with self._lock:
            entry = self._owned_live_entry(lease)
            percent = round(processed / total * 100) if total > 0 else 0
            updated = replace(
                entry,
                status=ProgressStatus.IN_PROGRESS,
                progress=max(entry.progress, min(100, max(0, percent))),
                processed_units=processed,
                total_units=total,
                message=message or entry.message,
                last_update_time=self._clock(),
            )
            self._entries[lease.plan_id] = updated
        Log.debug(
            "Progress updated",
            plan_id=lease.plan_id,
            progress=updated.progress,
            processed=processed,
            total=total,
        )
        return updated

    def complete(
        self,
        lease: Lease,
        result: AnalysisResult,
        message: str = "Analysis completed",
    ) -> ProgressEntry:
        with self._lock:
            entry = self._owned_live_entry(lease)
            updated = replace(
                entry,
                status=ProgressStatus.COMPLETED,
                progress=100,
                processed_units=max(entry.processed_units, entry.total_units),
                message=message,
                result=result,
                last_update_time=self._clock(),
            )
            self._entries[lease.plan_id] = updated
        Log.info("Analysis completed", plan_id=lease.plan_id)
        return updated

    def fail(
        self,
        lease: Lease,
        error: str,
        result: AnalysisResult | None = None,
        token_limit_reached: bool = False,
    ) -> ProgressEntry:
        with self._lock:
            entry = self._owned_live_entry(lease)
            updated = replace(
                entry,
                status=ProgressStatus.FAILED,
                message=error,
                error=error,
                result=result,
                token_limit_reached=token_limit_reached,
                last_update_time=self._clock(),
            )
            self._entries[lease.plan_id] = updated
        Log.warning(
            f"Analysis failed: {error}",
            plan_id=lease.plan_id,
            token_limit_reached=token_limit_reached,
        )
        return updated

    def snapshot(self, plan_id: str) -> ProgressEntry | None:
        with self._lock:
            return self._entries.get(plan_id)

    def _owned_live_entry(self, lease: Lease) -> ProgressEntry:
        entry = self._entries.get(lease.plan_id)
        if entry is None or entry.generation != lease.generation:
            raise ProgressStateError(
                f"Lease for plan {lease.plan_id} (generation {lease.generation}) is stale"
            )
        if not entry.is_live:
            raise ProgressStateError(
                f"Progress entry for plan {lease.plan_id} is already {entry.status.value}"
            )
        return entry
