from typing import Any

import psycopg
from psycopg.rows import dict_row

from lab_analysis.database.connection import get_connection
from lab_analysis.database.models import JobRecord
from lab_analysis.processor.models import DEFAULT_PAGE_KEY


class JobRepository:
    """Database operations for the analysis_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, plan_id, page_key, status, attempts
                FROM analysis_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.rollback()
            return None

        conn.execute(
            """
            UPDATE analysis_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return JobRecord(
            id=row["id"],
            plan_id=row["plan_id"],
            page_key=row["page_key"],
            status="processing",
            attempts=row["attempts"],
        )

    def enqueue(self, plan_id: str, page_key: str = DEFAULT_PAGE_KEY) -> int:
        """Insert a pending job for a plan and return its ID."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO analysis_jobs (plan_id, page_key, status, attempts)
                    VALUES (%s, %s, 'pending', 0)
                    RETURNING id
                    """,
                    (plan_id, page_key),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Could not enqueue analysis job for plan {plan_id}")
        return int(row[0])

    def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        self._set_status(job_id, "done", None)

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        self._set_status(job_id, "failed", error)

    def increment_attempts(self, job_id: int) -> None:
        """Increment attempt count and return job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE analysis_jobs
                SET attempts = attempts + 1, status = 'pending',
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, plan_id, page_key, status, attempts,
                           error_message, locked_at, created_at, updated_at
                    FROM analysis_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return JobRecord(
            id=row["id"],
            plan_id=row["plan_id"],
            page_key=row["page_key"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _set_status(job_id: int, status: str, error: str | None) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE analysis_jobs
                SET status = %s, error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (status, error, job_id),
            )
            conn.commit()
