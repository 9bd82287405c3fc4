from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from lab_analysis.database.connection import get_connection
from lab_analysis.normalization.models import AnalysisResult
from lab_analysis.processor.exceptions import DocumentNotFoundError, UnsupportedContentError
from lab_analysis.processor.models import ContentKind, PlanDocument
from lab_analysis.processor.stores import BaseDocumentStore, BaseResultStore


class PlanRepository(BaseDocumentStore, BaseResultStore):
    """Database operations for the lab columns of the plans table."""

    def get_plan_document(self, plan_id: str) -> PlanDocument:
        """Load the plan's lab file, its extracted text or its notes.

        A stored file wins over previously extracted text.

        Raises:
            DocumentNotFoundError: if no plan with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, company_id, lab_file, lab_file_kind, lab_file_mime_type,
                           lab_file_text, lab_file_high_quality, lab_notes, patient_data
                    FROM plans
                    WHERE id = %s
                    """,
                    (plan_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Plan {plan_id} not found")

        kind: ContentKind | None
        payload: bytes | str | None
        if row["lab_file"] is not None:
            payload = bytes(row["lab_file"])
            kind = _content_kind(row["lab_file_kind"], plan_id)
        elif row["lab_file_text"]:
            payload = row["lab_file_text"]
            kind = ContentKind.RAW_TEXT
        else:
            payload = None
            kind = None

        return PlanDocument(
            plan_id=row["id"],
            tenant_id=row["company_id"],
            kind=kind,
            payload=payload,
            quality_hint=bool(row["lab_file_high_quality"]),
            mime_type=row["lab_file_mime_type"] or "",
            notes=row["lab_notes"],
            patient_data=row["patient_data"],
        )

    def save_plan_analysis(self, plan_id: str, result: AnalysisResult) -> None:
        """Persist the analysis as JSONB in the plan's lab_analysis column.

        Raises:
            DocumentNotFoundError: if no plan with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE plans
                    SET lab_analysis = %s, lab_analyzed_at = NOW(), updated_at = NOW()
                    WHERE id = %s
                    """,
                    (Jsonb(result.to_dict()), plan_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Plan {plan_id} not found")
            conn.commit()


def _content_kind(value: str | None, plan_id: str) -> ContentKind | None:
    if not value:
        return None
    try:
        return ContentKind(value)
    except ValueError as exc:
        raise UnsupportedContentError(
            f"Plan {plan_id} has a lab file of unsupported kind {value!r}"
        ) from exc
