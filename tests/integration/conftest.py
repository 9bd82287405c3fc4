import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from lab_analysis.config.settings import Settings
from lab_analysis.database.connection import apply_schema, close_pool, get_connection, init_pool
from lab_analysis.database.models import JobRecord


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "lab_analysis_test")
    return Settings()


def _probe(settings: Settings) -> None:
    conninfo = make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        connect_timeout=3,
    )
    with psycopg.connect(conninfo) as conn:
        apply_schema(conn)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def example_settings(test_settings: Settings) -> Settings:
    """Settings that route every analysis to the offline example provider."""
    return test_settings.model_copy(
        update={
            "default_model": "example",
            "openai_api_key": "",
            "openai_base_url": None,
            "gemini_api_key": "",
        }
    )


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        _probe(test_settings)
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def tenant_id() -> str:
    return f"tenant-{uuid.uuid4()}"


@pytest.fixture
def page_key() -> str:
    """A page key no stored configuration uses, so defaults apply."""
    return f"page-{uuid.uuid4()}"


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    statements = {
        "analysis_jobs": "DELETE FROM analysis_jobs WHERE id = %s",
        "plans": "DELETE FROM plans WHERE id = %s",
        "token_usages": "DELETE FROM token_usages WHERE company_id = %s",
        "ai_configurations": "DELETE FROM ai_configurations WHERE id = %s",
    }
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table in statements:
                for row_table, row_id in cleanup:
                    if row_table == table:
                        cur.execute(statements[table], (row_id,))
        conn.commit()


def _insert_plan(
    db_conn: psycopg.Connection[Any],
    tenant_id: str,
    **columns: Any,
) -> str:
    plan_id = str(uuid.uuid4())
    values = {"id": plan_id, "company_id": tenant_id, **columns}
    names = ", ".join(values)
    placeholders = ", ".join(["%s"] * len(values))
    with db_conn.cursor() as cur:
        cur.execute(
            f"INSERT INTO plans ({names}) VALUES ({placeholders})",  # noqa: S608
            tuple(values.values()),
        )
    db_conn.commit()
    return plan_id


@pytest.fixture
def seed_plan(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
    tenant_id: str,
) -> str:
    """A plan with typed lab notes and no file."""
    plan_id = _insert_plan(
        db_conn,
        tenant_id,
        lab_notes="Hemoglobina 9.8 g/dL (ref 12-16)",
        patient_data=Jsonb({"age": 42, "sex": "F"}),
    )
    integration_cleanup.append(("plans", plan_id))
    integration_cleanup.append(("token_usages", tenant_id))
    return plan_id


@pytest.fixture
def seed_pdf_plan(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
    tenant_id: str,
    lab_report_pdf_bytes: bytes,
) -> str:
    plan_id = _insert_plan(
        db_conn,
        tenant_id,
        lab_file=lab_report_pdf_bytes,
        lab_file_kind="pdf",
        lab_file_mime_type="application/pdf",
    )
    integration_cleanup.append(("plans", plan_id))
    integration_cleanup.append(("token_usages", tenant_id))
    return plan_id


@pytest.fixture
def seed_job(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
    seed_plan: str,
    page_key: str,
) -> JobRecord:
    with db_conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            INSERT INTO analysis_jobs (plan_id, page_key, status, attempts)
            VALUES (%s, %s, 'pending', 0)
            RETURNING id, plan_id, page_key, status, attempts
            """,
            (seed_plan, page_key),
        )
        row = cur.fetchone()
        assert row is not None
    db_conn.commit()
    integration_cleanup.append(("analysis_jobs", row["id"]))
    return JobRecord(
        id=row["id"],
        plan_id=row["plan_id"],
        page_key=row["page_key"],
        status="pending",
        attempts=0,
    )
