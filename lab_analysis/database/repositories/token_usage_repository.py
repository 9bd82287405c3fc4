from lab_analysis.budget.ledger import BaseTokenLedger
from lab_analysis.budget.models import TokenLedgerEntry
from lab_analysis.database.connection import get_connection


class TokenUsageRepository(BaseTokenLedger):
    """Append-only token ledger stored in the token_usages table."""

    def append(self, entry: TokenLedgerEntry) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO token_usages
                (company_id, tokens_used, cost, model, page_key, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.tenant_id,
                    entry.tokens_used,
                    entry.cost,
                    entry.model,
                    entry.page_key,
                    entry.timestamp,
                ),
            )
            conn.commit()

    def total_for(self, tenant_id: str) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COALESCE(SUM(tokens_used), 0) FROM token_usages WHERE company_id = %s",
                    (tenant_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0
