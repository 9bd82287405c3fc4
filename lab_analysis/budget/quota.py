from collections.abc import Mapping

from lab_analysis.budget.ledger import BaseTokenLedger
from lab_analysis.budget.models import QuotaStatus, TokenLedgerEntry
from lab_analysis.budget.pricing import calculate_cost
from lab_analysis.logging.logger import Log

TOKEN_LIMIT_MESSAGE = "Company token limit reached"


class TokenBudgeter:
    """Enforces per-tenant token quotas against an append-only ledger.

    Quota reads are a soft check: two requests for the same tenant may both
    pass the check before either has written its usage. The overshoot is
    bounded by the cost of the calls already in flight.
    """

    def __init__(
        self,
        ledger: BaseTokenLedger,
        default_limit: int,
        tenant_limits: Mapping[str, int] | None = None,
    ) -> None:
        self._ledger = ledger
        self._default_limit = default_limit
        self._tenant_limits = dict(tenant_limits or {})

    def limit_for(self, tenant_id: str) -> int:
        return self._tenant_limits.get(tenant_id, self._default_limit)

    def check_quota(self, tenant_id: str) -> QuotaStatus:
        """Compare the tenant's cumulative usage with its ceiling."""
        limit = self.limit_for(tenant_id)
        used = self._ledger.total_for(tenant_id)
        if used >= limit:
            Log.warning("Token quota exhausted", tenant=tenant_id, used=used, limit=limit)
            return QuotaStatus(
                allowed=False, remaining=0, used=used, limit=limit, message=TOKEN_LIMIT_MESSAGE
            )
        return QuotaStatus(allowed=True, remaining=limit - used, used=used, limit=limit)

    def record_usage(
        self,
        tenant_id: str,
        tokens_used: int,
        model: str,
        page_key: str = "",
    ) -> TokenLedgerEntry:
        """Append a usage entry priced for the given model."""
        entry = TokenLedgerEntry(
            tenant_id=tenant_id,
            tokens_used=max(0, tokens_used),
            cost=calculate_cost(max(0, tokens_used), model),
            model=model,
            page_key=page_key,
        )
        self._ledger.append(entry)
        Log.info(
            "Recorded token usage",
            tenant=tenant_id,
            tokens=entry.tokens_used,
            model=model,
            cost=entry.cost,
        )
        return entry
