import pytest

from lab_analysis.budget.models import TokenLedgerEntry
from lab_analysis.budget.quota import TokenBudgeter
from lab_analysis.database.repositories.token_usage_repository import TokenUsageRepository


@pytest.mark.integration
class TestTokenUsageRepository:
    def test_totals_are_per_tenant(self, tenant_id: str, integration_cleanup) -> None:
        other = f"{tenant_id}-other"
        integration_cleanup.append(("token_usages", tenant_id))
        integration_cleanup.append(("token_usages", other))
        repo = TokenUsageRepository()

        repo.append(TokenLedgerEntry(tenant_id=tenant_id, tokens_used=120, cost=0.01, model="gpt-4o"))
        repo.append(TokenLedgerEntry(tenant_id=tenant_id, tokens_used=30, cost=0.0, model="example"))
        repo.append(TokenLedgerEntry(tenant_id=other, tokens_used=999, cost=0.0))

        assert repo.total_for(tenant_id) == 150
        assert repo.total_for(other) == 999

    def test_unknown_tenant_has_no_usage(self, tenant_id: str, integration_pool: None) -> None:
        assert TokenUsageRepository().total_for(tenant_id) == 0

    def test_budgeter_denies_after_limit(self, tenant_id: str, integration_cleanup) -> None:
        integration_cleanup.append(("token_usages", tenant_id))
        budgeter = TokenBudgeter(TokenUsageRepository(), default_limit=100)
        budgeter.record_usage(tenant_id, 100, "gpt-4o-mini", page_key="lab_analysis")
        assert budgeter.check_quota(tenant_id).allowed is False
