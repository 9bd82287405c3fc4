from lab_analysis.budget.estimator import estimate_tokens, truncate
from lab_analysis.budget.ledger import BaseTokenLedger, InMemoryTokenLedger
from lab_analysis.budget.models import QuotaStatus, TokenLedgerEntry
from lab_analysis.budget.quota import TokenBudgeter

__all__ = [
    "BaseTokenLedger",
    "InMemoryTokenLedger",
    "QuotaStatus",
    "TokenBudgeter",
    "TokenLedgerEntry",
    "estimate_tokens",
    "truncate",
]
