class BudgetError(Exception):
    """Base exception for token budgeting failures."""


class TokenLimitReachedError(BudgetError):
    """Raised when a tenant has exhausted its token quota."""
