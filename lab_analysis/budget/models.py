from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenLedgerEntry:
    """One append-only token usage record for a tenant."""

    tenant_id: str
    tokens_used: int
    cost: float
    timestamp: datetime = field(default_factory=_utcnow)
    model: str = ""
    page_key: str = ""


@dataclass(frozen=True)
class QuotaStatus:
    """Result of a tenant quota check."""

    allowed: bool
    remaining: int | None = None
    used: int = 0
    limit: int = 0
    message: str = ""
