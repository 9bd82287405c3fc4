import threading
from abc import ABC, abstractmethod

from lab_analysis.budget.models import TokenLedgerEntry


class BaseTokenLedger(ABC):
    """Contract for append-only token usage storage."""

    @abstractmethod
    def append(self, entry: TokenLedgerEntry) -> None:
        """Persist a usage entry. Entries are never updated afterwards."""

    @abstractmethod
    def total_for(self, tenant_id: str) -> int:
        """Return the cumulative tokens used by a tenant."""


class InMemoryTokenLedger(BaseTokenLedger):
    """Process-local ledger for development runs and tests."""

    def __init__(self) -> None:
        self._entries: list[TokenLedgerEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: TokenLedgerEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def total_for(self, tenant_id: str) -> int:
        with self._lock:
            return sum(e.tokens_used for e in self._entries if e.tenant_id == tenant_id)

    def entries_for(self, tenant_id: str) -> list[TokenLedgerEntry]:
        with self._lock:
            return [e for e in self._entries if e.tenant_id == tenant_id]
