# CodeSurf — recent activity ledger
#
# Remembers when each document was last edited. Bookkeeping only: the
# decision path does not read it. The idle sweep evicts stale entries.

from typing import Dict, Optional

RETENTION_MS = 30000.0


class RecentActivityLedger:
    """Time-windowed mapping of document -> last edit time (ms)."""

    def __init__(self, retention_ms: float = RETENTION_MS):
        self.retention_ms = retention_ms
        self._last_edit: Dict[str, float] = {}

    def touch(self, document: str, now_ms: float):
        self._last_edit[document] = now_ms

    def last_edit(self, document: str) -> Optional[float]:
        return self._last_edit.get(document)

    def evict(self, now_ms: float) -> int:
        """Drop entries older than the retention window. Returns how many went."""
        stale = [doc for doc, ts in self._last_edit.items() if now_ms - ts > self.retention_ms]
        for doc in stale:
            del self._last_edit[doc]
        return len(stale)

    def __contains__(self, document: str) -> bool:
        return document in self._last_edit

    def __len__(self) -> int:
        return len(self._last_edit)
