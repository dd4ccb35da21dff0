from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Sequence

if TYPE_CHECKING:
    from services.account_fetcher import AccountResult

LOGGER = logging.getLogger(__name__)


class StatisticsService:
    """Very small in-memory record of fetch cycles and per-account outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {}

    def record_cycle(self, results: Sequence[AccountResult], emails_returned: int) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            stats = self._stats
            stats["fetch_runs"] = stats.get("fetch_runs", 0) + 1
            stats["last_run"] = now
            stats["last_emails_returned"] = emails_returned
            for result in results:
                bucket = self._account_bucket(stats, result.address)
                bucket["fetch_runs"] = bucket.get("fetch_runs", 0) + 1
                bucket["last_run"] = now
                bucket["status"] = result.status
                bucket["emails"] = len(result.emails)
                bucket["failed_partitions"] = list(result.failed_partitions)
                bucket["dropped"] = result.dropped
                bucket["error"] = result.error
                if result.status == "failed":
                    bucket["failures"] = bucket.get("failures", 0) + 1
        LOGGER.debug("Recorded fetch cycle with %s account results", len(results))

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            snapshot = dict(self._stats)
            snapshot["accounts"] = {
                name: dict(data) for name, data in self._stats.get("accounts", {}).items()
            }
        return snapshot

    def _account_bucket(self, stats: Dict[str, Any], account: str) -> Dict[str, Any]:
        accounts = stats.setdefault("accounts", {})
        return accounts.setdefault(account, {})
