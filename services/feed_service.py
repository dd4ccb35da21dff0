from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from models.email_message import EmailMessage
from services.fetch_orchestrator import FetchOrchestrator

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FeedSnapshot:
    emails: List[EmailMessage]
    fetched_at: datetime
    from_cache: bool
    age_seconds: float = 0.0


class FeedService:
    """Hands the merged feed to callers, optionally reusing a recent cycle.

    With ``ttl_seconds`` of zero every request runs a fresh cycle.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        ttl_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._orchestrator = orchestrator
        self._ttl = ttl_seconds
        self._clock = clock
        self._cached: Optional[FeedSnapshot] = None
        self._cached_at = 0.0

    async def get_emails(self, force: bool = False) -> FeedSnapshot:
        if not force and self._cached is not None and self._ttl > 0:
            age = self._clock() - self._cached_at
            if age < self._ttl:
                LOGGER.debug("Serving cached feed (%.1fs old)", age)
                return FeedSnapshot(
                    emails=self._cached.emails,
                    fetched_at=self._cached.fetched_at,
                    from_cache=True,
                    age_seconds=age,
                )

        emails = await self._orchestrator.run_cycle()
        snapshot = FeedSnapshot(
            emails=emails,
            fetched_at=datetime.now(timezone.utc),
            from_cache=False,
        )
        if self._ttl > 0:
            self._cached = snapshot
            self._cached_at = self._clock()
        return snapshot

    def invalidate(self) -> None:
        self._cached = None
