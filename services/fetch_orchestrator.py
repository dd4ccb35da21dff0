from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from models.account import Account
from models.email_message import EmailMessage
from services.account_fetcher import AccountFetcher, AccountResult
from services.account_registry import AccountRegistry
from services.statistics_service import StatisticsService

LOGGER = logging.getLogger(__name__)


class FetchOrchestrator:
    """Runs one fetch cycle across every registered account.

    Triggers that arrive while a cycle is running are coalesced: they wait for
    the running cycle and receive its result.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        fetcher: AccountFetcher,
        stats: Optional[StatisticsService] = None,
        result_limit: int = 100,
    ):
        self._registry = registry
        self._fetcher = fetcher
        self._stats = stats
        self._result_limit = result_limit
        self._inflight: Optional[asyncio.Task[List[EmailMessage]]] = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def run_cycle(self) -> List[EmailMessage]:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._run())
        else:
            LOGGER.debug("Fetch cycle already running, joining it")
        return await asyncio.shield(self._inflight)

    async def _run(self) -> List[EmailMessage]:
        accounts = self._registry.list()
        if not accounts:
            LOGGER.info("No accounts connected, skipping fetch cycle")
            if self._stats:
                self._stats.record_cycle([], 0)
            return []

        results = await asyncio.gather(*(self._fetch_isolated(account) for account in accounts))

        merged: List[EmailMessage] = []
        for result in results:
            merged.extend(result.emails)
            if result.credential is not None:
                self._registry.update_credential(result.address, result.credential)

        merged.sort(key=lambda email: email.timestamp, reverse=True)
        if self._result_limit > 0:
            merged = merged[: self._result_limit]

        failed = sum(1 for result in results if result.status == "failed")
        LOGGER.info(
            "Fetched %s latest emails across %s accounts (%s failed)",
            len(merged),
            len(accounts),
            failed,
        )
        if self._stats:
            self._stats.record_cycle(results, len(merged))
        return merged

    async def _fetch_isolated(self, account: Account) -> AccountResult:
        try:
            return await self._fetcher.fetch(account)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Fetch failed for %s", account.address)
            return AccountResult(address=account.address, error=str(exc) or exc.__class__.__name__)
