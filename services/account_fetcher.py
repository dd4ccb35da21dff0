from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from models.account import Account
from models.email_message import EmailMessage
from models.partition import DEFAULT_PARTITIONS, MessageRef, PartitionQuery
from services.message_normalizer import normalize
from services.providers import MailboxProvider

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AccountResult:
    """Outcome of fetching one account during a cycle."""

    address: str
    emails: List[EmailMessage] = field(default_factory=list)
    credential: Optional[Dict[str, Any]] = None
    failed_partitions: List[str] = field(default_factory=list)
    dropped: int = 0
    error: Optional[str] = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.failed_partitions or self.dropped:
            return "partial"
        return "ok"


class AccountFetcher:
    """Lists every partition of one mailbox and hydrates the unique messages."""

    def __init__(
        self,
        provider: MailboxProvider,
        partitions: Sequence[PartitionQuery] = DEFAULT_PARTITIONS,
        max_results: int = 30,
        detail_concurrency: int = 10,
    ):
        self._provider = provider
        self._partitions = tuple(partitions)
        self._max_results = max_results
        self._detail_concurrency = detail_concurrency

    async def fetch(self, account: Account) -> AccountResult:
        result = AccountResult(address=account.address)
        try:
            handle = await asyncio.to_thread(self._provider.authorize, account.credential)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Could not authorize %s: %s", account.address, exc)
            result.error = str(exc) or exc.__class__.__name__
            result.failed_partitions = [partition.tag for partition in self._partitions]
            return result

        listings = await asyncio.gather(
            *(self._list_partition(account, handle, partition) for partition in self._partitions)
        )
        refs: List[MessageRef] = []
        for partition, listing in zip(self._partitions, listings):
            if listing is None:
                result.failed_partitions.append(partition.tag)
            else:
                refs.extend(listing)

        unique = dedupe(refs)
        semaphore = asyncio.Semaphore(max(1, self._detail_concurrency))
        hydrated = await asyncio.gather(
            *(self._hydrate(account, handle, ref, semaphore) for ref in unique)
        )
        result.emails = [email for email in hydrated if email is not None]
        result.dropped = len(unique) - len(result.emails)

        updated = self._provider.export_credential(handle)
        if updated.get("token") != account.credential.get("token"):
            result.credential = updated

        LOGGER.info(
            "Fetched %s emails for %s (%s ids, %s dropped, failed partitions: %s)",
            len(result.emails),
            account.address,
            len(unique),
            result.dropped,
            ", ".join(result.failed_partitions) or "none",
        )
        return result

    async def _list_partition(
        self, account: Account, handle: Any, partition: PartitionQuery
    ) -> Optional[List[MessageRef]]:
        try:
            ids = await asyncio.to_thread(
                self._provider.list_messages, handle, partition.selector, self._max_results
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Error fetching %s with query %r for %s: %s",
                partition.tag,
                partition.selector,
                account.address,
                exc,
            )
            return None
        return [MessageRef(id=message_id, partition=partition.tag) for message_id in ids]

    async def _hydrate(
        self, account: Account, handle: Any, ref: MessageRef, semaphore: asyncio.Semaphore
    ) -> Optional[EmailMessage]:
        async with semaphore:
            try:
                detail = await asyncio.to_thread(self._provider.get_message, handle, ref.id)
                return normalize(account.address, detail)
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Dropping message %s for %s: %s", ref.id, account.address, exc)
                return None


def dedupe(refs: Sequence[MessageRef]) -> List[MessageRef]:
    """Keep the first reference seen for each message id."""

    seen: Dict[str, MessageRef] = {}
    for ref in refs:
        seen.setdefault(ref.id, ref)
    return list(seen.values())
