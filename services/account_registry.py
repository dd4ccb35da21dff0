from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from models.account import Account

LOGGER = logging.getLogger(__name__)


class AccountRegistry:
    """In-memory store of connected accounts.

    Readers get immutable snapshots; writers replace one account at a time
    under a lock, so a fetch cycle never sees a half-registered account.
    Nothing is persisted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: Dict[str, Account] = {}

    def register(self, address: str, credential: Mapping[str, Any]) -> bool:
        """Add an account. Returns False when the address is already connected."""

        account = Account(address=address, credential=dict(credential))
        with self._lock:
            if address in self._accounts:
                LOGGER.info("Account %s already connected", address)
                return False
            self._accounts[address] = account
        LOGGER.info("Account %s connected", address)
        return True

    def list(self) -> Tuple[Account, ...]:
        with self._lock:
            return tuple(self._accounts.values())

    def get(self, address: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(address)

    def update_credential(self, address: str, credential: Mapping[str, Any]) -> bool:
        with self._lock:
            current = self._accounts.get(address)
            if current is None:
                LOGGER.warning("Ignoring credential update for unknown account %s", address)
                return False
            self._accounts[address] = replace(
                current,
                credential=dict(credential),
                last_refreshed_at=datetime.now(timezone.utc),
            )
        LOGGER.debug("Stored refreshed credential for %s", address)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return address in self._accounts
