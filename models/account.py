from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(slots=True, frozen=True)
class Account:
    """A connected mailbox and the OAuth credential used to read it."""

    address: str
    credential: Dict[str, Any]
    last_refreshed_at: datetime | None = None
