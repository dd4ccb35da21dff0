from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True, frozen=True)
class PartitionQuery:
    """Gmail search expression for one mailbox partition."""

    tag: str
    selector: str


@dataclass(slots=True, frozen=True)
class MessageRef:
    id: str
    partition: str


DEFAULT_PARTITIONS: Tuple[PartitionQuery, ...] = (
    PartitionQuery("INBOX", "in:inbox"),
    PartitionQuery("SPAM", "in:spam"),
    PartitionQuery("PROMOTIONS", "category:promotions"),
    PartitionQuery("SOCIAL", "category:social"),
    PartitionQuery("UPDATES", "category:updates"),
    PartitionQuery("FORUMS", "category:forums"),
)
