from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from models.label import Label


@dataclass(slots=True, frozen=True)
class EmailMessage:
    """Canonical message as shown in the merged feed.

    ``(account, id)`` identifies a message globally; the same provider id may
    legitimately appear under two accounts.
    """

    id: str
    account: str
    subject: str
    sender: str
    sender_name: str
    sender_email: str
    date: str
    snippet: str
    label: Label
    is_read: bool
    is_spam: bool

    @property
    def timestamp(self) -> datetime:
        return datetime.fromisoformat(self.date.replace("Z", "+00:00"))

    @property
    def key(self) -> tuple[str, str]:
        return self.account, self.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account": self.account,
            "subject": self.subject,
            "from": self.sender,
            "senderName": self.sender_name,
            "senderEmail": self.sender_email,
            "date": self.date,
            "snippet": self.snippet,
            "label": self.label.value,
            "isRead": self.is_read,
            "isSpam": self.is_spam,
        }
