from __future__ import annotations

from enum import Enum


class Label(str, Enum):
    """Application-level classification assigned to one message."""

    SPAM = "SPAM"
    PROMOTIONS = "PROMOTIONS"
    SOCIAL = "SOCIAL"
    UPDATES = "UPDATES"
    FORUMS = "FORUMS"
    IMPORTANT = "IMPORTANT"
    STARRED = "STARRED"
    SENT = "SENT"
    DRAFT = "DRAFT"
    INBOX = "INBOX"
