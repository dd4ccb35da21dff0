"""Mailbox provider interface used by the fetch pipeline."""

from .base import MailboxProvider

__all__ = [
    "MailboxProvider",
]
