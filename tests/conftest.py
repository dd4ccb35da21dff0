"""Shared fixtures: an in-memory mailbox provider standing in for Gmail."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pytest

from services.providers import MailboxProvider


def make_detail(
    message_id: str,
    labels: Optional[List[str]] = None,
    date: Optional[str] = None,
    internal_date: Optional[int] = None,
    subject: str = "Hello",
    sender: str = "Alice <alice@example.com>",
) -> Dict[str, Any]:
    headers = [{"name": "Subject", "value": subject}, {"name": "From", "value": sender}]
    if date:
        headers.append({"name": "Date", "value": date})
    detail: Dict[str, Any] = {
        "id": message_id,
        "labelIds": labels if labels is not None else ["INBOX"],
        "snippet": f"snippet {message_id}",
        "payload": {"headers": headers},
    }
    if internal_date is not None:
        detail["internalDate"] = str(internal_date)
    return detail


class FakeMailbox:
    """Messages and failures configured for one account."""

    def __init__(self) -> None:
        self.partitions: Dict[str, List[str]] = {}
        self.details: Dict[str, Dict[str, Any]] = {}
        self.failing_selectors: set[str] = set()
        self.failing_ids: set[str] = set()
        self.fail_authorize = False
        self.refreshed_token: Optional[str] = None

    def add(self, selector: str, detail: Dict[str, Any]) -> None:
        self.partitions.setdefault(selector, []).append(detail["id"])
        self.details[detail["id"]] = detail


class FakeProvider(MailboxProvider):
    def __init__(self) -> None:
        self.mailboxes: Dict[str, FakeMailbox] = {}
        self.calls: List[tuple] = []

    def mailbox(self, address: str) -> FakeMailbox:
        return self.mailboxes.setdefault(address, FakeMailbox())

    def authorize(self, credential: Mapping[str, Any]) -> Dict[str, Any]:
        self.calls.append(("authorize", credential["address"]))
        box = self.mailbox(credential["address"])
        if box.fail_authorize:
            raise RuntimeError("invalid_grant: Token has been revoked")
        handle = dict(credential)
        if box.refreshed_token:
            handle["token"] = box.refreshed_token
        return handle

    def list_messages(self, handle: Dict[str, Any], selector: str, max_results: int) -> List[str]:
        self.calls.append(("list", handle["address"], selector))
        box = self.mailbox(handle["address"])
        if selector in box.failing_selectors:
            raise RuntimeError(f"quota exceeded for {selector}")
        return list(box.partitions.get(selector, []))[:max_results]

    def get_message(self, handle: Dict[str, Any], message_id: str) -> Dict[str, Any]:
        self.calls.append(("get", handle["address"], message_id))
        box = self.mailbox(handle["address"])
        if message_id in box.failing_ids:
            raise RuntimeError(f"backend error for {message_id}")
        return box.details[message_id]

    def export_credential(self, handle: Dict[str, Any]) -> Dict[str, Any]:
        return dict(handle)


def credential_for(address: str, token: str = "token-1") -> Dict[str, Any]:
    return {"address": address, "token": token, "refresh_token": "refresh"}


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
