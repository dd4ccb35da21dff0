from __future__ import annotations

import threading

from conftest import FakeProvider, credential_for, make_detail
from models.account import Account
from models.label import Label
from models.partition import MessageRef, PartitionQuery
from services.account_fetcher import AccountFetcher, dedupe

PARTITIONS = (
    PartitionQuery("INBOX", "in:inbox"),
    PartitionQuery("IMPORTANT", "is:important"),
    PartitionQuery("SPAM", "in:spam"),
)


def _account(address: str = "a@x.com") -> Account:
    return Account(address=address, credential=credential_for(address))


async def test_message_in_two_partitions_is_fetched_once(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    detail = make_detail("m1", labels=["INBOX", "IMPORTANT"], internal_date=1_000)
    box.add("in:inbox", detail)
    box.add("is:important", detail)

    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())

    assert [email.id for email in result.emails] == ["m1"]
    assert [call for call in provider.calls if call[0] == "get"] == [("get", "a@x.com", "m1")]
    assert result.status == "ok"


async def test_failed_partition_does_not_abort_others(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    box.failing_selectors.add("in:inbox")
    box.add("in:spam", make_detail("s1", labels=["SPAM"], internal_date=1_000))

    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())

    assert [email.id for email in result.emails] == ["s1"]
    assert result.emails[0].label is Label.SPAM
    assert result.failed_partitions == ["INBOX"]
    assert result.status == "partial"


async def test_failed_message_is_dropped_without_affecting_siblings(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    for message_id in ("m1", "m2", "m3"):
        box.add("in:inbox", make_detail(message_id, internal_date=1_000))
    box.failing_ids.add("m2")
    box.details["m3"] = {"payload": {"headers": []}}

    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())

    assert [email.id for email in result.emails] == ["m1"]
    assert result.dropped == 2


async def test_revoked_credential_yields_empty_failed_result(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    box.fail_authorize = True
    box.add("in:inbox", make_detail("m1"))

    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())

    assert result.emails == []
    assert result.status == "failed"
    assert "revoked" in result.error
    assert result.failed_partitions == ["INBOX", "IMPORTANT", "SPAM"]
    assert not [call for call in provider.calls if call[0] == "list"]


async def test_refreshed_credential_is_returned(provider: FakeProvider) -> None:
    provider.mailbox("a@x.com").refreshed_token = "token-2"

    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())

    assert result.credential is not None
    assert result.credential["token"] == "token-2"


async def test_unchanged_credential_is_not_returned(provider: FakeProvider) -> None:
    result = await AccountFetcher(provider, PARTITIONS).fetch(_account())
    assert result.credential is None


async def test_max_results_is_passed_to_listing(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    for index in range(5):
        box.add("in:inbox", make_detail(f"m{index}", internal_date=index))

    result = await AccountFetcher(provider, PARTITIONS[:1], max_results=2).fetch(_account())

    assert sorted(email.id for email in result.emails) == ["m0", "m1"]


def test_dedupe_keeps_first_partition() -> None:
    refs = [MessageRef("a", "INBOX"), MessageRef("b", "SPAM"), MessageRef("a", "IMPORTANT")]
    assert dedupe(refs) == [MessageRef("a", "INBOX"), MessageRef("b", "SPAM")]


async def test_detail_retrievals_overlap(provider: FakeProvider) -> None:
    box = provider.mailbox("a@x.com")
    box.add("in:inbox", make_detail("m1", internal_date=1_000))
    box.add("in:inbox", make_detail("m2", internal_date=2_000))
    barrier = threading.Barrier(2, timeout=5)
    original = provider.get_message

    def get_message(handle, message_id):
        # Each retrieval waits for its sibling; a serialized fetcher would time out.
        barrier.wait()
        return original(handle, message_id)

    provider.get_message = get_message

    result = await AccountFetcher(provider, PARTITIONS, detail_concurrency=2).fetch(_account())

    assert sorted(email.id for email in result.emails) == ["m1", "m2"]
    assert result.dropped == 0
