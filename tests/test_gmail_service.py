from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from services import auth_service as auth_module
from services import gmail_service as gmail_module
from services.auth_service import AuthService
from services.gmail_service import METADATA_HEADERS, GmailService
from utils.config import AppConfig


@pytest.fixture
def gmail_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    client = MagicMock()
    monkeypatch.setattr(gmail_module, "build", MagicMock(return_value=client))
    return client


def test_list_messages_passes_query_and_limit(gmail_client: MagicMock) -> None:
    messages = gmail_client.users.return_value.messages.return_value
    messages.list.return_value.execute.return_value = {"messages": [{"id": "m1"}, {"id": "m2"}]}

    ids = GmailService().list_messages(object(), "in:spam", 30)

    assert ids == ["m1", "m2"]
    messages.list.assert_called_once_with(userId="me", q="in:spam", maxResults=30)


def test_list_messages_handles_empty_listing(gmail_client: MagicMock) -> None:
    messages = gmail_client.users.return_value.messages.return_value
    messages.list.return_value.execute.return_value = {"resultSizeEstimate": 0}
    assert GmailService().list_messages(object(), "in:inbox", 10) == []


def test_get_message_requests_metadata(gmail_client: MagicMock) -> None:
    messages = gmail_client.users.return_value.messages.return_value
    messages.get.return_value.execute.return_value = {"id": "m1"}

    assert GmailService().get_message(object(), "m1") == {"id": "m1"}
    messages.get.assert_called_once_with(
        userId="me", id="m1", format="metadata", metadataHeaders=METADATA_HEADERS
    )


def test_every_call_builds_a_client_for_its_credential(monkeypatch: pytest.MonkeyPatch) -> None:
    build = MagicMock()
    monkeypatch.setattr(gmail_module, "build", build)
    service = GmailService()
    first, second = object(), object()

    service.get_message(first, "m1")
    service.get_message(second, "m2")

    assert [call.kwargs["credentials"] for call in build.call_args_list] == [first, second]


def test_authorize_refreshes_expired_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    creds = MagicMock(valid=False, refresh_token="refresh")
    factory = MagicMock(return_value=creds)
    monkeypatch.setattr(gmail_module.Credentials, "from_authorized_user_info", factory)

    assert GmailService().authorize({"refresh_token": "refresh"}) is creds
    creds.refresh.assert_called_once()


def test_authorize_keeps_valid_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    creds = MagicMock(valid=True, refresh_token="refresh")
    monkeypatch.setattr(
        gmail_module.Credentials, "from_authorized_user_info", MagicMock(return_value=creds)
    )

    GmailService().authorize({"refresh_token": "refresh"})
    creds.refresh.assert_not_called()


def _config(**overrides) -> AppConfig:
    values = dict(
        client_id="id",
        client_secret="secret",
        redirect_uri="http://localhost:3000/auth/callback",
        frontend_url="http://localhost:3001",
        host="127.0.0.1",
        port=3000,
        log_dir=Path("logs"),
        log_level="INFO",
        max_results_per_partition=30,
        result_limit=100,
        detail_concurrency=10,
        cache_ttl_seconds=0,
        poll_interval_minutes=5,
    )
    values.update(overrides)
    return AppConfig(**values)


def test_auth_service_requires_client_config() -> None:
    with pytest.raises(ValueError):
        AuthService(_config(client_secret=None), GmailService())


def test_exchange_returns_profile_address_and_credential(monkeypatch: pytest.MonkeyPatch) -> None:
    flow = MagicMock()
    flow.credentials.to_json.return_value = '{"token": "t", "refresh_token": "r"}'
    from_client_config = MagicMock(return_value=flow)
    monkeypatch.setattr(auth_module.Flow, "from_client_config", from_client_config)
    gmail = MagicMock(spec=GmailService)
    gmail.get_profile_address.return_value = "me@example.com"

    address, credential = AuthService(_config(), gmail).exchange("code-123")

    assert address == "me@example.com"
    assert credential == {"token": "t", "refresh_token": "r"}
    flow.fetch_token.assert_called_once_with(code="code-123")
    assert from_client_config.call_args.kwargs["redirect_uri"] == "http://localhost:3000/auth/callback"
