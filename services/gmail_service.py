from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from services.providers import MailboxProvider

LOGGER = logging.getLogger(__name__)
SCOPES: Iterable[str] = ("https://www.googleapis.com/auth/gmail.readonly",)
METADATA_HEADERS = ["Subject", "From", "Date", "Received"]


class GmailService(MailboxProvider):
    """Gmail API operations for the fetch pipeline.

    A new API client is built for every call from the credential passed in, so
    concurrent calls for different accounts never share a client or an HTTP
    connection.
    """

    def __init__(self, user_id: str = "me"):
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    def authorize(self, credential: Mapping[str, Any]) -> Credentials:
        creds = Credentials.from_authorized_user_info(dict(credential), SCOPES)
        if not creds.valid and creds.refresh_token:
            LOGGER.info("Refreshing expired Gmail token")
            creds.refresh(Request())
        return creds

    def list_messages(self, handle: Credentials, selector: str, max_results: int) -> List[str]:
        try:
            response = (
                self._client(handle)
                .users()
                .messages()
                .list(userId=self.user_id, q=selector, maxResults=max_results)
                .execute()
            )
        except HttpError as exc:
            LOGGER.error("Failed to list messages for %r: %s", selector, exc)
            raise
        messages = response.get("messages", [])
        LOGGER.debug("Listed %s message ids for %r", len(messages), selector)
        return [message["id"] for message in messages if message.get("id")]

    def get_message(self, handle: Credentials, message_id: str) -> Dict[str, Any]:
        return (
            self._client(handle)
            .users()
            .messages()
            .get(
                userId=self.user_id,
                id=message_id,
                format="metadata",
                metadataHeaders=METADATA_HEADERS,
            )
            .execute()
        )

    def get_profile_address(self, handle: Credentials) -> str:
        profile = self._client(handle).users().getProfile(userId=self.user_id).execute()
        return profile["emailAddress"]

    def export_credential(self, handle: Credentials) -> Dict[str, Any]:
        return json.loads(handle.to_json())

    def _client(self, handle: Credentials):
        return build("gmail", "v1", credentials=handle, cache_discovery=False)
