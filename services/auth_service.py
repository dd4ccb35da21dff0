from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from services.gmail_service import SCOPES, GmailService
from utils.config import AppConfig

LOGGER = logging.getLogger(__name__)
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class AuthService:
    """Exchange OAuth2 authorization codes for Gmail credentials."""

    def __init__(self, config: AppConfig, gmail: GmailService):
        if not config.oauth_configured:
            raise ValueError(
                "GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URI must be set"
            )
        self._config = config
        self._gmail = gmail

    def _flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self._config.redirect_uri],
            }
        }
        # The callback builds a new flow, so no PKCE verifier can be carried over.
        return Flow.from_client_config(
            client_config,
            scopes=list(SCOPES),
            redirect_uri=self._config.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange(self, code: str) -> Tuple[str, Dict[str, Any]]:
        """Return the authenticated address and its serialized credential."""

        flow = self._flow()
        flow.fetch_token(code=code)
        creds: Credentials = flow.credentials
        address = self._gmail.get_profile_address(creds)
        LOGGER.info("Authorized Gmail account %s", address)
        return address, json.loads(creds.to_json())


def load_token_file(token_file: Path) -> Dict[str, Any]:
    """Read a cached authorized-user token written by a previous OAuth flow."""

    LOGGER.debug("Loading cached credential from %s", token_file)
    return json.loads(token_file.read_text(encoding="utf-8"))
