from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from models.email_message import EmailMessage
from services.label_classifier import classify

LOGGER = logging.getLogger(__name__)

DEFAULT_SUBJECT = "No Subject"
DEFAULT_SENDER = "Unknown Sender"
_SENDER_PATTERN = re.compile(r"^(.+?)\s*<(.+)>$")
_QUOTES = "\"'"


class MalformedMessageError(ValueError):
    """Raised when a message detail has no usable identifier."""


def normalize(account: str, detail: Mapping[str, Any]) -> EmailMessage:
    """Convert a Gmail ``users.messages.get`` payload into an ``EmailMessage``."""

    message_id = detail.get("id") if isinstance(detail, Mapping) else None
    if not message_id:
        raise MalformedMessageError("Message detail has no id")

    payload = detail.get("payload")
    if not isinstance(payload, Mapping):
        payload = {}
    headers = _header_values(payload.get("headers"))
    subject = _first(headers, "subject") or DEFAULT_SUBJECT
    sender = _first(headers, "from") or DEFAULT_SENDER
    sender_name, sender_email = parse_sender(sender)
    labels = detail.get("labelIds")
    if not isinstance(labels, (list, tuple)):
        labels = []
    labels = [label for label in labels if isinstance(label, str)]
    snippet = detail.get("snippet")

    return EmailMessage(
        id=str(message_id),
        account=account,
        subject=subject,
        sender=sender,
        sender_name=sender_name,
        sender_email=sender_email,
        date=resolve_date(headers, detail.get("internalDate")),
        snippet=snippet if isinstance(snippet, str) else "",
        label=classify(labels),
        is_read="UNREAD" not in labels,
        is_spam="SPAM" in labels,
    )


def parse_sender(value: str) -> Tuple[str, str]:
    """Split ``Display Name <address>`` into name and address."""

    match = _SENDER_PATTERN.match(value.strip())
    if not match:
        return value, value
    name = match.group(1).strip().strip(_QUOTES).strip()
    address = match.group(2).strip()
    return name or address, address


def resolve_date(headers: Mapping[str, List[str]], internal_date: Any = None) -> str:
    """Resolve the display timestamp, falling back from header to receipt time to now."""

    steps: Sequence[Callable[[], Optional[datetime]]] = (
        lambda: _parse_header_date(_first(headers, "date")),
        lambda: _parse_received(_first(headers, "received")),
        lambda: _parse_internal_date(internal_date),
    )
    for step in steps:
        try:
            resolved = step()
            text = format_timestamp(resolved) if resolved is not None else None
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            LOGGER.debug("Date fallback step failed: %s", exc)
            continue
        if text is not None:
            return text
    return format_timestamp(datetime.now(timezone.utc))


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_header_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return parsedate_to_datetime(value)


def _parse_received(value: Optional[str]) -> Optional[datetime]:
    if not value or ";" not in value:
        return None
    return _parse_header_date(value.rsplit(";", 1)[-1].strip())


def _parse_internal_date(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def _header_values(headers: Any) -> Dict[str, List[str]]:
    mapped: Dict[str, List[str]] = {}
    if not isinstance(headers, (list, tuple)):
        return mapped
    for header in headers:
        if not isinstance(header, Mapping):
            continue
        name = header.get("name")
        value = header.get("value")
        if not isinstance(name, str) or not name:
            continue
        mapped.setdefault(name.lower(), []).append(value if isinstance(value, str) else "")
    return mapped


def _first(headers: Mapping[str, List[str]], name: str) -> Optional[str]:
    values = headers.get(name)
    return values[0] if values else None
