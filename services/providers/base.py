from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping


class MailboxProvider(ABC):
    """Blocking mailbox API used by the fetch pipeline.

    Every call receives the account's credential handle explicitly; an
    implementation must not keep a client bound to one account between calls.
    """

    @abstractmethod
    def authorize(self, credential: Mapping[str, Any]) -> Any:
        """Build a private credential handle, refreshing it if it has expired."""
        raise NotImplementedError

    @abstractmethod
    def list_messages(self, handle: Any, selector: str, max_results: int) -> List[str]:
        """Return the ids of messages matching ``selector``."""
        raise NotImplementedError

    @abstractmethod
    def get_message(self, handle: Any, message_id: str) -> Dict[str, Any]:
        """Return the raw detail payload for one message."""
        raise NotImplementedError

    @abstractmethod
    def export_credential(self, handle: Any) -> Dict[str, Any]:
        """Serialize the handle back to the mapping stored in the registry."""
        raise NotImplementedError
