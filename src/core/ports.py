"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for feed transport, dedup storage, and
mail delivery so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol

from core.models import MailMessage, MailReceipt


class FeedFetcherPort(Protocol):
    """Retrieves raw feed bytes, raising a FetchError subclass on failure."""

    async def fetch(self, url: str) -> bytes:
        ...


class DedupStorePort(Protocol):
    """Notification history. ``get`` returns None when the key is absent."""

    def get(self, key: str) -> Optional[bool]:
        ...

    def put(self, key: str, value: bool) -> None:
        ...


class MailerPort(Protocol):
    """Delivers one message, raising MailError on failure."""

    async def send(self, message: MailMessage) -> MailReceipt:
        ...
