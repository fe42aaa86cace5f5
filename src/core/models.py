"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any transport-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class Source:
    """A configured feed."""

    url: str
    name: str


@dataclass(frozen=True)
class Subscriber:
    email: str


@dataclass(frozen=True)
class Entry:
    """One parsed feed item. ``raw`` keeps the dialect-specific element."""

    title: str
    link: str
    description: Optional[str]
    raw: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, eq=False)
class Match:
    """A keyword hit on an entry, identified by (keyword, entry.link)."""

    keyword: str
    entry: Entry

    def _identity(self) -> tuple[str, str]:
        return (self.keyword, self.entry.link)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Match):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    text: str


@dataclass(frozen=True)
class MailReceipt:
    """Acceptance info returned by the mail transport."""

    accepted: tuple[str, ...]
    rejected: tuple[str, ...] = ()
    message_id: Optional[str] = None


class DeliveryOutcome(str, Enum):
    SENT = "sent"
    ALREADY_NOTIFIED = "already_notified"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one (subscriber, match) notification attempt."""

    match: Match
    subscriber: Subscriber
    key: str
    outcome: DeliveryOutcome
    receipt: Optional[MailReceipt] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class FeedFailure:
    source: Source
    error: Exception


@dataclass
class CycleReport:
    """Summary of one fetch-through-commit pass."""

    sources_checked: int = 0
    failures: list[FeedFailure] = field(default_factory=list)
    matches: int = 0
    results: list[DeliveryResult] = field(default_factory=list)
    committed: int = 0
    commit_errors: int = 0

    def _count(self, outcome: DeliveryOutcome) -> int:
        return sum(1 for result in self.results if result.outcome is outcome)

    @property
    def sent(self) -> int:
        return self._count(DeliveryOutcome.SENT)

    @property
    def already_notified(self) -> int:
        return self._count(DeliveryOutcome.ALREADY_NOTIFIED)

    @property
    def failed(self) -> int:
        return self._count(DeliveryOutcome.FAILED)
