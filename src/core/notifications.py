"""Notification fan-out, delivery, and dedup commit (core domain).

Every match is paired with every subscriber. A pair is delivered only when
its key is absent from the dedup store, and keys are written back in one
batch after all deliveries of the cycle are known. A failed delivery leaves
no record, so the next cycle retries it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from core.dedup import notification_key
from core.errors import MailError, StoreError
from core.models import (
    DeliveryOutcome,
    DeliveryResult,
    MailMessage,
    Match,
    Subscriber,
)
from core.ports import DedupStorePort, MailerPort

LOGGER = logging.getLogger(__name__)


def format_subject(title: str, match: Match) -> str:
    """Single-line subject; header values may not carry line breaks."""

    subject = f"{title} [{match.keyword}]: {match.entry.title}"
    return " ".join(subject.split())


def build_mail(title: str, match: Match, subscriber: Subscriber) -> MailMessage:
    """Create the mail for one (subscriber, match) pair. The body is the link."""

    return MailMessage(
        to=subscriber.email,
        subject=format_subject(title, match),
        text=match.entry.link,
    )


class NotificationPipeline:
    """Delivers unseen notifications and records the accepted ones."""

    def __init__(self, title: str, store: DedupStorePort, mailer: MailerPort) -> None:
        self._title = title
        self._store = store
        self._mailer = mailer

    async def notify_one(self, match: Match, subscriber: Subscriber) -> DeliveryResult:
        """Run dedup lookup and delivery for a single pair."""

        key = notification_key(subscriber, match)
        try:
            seen = self._store.get(key)
        except StoreError as exc:
            LOGGER.warning("Dedup lookup failed for %s: %s", subscriber.email, exc)
            return DeliveryResult(match, subscriber, key, DeliveryOutcome.FAILED, error=exc)

        if seen is not None:
            return DeliveryResult(match, subscriber, key, DeliveryOutcome.ALREADY_NOTIFIED)

        try:
            receipt = await self._mailer.send(build_mail(self._title, match, subscriber))
        except MailError as exc:
            LOGGER.warning(
                "Mail to %s failed for %s [%s]: %s",
                subscriber.email,
                match.entry.link,
                match.keyword,
                exc,
            )
            return DeliveryResult(match, subscriber, key, DeliveryOutcome.FAILED, error=exc)
        except Exception as exc:
            # Confined to this pair; the batch commit still runs.
            LOGGER.exception("Unexpected error mailing %s about %s", subscriber.email, match.entry.link)
            return DeliveryResult(match, subscriber, key, DeliveryOutcome.FAILED, error=exc)

        LOGGER.info("Notified %s about %s [%s]", subscriber.email, match.entry.link, match.keyword)
        return DeliveryResult(match, subscriber, key, DeliveryOutcome.SENT, receipt=receipt)

    async def notify(
        self,
        matches: Iterable[Match],
        subscribers: Iterable[Subscriber],
    ) -> List[DeliveryResult]:
        """Fan every match out to every subscriber, all pairs concurrently."""

        # The same item can appear in several feeds; one notification per key.
        unique_matches = list(dict.fromkeys(matches))
        subscribers = list(subscribers)
        pairs = [
            self.notify_one(match, subscriber)
            for match in unique_matches
            for subscriber in subscribers
        ]
        if not pairs:
            return []
        return list(await asyncio.gather(*pairs))

    def commit(self, results: Iterable[DeliveryResult]) -> tuple[int, int]:
        """Record accepted deliveries. Returns (written, failed) counts."""

        written = 0
        failed = 0
        for result in results:
            if result.outcome is not DeliveryOutcome.SENT:
                continue
            if result.receipt is None or not result.receipt.accepted:
                continue
            try:
                self._store.put(result.key, True)
            except StoreError:
                # The key stays unrecorded and is sent again next cycle.
                LOGGER.exception("Failed to record notification %s", result.key)
                failed += 1
                continue
            written += 1
        return written, failed
