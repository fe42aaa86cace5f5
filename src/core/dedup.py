"""Deduplication helpers (core domain)."""

from __future__ import annotations

from core.models import Match, Subscriber


def notification_key(subscriber: Subscriber, match: Match) -> str:
    """Return the deterministic dedup key for one notification obligation.

    The key is a plain concatenation of email, item link, and keyword so the
    same notification maps to the same record across restarts.
    """

    return f"{subscriber.email}{match.entry.link}{match.keyword}"
