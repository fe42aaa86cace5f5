"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.models import Source, Subscriber


@dataclass(frozen=True)
class EmailerConfig:
    """SMTP connection settings consumed by the mailer adapter."""

    host: str
    port: int
    secure: bool
    sender: str
    user: Optional[str] = None
    password: Optional[str] = None
    max_connections: int = 5


@dataclass(frozen=True)
class FetcherConfig:
    timeout_seconds: float = 30.0
    user_agent: str = "feedmailer/0.1"


@dataclass(frozen=True)
class DedupConfig:
    """Dedup store settings. ``ttl_days`` of 0 keeps records forever."""

    db_path: str
    ttl_days: int = 0


@dataclass(frozen=True)
class Settings:
    """Pre-validated settings for one process lifetime."""

    title: str
    poll_minutes: float
    sources: tuple[Source, ...]
    keywords: tuple[str, ...]
    subscribers: tuple[Subscriber, ...]
    emailer: EmailerConfig
    fetcher: FetcherConfig
    dedup: DedupConfig
    logging: dict = field(default_factory=dict, compare=False)
