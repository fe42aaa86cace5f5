"""Static configuration for feedmailer.

All user-editable settings (sources, keywords, subscribers, mail server, dedup)
live in a single JSON file for quick edits without touching Python. Secrets can
be kept out of that file in a .env next to it.
"""

from __future__ import annotations

import json
import os
from typing import Optional

from dotenv import load_dotenv

from core.config import DedupConfig, EmailerConfig, FetcherConfig, Settings
from core.models import Source, Subscriber

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the dedup database unless dedup.db_path says otherwise.
DB_PATH = os.path.join(PROJECT_ROOT, "mailed.db")

# FEEDMAILER_CONFIG points at an alternative config file.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

DEFAULT_POLL_MINUTES = 15


def _load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_sources(raw_sources: list[dict]) -> tuple[Source, ...]:
    """Keep enabled sources with a URL, labelled by alias when one is set."""

    sources: list[Source] = []
    for entry in raw_sources:
        url = entry.get("url")
        if not url:
            continue
        if not entry.get("enabled", True):
            continue
        sources.append(Source(url=url, name=entry.get("alias") or url))
    return tuple(sources)


def _normalize_subscribers(raw_subscribers: list[dict]) -> tuple[Subscriber, ...]:
    return tuple(
        Subscriber(email=entry["email"])
        for entry in raw_subscribers
        if entry.get("email")
    )


def _build_emailer(raw: dict) -> EmailerConfig:
    host = raw.get("host")
    if not host:
        raise ValueError("emailer.host is required")

    auth = raw.get("auth", {}) or {}
    secure = bool(raw.get("secure", False))
    # Environment wins over config.json so passwords need not be committed.
    user = os.getenv("SMTP_USER") or auth.get("user")
    password = os.getenv("SMTP_PASSWORD") or auth.get("password")

    return EmailerConfig(
        host=host,
        port=int(raw.get("port", 465 if secure else 587)),
        secure=secure,
        sender=raw.get("from") or user or "",
        user=user,
        password=password,
        max_connections=int(raw.get("max_connections", 5)),
    )


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


def load_settings(path: Optional[str] = None) -> Settings:
    """Read config.json (and .env) into an immutable Settings object."""

    load_dotenv()
    config_path = path or os.getenv("FEEDMAILER_CONFIG") or CONFIG_PATH
    raw = _load_json_config(config_path)

    # pollMinutes is accepted for configs written for earlier releases.
    poll_minutes = raw.get("poll_minutes", raw.get("pollMinutes", DEFAULT_POLL_MINUTES))

    fetcher = raw.get("fetcher", {})
    dedup = raw.get("dedup", {})

    return Settings(
        title=raw.get("title", "feedmailer"),
        poll_minutes=float(poll_minutes),
        sources=_normalize_sources(raw.get("sources", [])),
        keywords=tuple(raw.get("keywords", [])),
        subscribers=_normalize_subscribers(raw.get("subscribers", [])),
        emailer=_build_emailer(raw.get("emailer", {})),
        fetcher=FetcherConfig(
            timeout_seconds=float(fetcher.get("timeout_seconds", 30)),
            user_agent=fetcher.get("user_agent", "feedmailer/0.1"),
        ),
        dedup=DedupConfig(
            db_path=_resolve_path(dedup["db_path"]) if dedup.get("db_path") else DB_PATH,
            ttl_days=int(dedup.get("ttl_days", 0)),
        ),
        logging=raw.get("logging", {}),
    )
