"""Application entry point for the feedmailer poller."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings as settings_module
from adapters.http_fetcher import HttpFeedFetcher
from adapters.smtp_mailer import SmtpMailer
from adapters.sqlite_storage import SQLiteDedupStore
from core.config import Settings
from core.keywords import build_keywords
from core.notifications import NotificationPipeline
from core.processor import FeedProcessor

NAME = "FEEDMAILER"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(settings: Settings) -> list[str]:
    """Secrets to mask: the SMTP password plus any listed environment values."""

    redact_cfg = (settings.logging or {}).get("redact", {})
    if not redact_cfg.get("enabled", True):
        return []
    values = [settings.emailer.password] if settings.emailer.password else []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(settings: Settings) -> None:
    config = settings.logging or {}
    if not config.get("enabled", True):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(settings)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/feedmailer.log")
        if not os.path.isabs(path):
            path = os.path.join(settings_module.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _open_store(settings: Settings) -> SQLiteDedupStore:
    logger = logging.getLogger(__name__)
    store = SQLiteDedupStore(settings.dedup.db_path)
    store.init_db()
    if settings.dedup.ttl_days > 0:
        removed = store.cleanup(settings.dedup.ttl_days)
        logger.info("Dedup cleanup removed %s records", removed)
    logger.info("Dedup store %s holds %s records", settings.dedup.db_path, store.count())
    return store


def build_processor(settings: Settings, store, fetcher, mailer) -> FeedProcessor:
    """Wire the core processor from settings and the selected adapters."""

    keywords = build_keywords(settings.keywords)
    pipeline = NotificationPipeline(title=settings.title, store=store, mailer=mailer)
    return FeedProcessor(
        sources=settings.sources,
        keywords=keywords,
        subscribers=settings.subscribers,
        fetcher=fetcher,
        pipeline=pipeline,
    )


async def _run_cycle_safely(processor: FeedProcessor) -> None:
    try:
        await processor.run_cycle()
    except Exception:
        # A broken cycle must not stop the poller; the next one starts on time.
        logging.getLogger(__name__).exception("Error while running polling cycle")


async def _poll_forever(processor: FeedProcessor, poll_minutes: float) -> None:
    """Run cycles back to back, one per interval, never overlapping."""

    interval = poll_minutes * 60
    while True:
        started = time.monotonic()
        await _run_cycle_safely(processor)
        elapsed = time.monotonic() - started
        await asyncio.sleep(max(0.0, interval - elapsed))


async def _serve(settings: Settings, once: bool) -> None:
    logger = logging.getLogger(__name__)
    store = _open_store(settings)
    fetcher = HttpFeedFetcher(settings.fetcher)
    mailer = SmtpMailer(settings.emailer)
    processor = build_processor(settings, store, fetcher, mailer)
    logger.info(
        "%s sources, %s keywords, %s subscribers loaded",
        len(settings.sources),
        len(settings.keywords),
        len(settings.subscribers),
    )

    try:
        if once:
            await _run_cycle_safely(processor)
        else:
            logger.info("Polling every %s minutes", settings.poll_minutes)
            await _poll_forever(processor, settings.poll_minutes)
    finally:
        await fetcher.aclose()


def _run(once: bool) -> None:
    _print_banner()
    settings = settings_module.load_settings()
    _configure_logging(settings)
    logging.getLogger(__name__).info("Starting feedmailer")
    try:
        asyncio.run(_serve(settings, once))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Stopped")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="feedmailer")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Poll feeds forever")
    subparsers.add_parser("once", help="Run a single polling cycle and exit")

    args = parser.parse_args(argv)
    _run(once=args.command == "once")


if __name__ == "__main__":
    main()
