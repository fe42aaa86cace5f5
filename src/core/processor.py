"""Core polling cycle.

This module is integration-agnostic. It only relies on ports for feed
transport, storage, and mail, so the same cycle runs against real adapters
or test fakes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from core.errors import FeedError
from core.feed_parser import parse
from core.keywords import Keyword, match_entries
from core.models import CycleReport, FeedFailure, Match, Source, Subscriber
from core.notifications import NotificationPipeline
from core.ports import FeedFetcherPort

LOGGER = logging.getLogger(__name__)


class FeedProcessor:
    """Runs one fetch, parse, match, notify, and commit pass per call."""

    def __init__(
        self,
        sources: Iterable[Source],
        keywords: Iterable[Keyword],
        subscribers: Iterable[Subscriber],
        fetcher: FeedFetcherPort,
        pipeline: NotificationPipeline,
    ) -> None:
        self._sources = list(sources)
        self._keywords = list(keywords)
        self._subscribers = list(subscribers)
        self._fetcher = fetcher
        self._pipeline = pipeline

    async def _fetch(self, source: Source) -> bytes:
        LOGGER.info("Checking url: %s", source.url)
        return await self._fetcher.fetch(source.url)

    def _scan(self, source: Source, payload: bytes) -> List[Match]:
        entries = parse(payload)
        matches = match_entries(entries, self._keywords)
        LOGGER.debug("%s: %s entries, %s matches", source.name, len(entries), len(matches))
        return matches

    async def run_cycle(self) -> CycleReport:
        """Process every source once and notify subscribers of new matches.

        A feed that fails to fetch, parse, or expose items is recorded in the
        report and skipped; the remaining feeds still notify.
        """

        report = CycleReport(sources_checked=len(self._sources))

        payloads = await asyncio.gather(
            *(self._fetch(source) for source in self._sources),
            return_exceptions=True,
        )

        matches: List[Match] = []
        for source, payload in zip(self._sources, payloads):
            if isinstance(payload, BaseException):
                if not isinstance(payload, FeedError):
                    raise payload
                self._record_failure(report, source, payload)
                continue
            try:
                matches.extend(self._scan(source, payload))
            except FeedError as exc:
                self._record_failure(report, source, exc)

        report.matches = len(matches)
        report.results = await self._pipeline.notify(matches, self._subscribers)
        report.committed, report.commit_errors = self._pipeline.commit(report.results)

        LOGGER.info(
            "Cycle complete: sources=%s, failed_sources=%s, matches=%s, sent=%s, "
            "already_notified=%s, failed=%s, committed=%s",
            report.sources_checked,
            len(report.failures),
            report.matches,
            report.sent,
            report.already_notified,
            report.failed,
            report.committed,
        )
        return report

    @staticmethod
    def _record_failure(report: CycleReport, source: Source, error: FeedError) -> None:
        LOGGER.warning("Skipping feed %s: %s", source.name, error)
        report.failures.append(FeedFailure(source=source, error=error))
