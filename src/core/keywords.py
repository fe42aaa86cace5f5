"""Keyword compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, List

from core.models import Entry, Match


@dataclass(frozen=True)
class Keyword:
    """Compiled keyword used by the pipeline."""

    text: str
    pattern: re.Pattern


def build_keywords(raw_keywords: Iterable[str]) -> List[Keyword]:
    """Compile configured keywords as case-insensitive patterns.

    Keywords are treated as regular expressions, so a plain word matches as a
    substring while operators can still write alternations. Invalid patterns
    fail here, at load time, rather than once per entry.
    """

    compiled: List[Keyword] = []
    for raw in raw_keywords:
        if not raw:
            continue
        try:
            pattern = re.compile(raw, re.IGNORECASE)
        except re.error as exc:
            raise ValueError(f"Invalid keyword pattern {raw!r}: {exc}") from exc
        compiled.append(Keyword(text=raw, pattern=pattern))
    return compiled


def match_entry(entry: Entry, keywords: Iterable[Keyword]) -> List[Match]:
    """Return one Match per keyword found in the entry description.

    Entries without a description never match. Each keyword is its own
    notification trigger, so hits are not merged.
    """

    if entry.description is None:
        return []

    return [
        Match(keyword=keyword.text, entry=entry)
        for keyword in keywords
        if keyword.pattern.search(entry.description)
    ]


def match_entries(entries: Iterable[Entry], keywords: Iterable[Keyword]) -> List[Match]:
    keywords = list(keywords)
    matches: List[Match] = []
    for entry in entries:
        matches.extend(match_entry(entry, keywords))
    return matches
