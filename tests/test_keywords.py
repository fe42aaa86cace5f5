from __future__ import annotations

import pytest

from core.keywords import build_keywords, match_entries, match_entry
from core.models import Entry, Match


def _entry(description, link: str = "https://example.com/1") -> Entry:
    return Entry(title="Title", link=link, description=description)


def test_each_matching_keyword_yields_its_own_match() -> None:
    keywords = build_keywords(["outage", "breach", "maintenance"])
    matches = match_entry(_entry("Outage after a data BREACH"), keywords)
    assert [match.keyword for match in matches] == ["outage", "breach"]


def test_entry_without_description_never_matches() -> None:
    keywords = build_keywords(["outage"])
    assert match_entry(_entry(None), keywords) == []


def test_keywords_are_regular_expressions() -> None:
    keywords = build_keywords([r"degraded (performance|service)"])
    assert match_entry(_entry("Degraded Service in eu-west"), keywords)
    assert not match_entry(_entry("degraded mood"), keywords)


def test_empty_keywords_are_skipped() -> None:
    assert [k.text for k in build_keywords(["", "outage"])] == ["outage"]


def test_invalid_pattern_fails_at_build_time() -> None:
    with pytest.raises(ValueError):
        build_keywords(["(unclosed"])


def test_match_entries_flattens_a_feed() -> None:
    keywords = build_keywords(["outage"])
    entries = [
        _entry("outage one", "https://example.com/1"),
        _entry("all good", "https://example.com/2"),
        _entry("outage two", "https://example.com/3"),
    ]
    matches = match_entries(entries, keywords)
    assert [m.entry.link for m in matches] == ["https://example.com/1", "https://example.com/3"]


def test_match_equality_uses_keyword_and_link() -> None:
    first = Match(keyword="outage", entry=_entry("a"))
    same_link = Match(keyword="outage", entry=Entry(title="Other", link=first.entry.link, description="b"))
    assert first == same_link
    assert hash(first) == hash(same_link)
    assert first != Match(keyword="breach", entry=first.entry)
