"""Feed document parsing and item location (core domain).

Feeds vary in dialect: RSS 2.0 nests items under a ``channel`` element while
RSS 1.0 style documents list them directly under the root. Parsing is lenient
so slightly broken markup still yields entries.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Iterator, List, Literal, Optional

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag
from lxml import etree

from core.errors import NoEntriesFound, ParseError
from core.models import Entry

LOGGER = logging.getLogger(__name__)

ITEM_TAG = "item"
CHANNEL_TAG = "channel"


@dataclass(frozen=True)
class ParsedFeed:
    """Where the item list was found, and the items themselves."""

    root_tag: str
    layout: Literal["root", "channel"]
    items: List[Tag]


def local_name(tag: Tag) -> str:
    """Lower-cased tag name without any namespace prefix."""

    return tag.name.rsplit(":", 1)[-1].lower()


def _child_tags(tag: Tag, name: str) -> Iterator[Tag]:
    for child in tag.children:
        if isinstance(child, Tag) and local_name(child) == name:
            yield child


def _first_child(tag: Tag, name: str) -> Optional[Tag]:
    return next(_child_tags(tag, name), None)


def load_document(raw: bytes) -> Tag:
    """Parse raw bytes and return the single top-level element."""

    try:
        soup = BeautifulSoup(raw, "xml")
    except (ParserRejectedMarkup, etree.LxmlError) as exc:
        raise ParseError(f"Unable to parse feed: {exc}") from exc

    root = next((child for child in soup.children if isinstance(child, Tag)), None)
    if root is None:
        raise ParseError("Feed document has no root element")
    return root


def locate_items(root: Tag) -> ParsedFeed:
    """Find the item list directly under the root, else under its channel."""

    root_tag = local_name(root)
    items = list(_child_tags(root, ITEM_TAG))
    if items:
        return ParsedFeed(root_tag=root_tag, layout="root", items=items)

    channel = _first_child(root, CHANNEL_TAG)
    if channel is not None:
        items = list(_child_tags(channel, ITEM_TAG))
        if items:
            return ParsedFeed(root_tag=root_tag, layout="channel", items=items)

    raise NoEntriesFound(f"Unable to read items for feed <{root_tag}>")


def _text(item: Tag, name: str) -> Optional[str]:
    child = _first_child(item, name)
    if child is None:
        return None
    return child.get_text().strip()


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def build_entry(item: Tag) -> Entry:
    """Build an Entry; titles are folded onto one line."""

    link = _text(item, "link")
    if not link:
        LOGGER.debug("Feed item without a link: %s", _text(item, "title"))
    return Entry(
        title=_collapse_whitespace(_text(item, "title") or ""),
        link=link or "",
        description=_text(item, "description"),
        raw=item,
    )


def parse(raw: bytes) -> List[Entry]:
    """Parse a feed payload into entries, whatever its dialect."""

    parsed = locate_items(load_document(raw))
    return [build_entry(item) for item in parsed.items]
