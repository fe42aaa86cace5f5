"""Error taxonomy shared by the core and adapters.

Feed errors are isolated per source, store and mail errors per notification
pair. Anything outside this hierarchy is a bug and propagates.
"""

from __future__ import annotations


class FeedmailerError(Exception):
    """Base class for all expected pipeline failures."""


class FeedError(FeedmailerError):
    """A failure that excludes a single feed from the current cycle."""


class FetchError(FeedError):
    """The feed could not be retrieved."""


class UnsupportedScheme(FetchError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Non-http based URL: {url}")
        self.url = url


class TransportError(FetchError):
    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f"Transport error for {url}: {cause}")
        self.url = url
        self.cause = cause


class BadStatus(FetchError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Non-200 HTTP status code {status_code} for {url}")
        self.url = url
        self.status_code = status_code


class ParseError(FeedError):
    """The payload could not be read as a feed document."""


class NoEntriesFound(FeedError):
    """The document parsed but no item list could be located."""


class StoreError(FeedmailerError):
    """The dedup store failed for a reason other than a missing key."""


class MailError(FeedmailerError):
    """The mail transport rejected or failed to deliver a message."""
