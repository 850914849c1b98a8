# ABOUTME: MetadataProvider protocol defining the contract for external metadata sources.
# ABOUTME: Any metadata API (Open Library, Google Books, etc.) implements this async contract.

from dataclasses import dataclass
from datetime import timedelta
from enum import Flag, auto
from typing import Protocol, runtime_checkable

from metasource.metadata.health import ProviderHealthStatus
from metasource.metadata.types import Author, Book


class Capability(Flag):
    """Operations a provider advertises support for."""

    NONE = 0
    AUTHOR_SEARCH = auto()
    BOOK_SEARCH = auto()
    ISBN_LOOKUP = auto()
    ASIN_LOOKUP = auto()
    SERIES_INFO = auto()
    LIST_INFO = auto()
    COVER_IMAGES = auto()
    BOOK_INFO = auto()
    AUTHOR_INFO = auto()


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate limits a provider advertises. Read for reporting only, never enforced here."""

    max_requests: int = 100
    time_window: timedelta = timedelta(minutes=5)
    requires_api_key: bool = False
    supports_authentication: bool = False
    authenticated_max_requests: int | None = None

    def describe(self) -> str:
        seconds = int(self.time_window.total_seconds())
        text = f"{self.max_requests}/{seconds}s"
        if self.authenticated_max_requests is not None:
            text += f" ({self.authenticated_max_requests} authenticated)"
        if self.requires_api_key:
            text += " [api key]"
        return text


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for asynchronous metadata lookup services.

    Implementations only need to do real work for the operations named in
    `capabilities`; the aggregator never calls the others.
    """

    @property
    def name(self) -> str: ...

    @property
    def priority(self) -> int: ...

    @property
    def enabled(self) -> bool: ...

    @property
    def capabilities(self) -> Capability: ...

    def get_rate_limit_info(self) -> RateLimitInfo: ...

    def get_health_status(self) -> ProviderHealthStatus: ...

    async def search_for_new_book(self, title: str, author: str | None = None) -> list[Book]: ...

    async def search_by_isbn(self, isbn: str) -> list[Book]: ...

    async def search_by_asin(self, asin: str) -> list[Book]: ...

    async def search_by_identifier(self, identifier_type: str, identifier: str) -> list[Book]: ...

    async def get_book_info(self, provider_id: str) -> Book | None: ...

    async def search_for_new_author(self, name: str) -> list[Author]: ...

    async def get_author_info(self, provider_id: str) -> Author | None: ...
