# ABOUTME: Open Library metadata provider implementation.
# ABOUTME: Searches openlibrary.org by ISBN, title/author, or work/author id and returns records.

import logging
import re
from typing import Any

from metasource.metadata.health import ProviderHealthStatus
from metasource.metadata.http import HttpClient, MetadataFetchError
from metasource.metadata.openlibrary_parser import (
    author_from_metadata,
    parse_author,
    parse_author_search_results,
    parse_edition,
    parse_search_results,
    parse_works,
    parse_works_author_keys,
)
from metasource.metadata.provider import Capability, RateLimitInfo
from metasource.metadata.types import Author, AuthorMetadata, Book, Edition, Relation

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"
_SEARCH_LIMIT = 5
_EDITIONS_LIMIT = 10

# Matches a colon followed by a space and remaining text (subtitle pattern).
_SUBTITLE_RE = re.compile(r"\s*:\s+.+$")
_ISBN_STRIP_RE = re.compile(r"[\s-]")


def _strip_subtitle(title: str) -> str | None:
    """Remove subtitle from a title string (text after ": ").

    Returns the stripped title, or None if no subtitle was found or
    stripping would produce an identical or empty string.
    """
    stripped = _SUBTITLE_RE.sub("", title).strip()
    if stripped and stripped != title.strip():
        return stripped
    return None


def _key_path(provider_id: str, collection: str) -> str:
    """Accept 'OL45W', '/works/OL45W', or a full URL path and return '/works/OL45W'."""
    tail = provider_id.strip().rstrip("/").rsplit("/", 1)[-1]
    return f"/{collection}/{tail}"


class OpenLibraryProvider:
    """Metadata provider backed by the Open Library API.

    Supports ISBN lookup (most precise), title/author search (broader), and
    direct work and author lookups by Open Library id. HTTP failures on the
    primary request raise MetadataFetchError so the caller can record them;
    failures on follow-up enrichment requests only leave the related data
    unloaded.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        priority: int = 1,
        enabled: bool = True,
    ) -> None:
        self._http = http_client
        self._priority = priority
        self._enabled = enabled

    @property
    def name(self) -> str:
        return "openlibrary"

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def capabilities(self) -> Capability:
        return (
            Capability.BOOK_SEARCH
            | Capability.ISBN_LOOKUP
            | Capability.BOOK_INFO
            | Capability.AUTHOR_SEARCH
            | Capability.AUTHOR_INFO
            | Capability.COVER_IMAGES
        )

    def get_rate_limit_info(self) -> RateLimitInfo:
        # Open Library asks for roughly one request per second without a key.
        return RateLimitInfo(max_requests=100)

    def get_health_status(self) -> ProviderHealthStatus:
        return ProviderHealthStatus()

    async def search_for_new_book(self, title: str, author: str | None = None) -> list[Book]:
        """Search Open Library by title and optional author.

        If the initial search returns no results and the title contains a
        subtitle (text after ": "), retries with the subtitle stripped.
        """
        books = await self._search(title, author)
        if not books:
            stripped = _strip_subtitle(title)
            if stripped:
                logger.debug("No results for %r, retrying as %r", title, stripped)
                books = await self._search(stripped, author)
        return books

    async def search_by_isbn(self, isbn: str) -> list[Book]:
        """Look up a book by ISBN via the Open Library ISBN endpoint.

        Follows up with works and author endpoints to fill in the work-level
        record. Returns a single-element list, or an empty list when Open
        Library does not know the ISBN.
        """
        clean_isbn = _ISBN_STRIP_RE.sub("", isbn)
        try:
            data = await self._http.get(f"{_OL_BASE}/isbn/{clean_isbn}.json")
        except MetadataFetchError as exc:
            if exc.status_code == 404:
                return []
            raise

        edition = parse_edition(data)
        book = await self._book_for_edition(edition, data)
        return [book]

    async def search_by_asin(self, asin: str) -> list[Book]:
        """Open Library does not index ASINs."""
        return []

    async def search_by_identifier(self, identifier_type: str, identifier: str) -> list[Book]:
        kind = identifier_type.strip().lower()
        if kind == "isbn":
            return await self.search_by_isbn(identifier)
        if kind in ("openlibrary", "olid", "id"):
            book = await self.get_book_info(identifier)
            return [book] if book is not None else []
        logger.debug("Unsupported identifier type for %s: %s", self.name, identifier_type)
        return []

    async def get_book_info(self, provider_id: str) -> Book | None:
        """Fetch a work with its authors and editions by Open Library work id."""
        works_key = _key_path(provider_id, "works")
        try:
            works_data = await self._http.get(f"{_OL_BASE}{works_key}.json")
        except MetadataFetchError as exc:
            if exc.status_code == 404:
                return None
            raise

        book = parse_works(works_data)
        book.author_metadata = await self._load_authors(parse_works_author_keys(works_data))
        book.editions = await self._load_editions(works_key)
        return book

    async def search_for_new_author(self, name: str) -> list[Author]:
        params = {"q": name, "limit": str(_SEARCH_LIMIT)}
        data = await self._http.get(f"{_OL_BASE}/search/authors.json", params=params)
        return parse_author_search_results(data)

    async def get_author_info(self, provider_id: str) -> Author | None:
        author_key = _key_path(provider_id, "authors")
        try:
            data = await self._http.get(f"{_OL_BASE}{author_key}.json")
        except MetadataFetchError as exc:
            if exc.status_code == 404:
                return None
            raise
        return author_from_metadata(parse_author(data))

    async def _search(self, title: str, author: str | None = None) -> list[Book]:
        """Execute a single Open Library search query."""
        params: dict[str, str] = {"title": title, "limit": str(_SEARCH_LIMIT)}
        if author:
            params["author"] = author
        data = await self._http.get(f"{_OL_BASE}/search.json", params=params)
        return parse_search_results(data)

    async def _book_for_edition(self, edition: Edition, edition_data: dict[str, Any]) -> Book:
        """Build the work-level Book around an edition fetched on its own."""
        book = Book(title=edition.title, foreign_edition_id=edition.foreign_edition_id)

        works = edition_data.get("works", [])
        works_key = works[0].get("key", "") if works else ""
        author_keys = [e.get("key", "") for e in edition_data.get("authors", [])]
        if works_key:
            try:
                works_data = await self._http.get(f"{_OL_BASE}{works_key}.json")
            except MetadataFetchError as exc:
                logger.debug("Works lookup failed for %s: %s", works_key, exc)
            else:
                book = parse_works(works_data)
                book.foreign_edition_id = edition.foreign_edition_id
                author_keys = author_keys or parse_works_author_keys(works_data)

        book.title = book.title or edition.title
        book.release_date = book.release_date or edition.release_date
        book.author_metadata = await self._load_authors([k for k in author_keys if k])
        edition.monitored = True
        book.editions = Relation.loaded([edition])
        return book

    async def _load_authors(self, author_keys: list[str]) -> Relation[AuthorMetadata]:
        """Resolve the first author that can be fetched.

        Returns an unloaded relation when no author could be fetched, and an
        empty loaded relation when the record lists no authors at all.
        """
        if not author_keys:
            return Relation.loaded(None)
        for author_key in author_keys:
            try:
                data = await self._http.get(f"{_OL_BASE}{author_key}.json")
            except MetadataFetchError as exc:
                logger.debug("Author lookup failed for %s: %s", author_key, exc)
                continue
            return Relation.loaded(parse_author(data))
        return Relation.not_loaded()

    async def _load_editions(self, works_key: str) -> Relation[list[Edition]]:
        params = {"limit": str(_EDITIONS_LIMIT)}
        try:
            data = await self._http.get(f"{_OL_BASE}{works_key}/editions.json", params=params)
        except MetadataFetchError as exc:
            logger.debug("Editions lookup failed for %s: %s", works_key, exc)
            return Relation.not_loaded()
        return Relation.loaded([parse_edition(entry) for entry in data.get("entries", [])])
