# ABOUTME: Parsing functions for Open Library API JSON responses.
# ABOUTME: Converts OL-specific data structures into Book, Edition, and Author records.

import re
from datetime import date, datetime
from typing import Any

from metasource.metadata.types import (
    Author,
    AuthorMetadata,
    Book,
    Edition,
    Link,
    MediaCover,
    Relation,
)

_COVERS_BASE_URL = "https://covers.openlibrary.org"
_OL_BASE = "https://openlibrary.org"
_MAX_GENRES = 10

_YEAR_RE = re.compile(r"\b(\d{4})\b")
_ISBN_STRIP_RE = re.compile(r"[\s-]")
_DATE_FORMATS = ("%Y-%m-%d", "%d %B %Y", "%B %d, %Y", "%b %d, %Y", "%B %Y", "%b %Y")


def parse_date(text: str | None) -> date | None:
    """Parse the free-form dates Open Library uses ("1983", "5 January 1932", ...).

    Falls back to January 1st of the first four-digit year found.
    """
    if not text:
        return None
    text = text.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    match = _YEAR_RE.search(text)
    if match:
        return date(int(match.group(1)), 1, 1)
    return None


def isbn10_to_isbn13(isbn10: str) -> str | None:
    """Convert an ISBN-10 to ISBN-13, or return None if it is malformed."""
    digits = _ISBN_STRIP_RE.sub("", isbn10)
    if len(digits) != 10 or not digits[:9].isdigit():
        return None
    core = "978" + digits[:9]
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(core))
    return core + str((10 - total % 10) % 10)


def pick_isbn13(isbns: list[str]) -> str | None:
    """Pick the first ISBN-13 from a mixed list, converting an ISBN-10 if needed."""
    cleaned = [_ISBN_STRIP_RE.sub("", isbn) for isbn in isbns]
    for isbn in cleaned:
        if len(isbn) == 13 and isbn.isdigit():
            return isbn
    for isbn in cleaned:
        converted = isbn10_to_isbn13(isbn)
        if converted:
            return converted
    return None


def build_cover_url(cover_id: int, kind: str = "b", size: str = "L") -> str:
    """Build an Open Library cover image URL for a cover id.

    Args:
        cover_id: Numeric cover (or author photo) id.
        kind: "b" for book covers, "a" for author photos.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_COVERS_BASE_URL}/{kind}/id/{cover_id}-{size}.jpg"


def _key_tail(key: str) -> str:
    """'/works/OL456W' -> 'OL456W'."""
    return key.rstrip("/").rsplit("/", 1)[-1]


def parse_description(value: Any) -> str | None:
    """Extract text from an OL description or bio field.

    Handles the OL quirk where the value can be either a plain string
    or a dict with {"type": ..., "value": "actual text"}.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("value")
    return None


def parse_edition(data: dict[str, Any]) -> Edition:
    """Parse an ISBN or edition endpoint response into an Edition."""
    isbns = list(data.get("isbn_13", [])) + list(data.get("isbn_10", []))
    publishers = data.get("publishers", [])

    language = None
    languages = data.get("languages", [])
    if languages:
        language = _key_tail(languages[0].get("key", "")) or None

    key = data.get("key")
    images = [
        MediaCover(url=build_cover_url(cover_id))
        for cover_id in data.get("covers", [])
        if isinstance(cover_id, int) and cover_id > 0
    ]

    return Edition(
        foreign_edition_id=_key_tail(key) if key else None,
        title=data.get("title"),
        isbn13=pick_isbn13(isbns),
        overview=parse_description(data.get("description")),
        format=data.get("physical_format"),
        publisher=publishers[0] if publishers else None,
        page_count=data.get("number_of_pages"),
        language=language,
        release_date=parse_date(data.get("publish_date")),
        images=images,
        links=[Link(url=f"{_OL_BASE}{key}", name="Open Library")] if key else [],
    )


def parse_works(data: dict[str, Any]) -> Book:
    """Parse a Works endpoint response into a Book with no relations loaded.

    Author keys are returned separately by parse_works_author_keys so the
    provider can decide whether to resolve them.
    """
    key = data.get("key")
    return Book(
        title=data.get("title"),
        foreign_book_id=_key_tail(key) if key else None,
        release_date=parse_date(data.get("first_publish_date")),
        genres=list(data.get("subjects", []))[:_MAX_GENRES],
        links=[Link(url=f"{_OL_BASE}{key}", name="Open Library")] if key else [],
    )


def parse_works_author_keys(data: dict[str, Any]) -> list[str]:
    """Author keys from a Works response, stored as [{author: {key: "/authors/..."}}]."""
    keys: list[str] = []
    for entry in data.get("authors", []):
        key = entry.get("author", {}).get("key", "")
        if key:
            keys.append(key)
    return keys


def parse_author(data: dict[str, Any]) -> AuthorMetadata:
    """Parse an Author endpoint response into AuthorMetadata."""
    key = data.get("key")
    photos = [p for p in data.get("photos", []) if isinstance(p, int) and p > 0]
    links = [
        Link(url=link["url"], name=link.get("title"))
        for link in data.get("links", [])
        if isinstance(link, dict) and link.get("url")
    ]
    return AuthorMetadata(
        foreign_author_id=_key_tail(key) if key else None,
        name=data.get("name") or data.get("personal_name"),
        overview=parse_description(data.get("bio")),
        born=parse_date(data.get("birth_date")),
        died=parse_date(data.get("death_date")),
        aliases=list(data.get("alternate_names", [])),
        images=[MediaCover(url=build_cover_url(p, kind="a"), cover_type="poster") for p in photos],
        links=links,
    )


def author_from_metadata(meta: AuthorMetadata) -> Author:
    return Author(
        name=meta.name,
        foreign_author_id=meta.foreign_author_id,
        metadata=Relation.loaded(meta),
    )


def parse_search_results(data: dict[str, Any]) -> list[Book]:
    """Parse an Open Library Search API response into a list of Books.

    Each doc carries work-level fields plus a flattened view of its editions;
    the first ISBN, publisher, and language are folded into a single edition.
    """
    results: list[Book] = []

    for doc in data.get("docs", []):
        key = doc.get("key")
        year = doc.get("first_publish_year")

        author_names = doc.get("author_name", [])
        author_keys = doc.get("author_key", [])
        author: Relation[AuthorMetadata] = Relation.not_loaded()
        if author_names:
            author = Relation.loaded(
                AuthorMetadata(
                    name=author_names[0],
                    foreign_author_id=author_keys[0] if author_keys else None,
                )
            )

        publishers = doc.get("publisher", [])
        languages = doc.get("language", [])
        cover_id = doc.get("cover_i")
        edition = Edition(
            title=doc.get("title"),
            isbn13=pick_isbn13(doc.get("isbn", [])),
            publisher=publishers[0] if publishers else None,
            language=languages[0] if languages else None,
            page_count=doc.get("number_of_pages_median"),
            images=[MediaCover(url=build_cover_url(cover_id))] if cover_id else [],
        )

        results.append(
            Book(
                title=doc.get("title"),
                foreign_book_id=_key_tail(key) if key else None,
                release_date=date(year, 1, 1) if isinstance(year, int) else None,
                genres=list(doc.get("subject", []))[:_MAX_GENRES],
                links=[Link(url=f"{_OL_BASE}{key}", name="Open Library")] if key else [],
                author_metadata=author,
                editions=Relation.loaded([edition]),
            )
        )

    return results


def parse_author_search_results(data: dict[str, Any]) -> list[Author]:
    """Parse an Open Library author search response into Authors."""
    authors: list[Author] = []
    for doc in data.get("docs", []):
        meta = AuthorMetadata(
            foreign_author_id=doc.get("key"),
            name=doc.get("name"),
            born=parse_date(doc.get("birth_date")),
            died=parse_date(doc.get("death_date")),
            aliases=list(doc.get("alternate_names", [])),
            genres=list(doc.get("top_subjects", []))[:_MAX_GENRES],
        )
        authors.append(author_from_metadata(meta))
    return authors
