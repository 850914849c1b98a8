# ABOUTME: Completeness scoring for book, author, and edition metadata on a 0-100 scale.
# ABOUTME: Pure functions over a fixed weight table; unloaded relations count as absent.

from metasource.metadata.types import Author, AuthorMetadata, Book, Edition

DEFAULT_MINIMUM_QUALITY_SCORE = 50

_MAX_SCORE = 100

# Book weights. The raw sum exceeds 100 and is clamped, so title, author,
# identifier, release date, and cover alone reach the maximum.
_BOOK_WEIGHTS: dict[str, int] = {
    "title": 20,
    "author": 20,
    "identifier": 20,
    "release_date": 20,
    "cover": 20,
    "overview": 10,
    "publisher": 5,
    "page_count": 5,
    "language": 5,
    "genres": 5,
    "links": 5,
    "series_links": 5,
    "ratings": 5,
}

# Author weights (sum 100).
_AUTHOR_WEIGHTS: dict[str, int] = {
    "name": 25,
    "identifier": 15,
    "overview": 15,
    "images": 15,
    "born": 10,
    "genres": 5,
    "hometown": 5,
    "aliases": 5,
    "links": 5,
}

# Edition weights (sum 100). ASIN counts for less than ISBN-13 when ISBN-13 is missing.
_EDITION_WEIGHTS: dict[str, int] = {
    "title": 20,
    "identifier": 20,
    "isbn13": 20,
    "asin": 15,
    "release_date": 5,
    "publisher": 5,
    "page_count": 5,
    "format": 5,
    "images": 5,
    "overview": 5,
    "ratings": 5,
    "links": 3,
    "language": 2,
}


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def _has_votes(ratings: object) -> bool:
    return ratings is not None and getattr(ratings, "votes", 0) > 0


def _clamp(score: int) -> int:
    return max(0, min(_MAX_SCORE, score))


def book_fields_present(book: Book) -> set[str]:
    """Names of the weighted book fields that are populated.

    Only materialized relations are inspected. The edition considered is the
    first monitored edition, else the first edition.
    """
    present: set[str] = set()
    edition = book.selected_edition()

    if _has_text(book.title):
        present.add("title")
    if book.author_name is not None:
        present.add("author")
    if _has_text(book.foreign_book_id) or (
        edition is not None and (_has_text(edition.isbn13) or _has_text(edition.asin))
    ):
        present.add("identifier")
    if book.release_date is not None or (edition is not None and edition.release_date):
        present.add("release_date")
    if book.genres:
        present.add("genres")
    if book.links:
        present.add("links")
    if book.series_links.has_value:
        present.add("series_links")
    if _has_votes(book.ratings):
        present.add("ratings")

    if edition is not None:
        if edition.images:
            present.add("cover")
        if _has_text(edition.overview):
            present.add("overview")
        if _has_text(edition.publisher):
            present.add("publisher")
        if edition.page_count and edition.page_count > 0:
            present.add("page_count")
        if _has_text(edition.language):
            present.add("language")

    return present


def calculate_book_score(book: Book | None) -> int:
    """Score how complete a book record is. Returns an int in [0, 100]."""
    if book is None:
        return 0
    return _clamp(sum(_BOOK_WEIGHTS[name] for name in book_fields_present(book)))


def _author_fields_present(author: Author) -> set[str]:
    present: set[str] = set()
    meta: AuthorMetadata | None = author.metadata.get()

    if _has_text(author.display_name):
        present.add("name")
    if _has_text(author.foreign_author_id) or (
        meta is not None and _has_text(meta.foreign_author_id)
    ):
        present.add("identifier")

    if meta is None:
        return present

    if _has_text(meta.overview):
        present.add("overview")
    if meta.images:
        present.add("images")
    if meta.born is not None:
        present.add("born")
    if meta.genres:
        present.add("genres")
    if _has_text(meta.hometown):
        present.add("hometown")
    if meta.aliases:
        present.add("aliases")
    if meta.links:
        present.add("links")
    return present


def calculate_author_score(author: Author | None) -> int:
    """Score how complete an author record is. Returns an int in [0, 100]."""
    if author is None:
        return 0
    return _clamp(sum(_AUTHOR_WEIGHTS[name] for name in _author_fields_present(author)))


def calculate_edition_score(edition: Edition | None) -> int:
    """Score how complete an edition record is. Returns an int in [0, 100]."""
    if edition is None:
        return 0

    score = 0
    if _has_text(edition.title):
        score += _EDITION_WEIGHTS["title"]
    if _has_text(edition.foreign_edition_id):
        score += _EDITION_WEIGHTS["identifier"]
    if _has_text(edition.isbn13):
        score += _EDITION_WEIGHTS["isbn13"]
    elif _has_text(edition.asin):
        score += _EDITION_WEIGHTS["asin"]
    if edition.release_date is not None:
        score += _EDITION_WEIGHTS["release_date"]
    if _has_text(edition.publisher):
        score += _EDITION_WEIGHTS["publisher"]
    if edition.page_count and edition.page_count > 0:
        score += _EDITION_WEIGHTS["page_count"]
    if _has_text(edition.format):
        score += _EDITION_WEIGHTS["format"]
    if edition.images:
        score += _EDITION_WEIGHTS["images"]
    if _has_text(edition.overview):
        score += _EDITION_WEIGHTS["overview"]
    if _has_votes(edition.ratings):
        score += _EDITION_WEIGHTS["ratings"]
    if edition.links:
        score += _EDITION_WEIGHTS["links"]
    if _has_text(edition.language):
        score += _EDITION_WEIGHTS["language"]
    return _clamp(score)


def is_quality_acceptable(score: int, threshold: int = DEFAULT_MINIMUM_QUALITY_SCORE) -> bool:
    """Whether a score meets the acceptance threshold."""
    return score >= threshold
