# ABOUTME: Field-by-field merging of records from several providers and search-result deduplication.
# ABOUTME: Scalars come from the highest-scoring source that has them; list fields are unioned.

import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, TypeVar

from metasource.metadata.scoring import calculate_author_score, calculate_book_score
from metasource.metadata.types import (
    Author,
    AuthorMetadata,
    Book,
    Edition,
    Link,
    MediaCover,
    Relation,
    SeriesLink,
)

R = TypeVar("R")

_ISBN_STRIP_RE = re.compile(r"[\s-]")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

_BOOK_LIST_FIELDS = ("genres", "links", "related_books")
_EDITION_LIST_FIELDS = ("images", "links")
_AUTHOR_METADATA_LIST_FIELDS = ("aliases", "genres", "images", "links")

# Identifier kinds that mean the same thing across providers. Foreign ids are
# provider-scoped, so a mismatch on them does not prove two records differ.
_UNIVERSAL_ID_KINDS = frozenset({"isbn", "asin"})


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and spaces from an ISBN for comparison."""
    return _ISBN_STRIP_RE.sub("", isbn).upper()


def normalize_title(title: str) -> str:
    """Casefold, drop punctuation, and collapse whitespace."""
    text = _PUNCTUATION_RE.sub(" ", title.casefold())
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_author(name: str) -> str:
    """Normalize 'Last, First' to 'First Last' and casefold."""
    name = name.strip()
    if "," in name:
        parts = [p.strip() for p in name.split(",", 1)]
        name = f"{parts[1]} {parts[0]}"
    return normalize_title(name)


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return bool(value)
    if isinstance(value, Relation):
        return value.has_value
    if isinstance(value, int | float):
        return value > 0
    votes = getattr(value, "votes", None)
    if votes is not None:
        return votes > 0
    return True


def _item_key(item: Any) -> Any:
    """Identity used when unioning list items."""
    if isinstance(item, str):
        return item.strip().casefold()
    if isinstance(item, (Link, MediaCover)):
        return item.url.strip().rstrip("/").casefold()
    if isinstance(item, SeriesLink):
        return (normalize_title(item.series_title), item.position)
    if isinstance(item, Book):
        return _book_key(item) or repr(item)
    return repr(item)


def _union(lists: list[list[Any]]) -> list[Any]:
    seen: set[Any] = set()
    result: list[Any] = []
    for items in lists:
        for item in items or []:
            key = _item_key(item)
            if key in seen:
                continue
            seen.add(key)
            result.append(item)
    return result


def _merge_fields(records: list[R], list_fields: tuple[str, ...], skip: tuple[str, ...] = ()) -> R:
    """Merge dataclass records given in precedence order.

    For every scalar field the first record with a populated value wins;
    list fields are unioned in precedence order. Fields in `skip` keep the
    first record's value.
    """
    base = records[0]
    changes: dict[str, Any] = {}
    for f in fields(base):  # type: ignore[arg-type]
        if f.name in skip:
            continue
        values = [getattr(record, f.name) for record in records]
        if f.name in list_fields:
            changes[f.name] = _union(values)
            continue
        for value in values:
            if _is_populated(value):
                changes[f.name] = value
                break
    return replace(base, **changes)  # type: ignore[type-var]


def _merge_relation(relations: list[Relation[Any]], merge_values: Any) -> Relation[Any]:
    """Merge relations in precedence order without materializing anything new."""
    values = [r.value for r in relations if r.has_value]
    if values:
        return Relation.loaded(merge_values(values))
    if any(r.is_loaded for r in relations):
        return Relation.loaded(None)
    return Relation.not_loaded()


def _edition_key(edition: Edition, position: str) -> tuple[str, str]:
    if edition.isbn13 and edition.isbn13.strip():
        return ("isbn", normalize_isbn(edition.isbn13))
    if edition.asin and edition.asin.strip():
        return ("asin", normalize_isbn(edition.asin))
    if edition.foreign_edition_id and edition.foreign_edition_id.strip():
        return ("id", edition.foreign_edition_id.strip())
    return ("position", position)


def _merge_editions(edition_lists: list[list[Edition]]) -> list[Edition]:
    groups: dict[tuple[str, str], list[Edition]] = {}
    for source, editions in enumerate(edition_lists):
        for position, edition in enumerate(editions):
            key = _edition_key(edition, f"{source}:{position}")
            groups.setdefault(key, []).append(edition)
    return [_merge_fields(group, _EDITION_LIST_FIELDS) for group in groups.values()]


def _merge_author_metadata_values(values: list[AuthorMetadata]) -> AuthorMetadata:
    return _merge_fields(values, _AUTHOR_METADATA_LIST_FIELDS)


def _by_score(records: list[R], score: Any) -> list[R]:
    # sorted() is stable, so equal scores keep the caller's priority order.
    return sorted(records, key=score, reverse=True)


def merge_book_metadata(books: list[Book]) -> Book | None:
    """Merge book records from several providers into one.

    Records are ranked by completeness score (ties keep the given order, which
    callers use for provider priority). Each field is taken from the
    highest-ranked record that has it; genres, links, related books, and series
    links are unioned; editions describing the same ISBN/ASIN/id are merged
    field by field.
    """
    books = [b for b in books if b is not None]
    if not books:
        return None
    ranked = _by_score(books, calculate_book_score)

    merged = _merge_fields(
        ranked,
        _BOOK_LIST_FIELDS,
        skip=("author_metadata", "editions", "series_links"),
    )
    merged.author_metadata = _merge_relation(
        [b.author_metadata for b in ranked], _merge_author_metadata_values
    )
    merged.editions = _merge_relation([b.editions for b in ranked], _merge_editions)
    merged.series_links = _merge_relation([b.series_links for b in ranked], _union)
    return merged


def merge_author_metadata(authors: list[Author]) -> Author | None:
    """Merge author records from several providers into one (see merge_book_metadata)."""
    authors = [a for a in authors if a is not None]
    if not authors:
        return None
    ranked = _by_score(authors, calculate_author_score)

    merged = _merge_fields(ranked, (), skip=("metadata", "books", "series"))
    merged.metadata = _merge_relation([a.metadata for a in ranked], _merge_author_metadata_values)
    merged.books = _merge_relation([a.books for a in ranked], _union)
    merged.series = _merge_relation([a.series for a in ranked], _union)
    return merged


def _book_identifiers(book: Book) -> set[tuple[str, str]]:
    ids: set[tuple[str, str]] = set()
    if book.foreign_book_id and book.foreign_book_id.strip():
        ids.add(("id", book.foreign_book_id.strip()))
    for edition in book.editions.get() or []:
        if edition.isbn13 and edition.isbn13.strip():
            ids.add(("isbn", normalize_isbn(edition.isbn13)))
        if edition.asin and edition.asin.strip():
            ids.add(("asin", normalize_isbn(edition.asin)))
    return ids


def _book_title_key(book: Book) -> tuple[str, str] | None:
    if not book.title or not book.title.strip():
        return None
    return (normalize_title(book.title), normalize_author(book.author_name or ""))


def _book_key(book: Book) -> Any:
    ids = sorted(_book_identifiers(book))
    return tuple(ids) if ids else _book_title_key(book)


@dataclass(eq=False)
class _Group:
    """One deduplicated search entry and every key seen for its members."""

    record: Any
    score: int
    ids: set[tuple[str, str]] = field(default_factory=set)
    title_keys: set[Any] = field(default_factory=set)

    def matches(self, ids: set[tuple[str, str]], title_key: Any) -> bool:
        ours = {i for i in self.ids if i[0] in _UNIVERSAL_ID_KINDS}
        theirs = {i for i in ids if i[0] in _UNIVERSAL_ID_KINDS}
        if ours & theirs:
            return True
        if {kind for kind, _ in ours} & {kind for kind, _ in theirs}:
            # Both sides carry a universal identifier and none of them agree,
            # so a shared provider-scoped id or title is a coincidence.
            return False
        if self.ids & ids:
            return True
        return title_key is not None and title_key in self.title_keys

    def absorb(
        self,
        record: Any,
        score: int,
        ids: set[tuple[str, str]],
        title_keys: set[Any],
        combine: Any,
    ) -> None:
        """Fold another copy of the same entry in; the higher score keeps its fields."""
        if score > self.score:
            self.record = combine(record, self.record)
            self.score = score
        else:
            self.record = combine(self.record, record)
        self.ids |= ids
        self.title_keys |= title_keys


def _union_list_fields(keeper: R, other: R, list_fields: tuple[str, ...]) -> R:
    changes = {
        name: _union([getattr(keeper, name), getattr(other, name)]) for name in list_fields
    }
    return replace(keeper, **changes)  # type: ignore[type-var]


def _dedupe(
    provider_results: list[list[R]],
    identifiers: Any,
    title_key: Any,
    score: Any,
    combine: Any,
) -> list[R]:
    groups: list[_Group] = []
    for records in provider_results:
        for record in records or []:
            if record is None:
                continue
            ids = identifiers(record)
            key = title_key(record)
            keys = {key} if key is not None else set()
            matching = [g for g in groups if g.matches(ids, key)]
            if not matching:
                groups.append(
                    _Group(record=record, score=score(record), ids=set(ids), title_keys=keys)
                )
                continue
            first, *rest = matching
            first.absorb(record, score(record), ids, keys, combine)
            # The record can link entries that looked unrelated until now.
            for other in rest:
                first.absorb(other.record, other.score, other.ids, other.title_keys, combine)
                groups.remove(other)
    return [g.record for g in groups]


def merge_search_results(provider_results: list[list[Book]]) -> list[Book]:
    """Deduplicate book search results gathered from several providers.

    Two books are the same when they share a normalized ISBN or ASIN. Books whose
    ISBNs (or ASINs) all differ stay apart even if a provider-scoped foreign id or
    the title matches; otherwise a shared foreign id, then normalized title plus
    author, decides. A book that matches several entries joins them into one.
    The higher-scoring copy is kept (ties keep the earlier, higher-priority
    copy) and the genres, links, and related books of both copies are unioned
    into it. Output keeps the order in which entries were first seen.
    """
    return _dedupe(
        provider_results,
        _book_identifiers,
        _book_title_key,
        calculate_book_score,
        lambda keeper, other: _union_list_fields(keeper, other, _BOOK_LIST_FIELDS),
    )


def _author_identifiers(author: Author) -> set[tuple[str, str]]:
    ids: set[tuple[str, str]] = set()
    meta = author.metadata.get()
    for foreign_id in (author.foreign_author_id, meta.foreign_author_id if meta else None):
        if foreign_id and foreign_id.strip():
            ids.add(("id", foreign_id.strip()))
    return ids


def _author_name_key(author: Author) -> str | None:
    name = author.display_name
    return normalize_author(name) if name and name.strip() else None


def _combine_authors(keeper: Author, other: Author) -> Author:
    keeper_meta = keeper.metadata.get()
    other_meta = other.metadata.get()
    if keeper_meta is None or other_meta is None:
        return keeper
    meta = _union_list_fields(keeper_meta, other_meta, _AUTHOR_METADATA_LIST_FIELDS)
    return replace(keeper, metadata=Relation.loaded(meta))


def merge_author_search_results(provider_results: list[list[Author]]) -> list[Author]:
    """Deduplicate author search results by foreign id, else by normalized name."""
    return _dedupe(
        provider_results,
        _author_identifiers,
        _author_name_key,
        calculate_author_score,
        _combine_authors,
    )
