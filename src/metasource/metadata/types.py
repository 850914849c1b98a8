# ABOUTME: Record model for book, edition, and author metadata returned by providers.
# ABOUTME: Relations that may not be materialized are modelled with the tri-state Relation type.

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class RelationState(Enum):
    """Materialization state of a related record or collection."""

    NOT_LOADED = "not_loaded"
    EMPTY = "empty"
    LOADED = "loaded"


@dataclass(frozen=True)
class Relation(Generic[T]):
    """A reference to related data that a provider may or may not have fetched.

    Inspecting a Relation never fetches anything. A relation that was never
    loaded is distinct from one that was loaded and turned out to be empty,
    and both are distinct from a relation holding a value.
    """

    value: T | None = None
    is_loaded: bool = False

    @classmethod
    def not_loaded(cls) -> "Relation[T]":
        return cls()

    @classmethod
    def loaded(cls, value: T | None) -> "Relation[T]":
        return cls(value=value, is_loaded=True)

    @property
    def state(self) -> RelationState:
        if not self.is_loaded:
            return RelationState.NOT_LOADED
        if self.value is None:
            return RelationState.EMPTY
        if isinstance(self.value, (list, tuple, dict, set)) and not self.value:
            return RelationState.EMPTY
        return RelationState.LOADED

    @property
    def has_value(self) -> bool:
        return self.state is RelationState.LOADED

    def get(self, default: T | None = None) -> T | None:
        """Return the value if loaded and non-empty, else the default."""
        return self.value if self.has_value else default


@dataclass
class MediaCover:
    url: str
    cover_type: str = "cover"


@dataclass
class Link:
    url: str
    name: str | None = None


@dataclass
class Ratings:
    votes: int = 0
    value: float = 0.0


@dataclass
class SeriesLink:
    series_title: str
    position: str | None = None


@dataclass
class Edition:
    """A specific published edition of a book (format, ISBN, publisher)."""

    foreign_edition_id: str | None = None
    title: str | None = None
    isbn13: str | None = None
    asin: str | None = None
    overview: str | None = None
    format: str | None = None
    publisher: str | None = None
    page_count: int | None = None
    language: str | None = None
    release_date: date | None = None
    images: list[MediaCover] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    ratings: Ratings | None = None
    monitored: bool = False


@dataclass
class AuthorMetadata:
    """Descriptive metadata about an author, shared by Book and Author records."""

    foreign_author_id: str | None = None
    name: str | None = None
    overview: str | None = None
    hometown: str | None = None
    born: date | None = None
    died: date | None = None
    aliases: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    images: list[MediaCover] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    ratings: Ratings | None = None


@dataclass
class Book:
    """Work-level book metadata as returned by a provider.

    Editions, the author link, and series links are relations: a provider may
    return a book without having fetched them.
    """

    title: str | None = None
    foreign_book_id: str | None = None
    foreign_edition_id: str | None = None
    release_date: date | None = None
    genres: list[str] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    ratings: Ratings | None = None
    related_books: list[str] = field(default_factory=list)
    author_metadata: Relation[AuthorMetadata] = field(default_factory=Relation)
    editions: Relation[list[Edition]] = field(default_factory=Relation)
    series_links: Relation[list[SeriesLink]] = field(default_factory=Relation)

    @property
    def author_name(self) -> str | None:
        """Name from the author link, or None if the link is not materialized."""
        meta = self.author_metadata.get()
        if meta is None or not meta.name or not meta.name.strip():
            return None
        return meta.name

    def selected_edition(self) -> Edition | None:
        """The first monitored edition, else the first edition, else None."""
        editions = self.editions.get()
        if not editions:
            return None
        for edition in editions:
            if edition.monitored:
                return edition
        return editions[0]


@dataclass
class Author:
    """An author record; descriptive fields live in the metadata relation."""

    name: str | None = None
    foreign_author_id: str | None = None
    metadata: Relation[AuthorMetadata] = field(default_factory=Relation)
    books: Relation[list[Book]] = field(default_factory=Relation)
    series: Relation[list[SeriesLink]] = field(default_factory=Relation)

    @property
    def display_name(self) -> str | None:
        meta = self.metadata.get()
        if meta is not None and meta.name and meta.name.strip():
            return meta.name
        return self.name
