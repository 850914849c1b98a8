# ABOUTME: Unit tests for the record model dataclasses and the tri-state Relation.
# ABOUTME: Validates defaults, relation states, and derived properties on Book and Author.

from metasource.metadata.types import (
    Author,
    AuthorMetadata,
    Book,
    Edition,
    Relation,
    RelationState,
)


class TestRelation:
    """Tests for the tri-state Relation type."""

    def test_default_is_not_loaded(self) -> None:
        """A fresh relation has never been loaded."""
        relation: Relation[str] = Relation()
        assert relation.state is RelationState.NOT_LOADED
        assert relation.has_value is False
        assert relation.get() is None

    def test_loaded_none_is_empty(self) -> None:
        """Loading None yields an empty relation, distinct from not-loaded."""
        relation: Relation[str] = Relation.loaded(None)
        assert relation.is_loaded is True
        assert relation.state is RelationState.EMPTY

    def test_loaded_empty_list_is_empty(self) -> None:
        """An empty collection counts as loaded-empty."""
        relation: Relation[list[int]] = Relation.loaded([])
        assert relation.state is RelationState.EMPTY
        assert relation.get(default=[1]) == [1]

    def test_loaded_value(self) -> None:
        """A loaded non-empty value is returned by get()."""
        relation = Relation.loaded("Frank Herbert")
        assert relation.state is RelationState.LOADED
        assert relation.has_value is True
        assert relation.get() == "Frank Herbert"

    def test_not_loaded_hides_stale_value(self) -> None:
        """A value on an unloaded relation is never exposed."""
        relation = Relation(value="stale", is_loaded=False)
        assert relation.get() is None


class TestBook:
    """Tests for Book derived properties."""

    def test_minimal_construction(self) -> None:
        """A Book can be created with just a title and has unloaded relations."""
        book = Book(title="Dune")
        assert book.title == "Dune"
        assert book.genres == []
        assert book.editions.state is RelationState.NOT_LOADED
        assert book.author_metadata.state is RelationState.NOT_LOADED
        assert book.series_links.state is RelationState.NOT_LOADED

    def test_author_name_from_loaded_relation(self) -> None:
        """author_name reads the name from a loaded author relation."""
        book = Book(title="Dune", author_metadata=Relation.loaded(AuthorMetadata(name="Herbert")))
        assert book.author_name == "Herbert"

    def test_author_name_none_when_blank(self) -> None:
        """A whitespace-only author name counts as missing."""
        book = Book(title="Dune", author_metadata=Relation.loaded(AuthorMetadata(name="  ")))
        assert book.author_name is None

    def test_selected_edition_prefers_monitored(self) -> None:
        """The first monitored edition is selected over earlier ones."""
        first = Edition(title="Paperback")
        monitored = Edition(title="Hardcover", monitored=True)
        book = Book(title="Dune", editions=Relation.loaded([first, monitored]))
        assert book.selected_edition() is monitored

    def test_selected_edition_falls_back_to_first(self) -> None:
        """Without a monitored edition the first one is selected."""
        first = Edition(title="Paperback")
        book = Book(title="Dune", editions=Relation.loaded([first, Edition(title="Audio")]))
        assert book.selected_edition() is first

    def test_selected_edition_none_when_unloaded(self) -> None:
        """No edition is selected when editions were never loaded."""
        assert Book(title="Dune").selected_edition() is None


class TestAuthor:
    """Tests for Author derived properties."""

    def test_display_name_prefers_metadata(self) -> None:
        """display_name uses the metadata name when loaded."""
        author = Author(
            name="F. Herbert",
            metadata=Relation.loaded(AuthorMetadata(name="Frank Herbert")),
        )
        assert author.display_name == "Frank Herbert"

    def test_display_name_falls_back_to_name(self) -> None:
        """display_name falls back to the record's own name."""
        assert Author(name="Frank Herbert").display_name == "Frank Herbert"
