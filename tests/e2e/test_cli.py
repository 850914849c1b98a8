# ABOUTME: End-to-end tests for the metasource CLI.
# ABOUTME: Invokes CLI commands via Click's CliRunner against a registry of fake providers.

from click.testing import CliRunner

from metasource.cli import cli
from metasource.core.registry import ProviderRegistry
from metasource.metadata.provider import Capability
from tests.fixtures.providers import FakeProvider, complete_book, make_author, make_book

ISBN = "9780441172719"


def _registry(*providers: FakeProvider) -> ProviderRegistry:
    registry = ProviderRegistry()
    for provider in providers:
        registry.register(provider)
    return registry


def _invoke(registry: ProviderRegistry, args: list[str]):
    return CliRunner().invoke(cli, args, obj=registry)


class TestCliRoot:
    """E2e tests for the root command group."""

    def test_help_lists_commands(self) -> None:
        """--help lists every subcommand."""
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("providers", "book", "author", "search", "search-authors"):
            assert command in result.output


class TestCliProviders:
    """E2e tests for `metasource providers`."""

    def test_lists_providers_in_priority_order(self) -> None:
        registry = _registry(FakeProvider("beta", 2), FakeProvider("alpha", 1))
        result = _invoke(registry, ["providers"])
        assert result.exit_code == 0
        assert result.output.index("alpha") < result.output.index("beta")

    def test_reports_health(self) -> None:
        """Health recorded in the registry is shown."""
        registry = _registry(FakeProvider("alpha", 1))
        registry.record_success("alpha", 10.0)
        result = _invoke(registry, ["providers"])
        assert "healthy" in result.output

    def test_empty_registry(self) -> None:
        result = _invoke(ProviderRegistry(), ["providers"])
        assert result.exit_code == 0
        assert "No providers registered" in result.output


class TestCliBook:
    """E2e tests for `metasource book`."""

    def test_book_by_isbn(self) -> None:
        """A successful lookup prints the record and its source."""
        provider = FakeProvider("alpha", 1, results={"search_by_isbn": [complete_book()]})
        result = _invoke(_registry(provider), ["book", ISBN])
        assert result.exit_code == 0
        assert "Dune" in result.output
        assert "Frank Herbert" in result.output
        assert "alpha" in result.output

    def test_markup_in_record_text_is_printed_literally(self) -> None:
        """Brackets in provider data are shown as text, not parsed as rich markup."""
        book = complete_book("Dune [/bold] Deluxe", genres=["[red]SF"])
        provider = FakeProvider("alpha", 1, results={"search_by_isbn": [book]})
        result = _invoke(_registry(provider), ["book", ISBN])
        assert result.exit_code == 0
        assert "Dune [/bold] Deluxe" in result.output
        assert "[red]SF" in result.output

    def test_book_by_provider_id(self) -> None:
        provider = FakeProvider("alpha", 1, results={"get_book_info": complete_book()})
        result = _invoke(_registry(provider), ["book", "OL893415W", "--type", "id"])
        assert result.exit_code == 0
        assert provider.calls == [("get_book_info", ("OL893415W",))]

    def test_not_found_exits_nonzero(self) -> None:
        result = _invoke(_registry(FakeProvider("alpha", 1)), ["book", ISBN])
        assert result.exit_code == 1
        assert "No results found" in result.output

    def test_all_failed_shows_failures(self) -> None:
        """Provider failures are listed and the command fails."""
        broken = FakeProvider("alpha", 1, results={"search_by_isbn": RuntimeError("offline")})
        result = _invoke(_registry(broken), ["book", ISBN])
        assert result.exit_code == 1
        assert "offline" in result.output
        assert "All providers failed" in result.output

    def test_merge_strategy_names_sources(self) -> None:
        registry = _registry(
            FakeProvider("alpha", 1, results={"search_by_isbn": [complete_book()]}),
            FakeProvider("beta", 2, results={"search_by_isbn": [make_book("Dune", isbn13=ISBN)]}),
        )
        result = _invoke(registry, ["book", ISBN, "--strategy", "merge"])
        assert result.exit_code == 0
        assert "alpha, beta" in result.output

    def test_quality_threshold_flag(self) -> None:
        """A threshold above every answer's score fails the first-acceptable lookup."""
        registry = _registry(FakeProvider("alpha", 1, results={"search_by_isbn": [make_book()]}))
        result = _invoke(registry, ["book", ISBN, "--min-quality", "90"])
        assert result.exit_code == 1
        assert "minimum quality" in result.output

    def test_invalid_option_is_usage_error(self) -> None:
        registry = _registry(FakeProvider("alpha", 1))
        result = _invoke(registry, ["book", ISBN, "--min-quality", "150"])
        assert result.exit_code == 2

    def test_no_capable_provider(self) -> None:
        registry = _registry(FakeProvider("alpha", 1, capabilities=Capability.AUTHOR_SEARCH))
        result = _invoke(registry, ["book", ISBN])
        assert result.exit_code == 1
        assert "No enabled provider" in result.output


class TestCliAuthor:
    """E2e tests for `metasource author`."""

    def test_author_by_name(self) -> None:
        author = make_author("Frank Herbert", foreign_author_id="OL79034A", overview="SF.")
        provider = FakeProvider("alpha", 1, results={"search_for_new_author": [author]})
        result = _invoke(_registry(provider), ["author", "Frank Herbert", "--type", "name"])
        assert result.exit_code == 0
        assert "Frank Herbert" in result.output
        assert "OL79034A" in result.output


class TestCliSearch:
    """E2e tests for `metasource search` and `metasource search-authors`."""

    def test_search_lists_results(self) -> None:
        books = [complete_book("Dune"), complete_book("Dune Messiah", "9780593098233")]
        provider = FakeProvider("alpha", 1, results={"search_for_new_book": books})
        result = _invoke(_registry(provider), ["search", "Dune", "--author", "Herbert"])
        assert result.exit_code == 0
        assert "Messiah" in result.output
        assert "2 result(s)" in result.output
        assert provider.calls == [("search_for_new_book", ("Dune", "Herbert"))]

    def test_search_list_escapes_markup(self) -> None:
        books = [complete_book("Notes [/i] on Dune")]
        provider = FakeProvider("alpha", 1, results={"search_for_new_book": books})
        result = _invoke(_registry(provider), ["search", "Dune"])
        assert result.exit_code == 0
        assert "[/i]" in result.output

    def test_search_no_results(self) -> None:
        result = _invoke(_registry(FakeProvider("alpha", 1)), ["search", "Nothing"])
        assert result.exit_code == 1
        assert "No results found" in result.output

    def test_search_authors(self) -> None:
        author = make_author("Frank Herbert", foreign_author_id="OL79034A", overview="SF.")
        provider = FakeProvider("alpha", 1, results={"search_for_new_author": [author]})
        result = _invoke(_registry(provider), ["search-authors", "Herbert"])
        assert result.exit_code == 0
        assert "Herbert" in result.output
        assert "1 result(s)" in result.output
