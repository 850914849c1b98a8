# ABOUTME: Aggregation engine that fans out to registered providers and reconciles their answers.
# ABOUTME: Applies per-provider timeouts, records failures, scores results, and reports health.

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from metasource.core.merge import (
    merge_author_metadata,
    merge_author_search_results,
    merge_book_metadata,
    merge_search_results,
)
from metasource.core.options import (
    AggregatedResult,
    AggregationOptions,
    AggregationOutcome,
    AggregationStrategy,
)
from metasource.core.registry import ProviderRegistry
from metasource.errors import (
    MetasourceError,
    ProviderFailureError,
    ProviderNotFoundError,
    ProviderTimeoutError,
)
from metasource.metadata.provider import Capability, MetadataProvider
from metasource.metadata.scoring import (
    calculate_author_score,
    calculate_book_score,
    is_quality_acceptable,
)
from metasource.metadata.types import Author, Book

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[MetadataProvider], Awaitable[Any]]


@dataclass
class ProviderResponse(Generic[T]):
    """What one provider returned (or why it did not) within one request."""

    provider_name: str
    rank: int
    value: T | None = None
    error: MetasourceError | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _Answer(Generic[T]):
    response: ProviderResponse[T]
    score: int

    @property
    def name(self) -> str:
        return self.response.provider_name


def _first(values: list[T] | None) -> T | None:
    return values[0] if values else None


def _has_result(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, list):
        return bool(value)
    return True


def _describe_exception(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def _list_score(score: Callable[[Any], int]) -> Callable[[list[Any] | None], int]:
    def best(values: list[Any] | None) -> int:
        return max((score(v) for v in values or []), default=0)

    return best


def _book_lookup(identifier_type: str, identifier: str) -> tuple[Capability, Operation]:
    kind = identifier_type.strip().lower()

    if kind == "isbn":

        async def by_isbn(provider: MetadataProvider) -> Book | None:
            return _first(await provider.search_by_isbn(identifier))

        return Capability.ISBN_LOOKUP, by_isbn

    if kind == "asin":

        async def by_asin(provider: MetadataProvider) -> Book | None:
            return _first(await provider.search_by_asin(identifier))

        return Capability.ASIN_LOOKUP, by_asin

    if kind == "id":

        async def by_id(provider: MetadataProvider) -> Book | None:
            return await provider.get_book_info(identifier)

        return Capability.BOOK_INFO, by_id

    async def by_identifier(provider: MetadataProvider) -> Book | None:
        return _first(await provider.search_by_identifier(kind, identifier))

    return Capability.BOOK_SEARCH, by_identifier


def _author_lookup(identifier_type: str, identifier: str) -> tuple[Capability, Operation]:
    if identifier_type.strip().lower() == "name":

        async def by_name(provider: MetadataProvider) -> Author | None:
            return _first(await provider.search_for_new_author(identifier))

        return Capability.AUTHOR_SEARCH, by_name

    async def by_id(provider: MetadataProvider) -> Author | None:
        return await provider.get_author_info(identifier)

    return Capability.AUTHOR_INFO, by_id


class MetadataAggregator:
    """Answers metadata requests from the providers held by a registry.

    Strategies:
        PRIMARY_ONLY: ask only the registry's primary provider.
        FIRST_ACCEPTABLE: ask providers one at a time in priority order and
            take the first answer meeting the minimum quality score.
        BEST_QUALITY: ask providers concurrently and take the highest score,
            ties going to the higher-priority provider.
        MERGE: ask providers concurrently and merge every answer field by field.

    Provider errors and timeouts never propagate; they are recorded in the
    result's `failed_providers` and reported to the registry's health state.
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def get_book_metadata(
        self,
        identifier: str,
        identifier_type: str = "isbn",
        options: AggregationOptions | None = None,
    ) -> AggregatedResult[Book]:
        """Look up one book by ISBN, ASIN, provider id ("id"), or another identifier type."""
        capability, operation = _book_lookup(identifier_type, identifier)
        return await self._aggregate(
            f"book {identifier_type}={identifier}",
            capability,
            operation,
            options or AggregationOptions(),
            calculate_book_score,
            merge_book_metadata,
        )

    async def get_author_metadata(
        self,
        identifier: str,
        identifier_type: str = "id",
        options: AggregationOptions | None = None,
    ) -> AggregatedResult[Author]:
        """Look up one author by provider id, or by name when identifier_type is "name"."""
        capability, operation = _author_lookup(identifier_type, identifier)
        return await self._aggregate(
            f"author {identifier_type}={identifier}",
            capability,
            operation,
            options or AggregationOptions(),
            calculate_author_score,
            merge_author_metadata,
        )

    async def search_books(
        self,
        title: str,
        author: str | None = None,
        options: AggregationOptions | None = None,
    ) -> AggregatedResult[list[Book]]:
        """Search books across providers; each provider's list is scored by its best entry."""

        async def search(provider: MetadataProvider) -> list[Book]:
            return await provider.search_for_new_book(title, author)

        return await self._aggregate(
            f"book search title={title!r} author={author!r}",
            Capability.BOOK_SEARCH,
            search,
            options or AggregationOptions(),
            _list_score(calculate_book_score),
            merge_search_results,
        )

    async def search_authors(
        self,
        name: str,
        options: AggregationOptions | None = None,
    ) -> AggregatedResult[list[Author]]:
        """Search authors across providers; see search_books."""

        async def search(provider: MetadataProvider) -> list[Author]:
            return await provider.search_for_new_author(name)

        return await self._aggregate(
            f"author search name={name!r}",
            Capability.AUTHOR_SEARCH,
            search,
            options or AggregationOptions(),
            _list_score(calculate_author_score),
            merge_author_search_results,
        )

    @staticmethod
    def merge_book_metadata(books: list[Book]) -> Book | None:
        return merge_book_metadata(books)

    @staticmethod
    def merge_author_metadata(authors: list[Author]) -> Author | None:
        return merge_author_metadata(authors)

    @staticmethod
    def merge_search_results(provider_results: list[list[Book]]) -> list[Book]:
        return merge_search_results(provider_results)

    @staticmethod
    def merge_author_search_results(provider_results: list[list[Author]]) -> list[Author]:
        return merge_author_search_results(provider_results)

    def _select_providers(
        self, capability: Capability, options: AggregationOptions
    ) -> list[MetadataProvider]:
        if options.strategy is AggregationStrategy.PRIMARY_ONLY:
            primary = self._registry.get_primary_provider()
            if primary is None or capability not in primary.capabilities:
                return []
            return [primary]

        eligible = [
            p for p in self._registry.get_enabled_providers() if capability in p.capabilities
        ]
        return eligible[: options.max_providers]

    async def _aggregate(
        self,
        description: str,
        capability: Capability,
        operation: Operation,
        options: AggregationOptions,
        score: Callable[[Any], int],
        merge: Callable[[list[Any]], Any],
    ) -> AggregatedResult[Any]:
        result: AggregatedResult[Any] = AggregatedResult()
        providers = self._select_providers(capability, options)
        if not providers:
            logger.warning("No enabled provider supports %s", description)
            result.outcome = AggregationOutcome.NO_PROVIDERS
            return result

        logger.debug(
            "Aggregating %s with %s across %s",
            description,
            options.strategy.value,
            ", ".join(p.name for p in providers),
        )

        if options.strategy is AggregationStrategy.FIRST_ACCEPTABLE:
            responses = await self._query_in_order(providers, operation, options, score)
        else:
            responses = await asyncio.gather(
                *(
                    self._invoke(provider, rank, operation, options)
                    for rank, provider in enumerate(providers)
                )
            )

        result.queried_providers = [r.provider_name for r in responses]
        result.failed_providers = {r.provider_name: str(r.error) for r in responses if not r.ok}
        answers = [
            _Answer(response=r, score=score(r.value))
            for r in responses
            if r.ok and _has_result(r.value)
        ]

        if not answers:
            if len(result.failed_providers) == len(responses):
                result.outcome = AggregationOutcome.ALL_FAILED
                logger.warning("All providers failed for %s", description)
            else:
                result.outcome = AggregationOutcome.NOT_FOUND
                logger.info("No provider found %s", description)
            return result

        self._select(result, answers, options, score, merge)
        if result.succeeded:
            source = (
                ", ".join(result.merged_from_providers)
                if result.is_merged
                else result.provider_name
            )
            logger.info("Resolved %s via %s (score %d)", description, source, result.quality_score)
        else:
            logger.info(
                "No result for %s met minimum quality %d",
                description,
                options.minimum_quality_score,
            )
        return result

    def _select(
        self,
        result: AggregatedResult[Any],
        answers: list[_Answer[Any]],
        options: AggregationOptions,
        score: Callable[[Any], int],
        merge: Callable[[list[Any]], Any],
    ) -> None:
        strategy = options.strategy

        if strategy is AggregationStrategy.MERGE:
            best = max(answers, key=lambda a: (a.score, -a.response.rank))
            merged = merge([a.response.value for a in answers])
            result.result = merged
            result.provider_name = best.name
            result.quality_score = score(merged)
            result.merged_from_providers = [a.name for a in answers]
            result.is_merged = len(answers) > 1
            result.outcome = AggregationOutcome.SUCCESS
            return

        if strategy is AggregationStrategy.FIRST_ACCEPTABLE:
            winner = next(
                (
                    a
                    for a in answers
                    if is_quality_acceptable(a.score, options.minimum_quality_score)
                ),
                None,
            )
            if winner is None:
                result.outcome = AggregationOutcome.QUALITY_BELOW_THRESHOLD
                return
        elif strategy is AggregationStrategy.BEST_QUALITY:
            winner = max(answers, key=lambda a: (a.score, -a.response.rank))
        else:
            winner = answers[0]

        result.result = winner.response.value
        result.provider_name = winner.name
        result.quality_score = winner.score
        result.outcome = AggregationOutcome.SUCCESS

    async def _query_in_order(
        self,
        providers: list[MetadataProvider],
        operation: Operation,
        options: AggregationOptions,
        score: Callable[[Any], int],
    ) -> list[ProviderResponse[Any]]:
        """Query providers one at a time, stopping early once an answer is acceptable."""
        responses: list[ProviderResponse[Any]] = []
        for rank, provider in enumerate(providers):
            response = await self._invoke(provider, rank, operation, options)
            responses.append(response)
            if (
                options.stop_on_first_success
                and response.ok
                and _has_result(response.value)
                and is_quality_acceptable(score(response.value), options.minimum_quality_score)
            ):
                break
        return responses

    async def _invoke(
        self,
        provider: MetadataProvider,
        rank: int,
        operation: Operation,
        options: AggregationOptions,
    ) -> ProviderResponse[Any]:
        """Run one provider call under its timeout. Never raises provider errors."""
        name = provider.name
        start = time.monotonic()
        error: MetasourceError
        try:
            limits = provider.get_rate_limit_info().describe()
            logger.debug("Querying %s (rate limit %s)", name, limits)
            value = await asyncio.wait_for(operation(provider), timeout=options.provider_timeout)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(name, options.provider_timeout_ms)
        except Exception as exc:
            error = ProviderFailureError(name, _describe_exception(exc))
        else:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._report(name, elapsed_ms, None)
            return ProviderResponse(name, rank, value=value, elapsed_ms=elapsed_ms)

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.warning("%s", error)
        self._report(name, elapsed_ms, str(error))
        return ProviderResponse(name, rank, error=error, elapsed_ms=elapsed_ms)

    def _report(self, name: str, elapsed_ms: float, error: str | None) -> None:
        try:
            if error is None:
                self._registry.record_success(name, elapsed_ms)
            else:
                self._registry.record_failure(name, error)
        except ProviderNotFoundError:
            logger.debug("Provider %s was unregistered before its health could be recorded", name)
