# ABOUTME: Metadata package for provider contracts, record types, scoring, and health tracking.
# ABOUTME: Exports the record model and MetadataProvider protocol used throughout metasource.

from metasource.metadata.health import HealthPolicy, ProviderHealth, ProviderHealthStatus
from metasource.metadata.provider import Capability, MetadataProvider, RateLimitInfo
from metasource.metadata.scoring import (
    calculate_author_score,
    calculate_book_score,
    calculate_edition_score,
    is_quality_acceptable,
)
from metasource.metadata.types import (
    Author,
    AuthorMetadata,
    Book,
    Edition,
    Relation,
    RelationState,
)

__all__ = [
    "Author",
    "AuthorMetadata",
    "Book",
    "Capability",
    "Edition",
    "HealthPolicy",
    "MetadataProvider",
    "ProviderHealth",
    "ProviderHealthStatus",
    "RateLimitInfo",
    "Relation",
    "RelationState",
    "calculate_author_score",
    "calculate_book_score",
    "calculate_edition_score",
    "is_quality_acceptable",
]
