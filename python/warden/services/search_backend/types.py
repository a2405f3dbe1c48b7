"""Shared type definitions for the search backend layer."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Pagination:
    """Zero-based page index and page size."""

    page: int = 0
    limit: int = 20


@dataclass(frozen=True)
class SearchPage:
    """One page of raw hits from the search backend.

    Hits are untrusted: they may lack any of the internal security fields.

    Attributes:
        hits: Raw hit dicts in ranking order
        total_hits: Total matches across all pages
        total_pages: Page count reported by the backend
        current_page: Page index of this result
        facets: Facet counts keyed by attribute
        processing_time_ms: Backend-reported processing time
    """

    hits: list[dict[str, Any]]
    total_hits: int = 0
    total_pages: int = 0
    current_page: int = 0
    facets: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: int | None = None
