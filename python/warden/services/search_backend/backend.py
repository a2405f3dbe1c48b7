"""Abstract base class for search backends.

Rules for implementations:
- Async with httpx.AsyncClient
- No retries inside backends
- No authorization: hits are returned with their internal security fields
- Transport errors bubble up; the pipeline decides which ones are fatal
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from warden.schemas.search import SearchFilters, Suggestion, SuggestionKind
from warden.services.search_backend.types import Pagination, SearchPage


class SearchBackend(ABC):
    """Abstract base class for the external full-text search provider."""

    def __init__(self, client: httpx.AsyncClient):
        """Initialize with a shared HTTP client.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
        """
        self._client = client

    @abstractmethod
    async def search(
        self, query: str, filters: SearchFilters, pagination: Pagination
    ) -> SearchPage:
        """Run a full-text query with filters and paging.

        Raises:
            httpx.HTTPError: On any transport or HTTP failure.
        """
        pass

    @abstractmethod
    async def get_record(self, object_id: str) -> dict[str, Any] | None:
        """Fetch one raw hit by identifier.

        Returns:
            The hit, or None if no record has this identifier.

        Raises:
            httpx.HTTPError: On any transport or non-404 HTTP failure.
        """
        pass

    @abstractmethod
    async def suggest(self, query: str, kind: SuggestionKind) -> list[Suggestion]:
        """Return lightweight autocomplete entries for a partial query.

        Raises:
            httpx.HTTPError: On any transport or HTTP failure.
        """
        pass
