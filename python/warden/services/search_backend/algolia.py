"""Algolia search backend.

- Search:  POST {base}/1/indexes/{index}/query
- Fetch:   GET  {base}/1/indexes/{index}/{objectID}  (404 -> None)
- Headers: X-Algolia-Application-Id, X-Algolia-API-Key

Search request body (subset used here):
{
  "query": "...",
  "hitsPerPage": 20,
  "page": 0,
  "filters": "department:\"cardiology\" AND record_type:\"lab_result\"",
  "facets": ["department", ...]
}

Response - extract:
{
  "hits": [...], "nbHits": 42, "nbPages": 3, "page": 0,
  "facets": {...}, "processingTimeMS": 2
}
"""

from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from warden.schemas.search import SearchFilters, Suggestion, SuggestionKind
from warden.services.search_backend.backend import SearchBackend
from warden.services.search_backend.types import Pagination, SearchPage

DEFAULT_TIMEOUT_S = 10.0
SUGGESTION_HITS = 10

DEFAULT_FACETS = ["department", "record_type", "doctor_name", "status", "priority_level"]

# SearchFilters field -> index attribute
FILTER_ATTRIBUTES = (
    ("department", "department"),
    ("record_type", "record_type"),
    ("date_range", "date_range"),
    ("priority_level", "priority_level"),
)

SUGGESTION_ATTRIBUTES: dict[SuggestionKind, list[str]] = {
    SuggestionKind.PATIENT: ["patient_name", "medical_record_number"],
    SuggestionKind.DOCTOR: ["doctor_name"],
    SuggestionKind.DIAGNOSIS: ["diagnosis"],
    SuggestionKind.ALL: ["patient_name", "doctor_name", "diagnosis", "medical_record_number"],
}


def _quote_filter_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_filter_expression(filters: SearchFilters) -> str:
    """Render named filters as an Algolia filter expression joined with AND.

    Only None is skipped: an empty department still renders, so a scoped
    requester without a department matches nothing.
    """
    parts = []
    for field_name, attribute in FILTER_ATTRIBUTES:
        value = getattr(filters, field_name)
        if value is None:
            continue
        raw = value.value if isinstance(value, Enum) else str(value)
        parts.append(f"{attribute}:{_quote_filter_value(raw)}")
    return " AND ".join(parts)


def extract_suggestion_text(hit: dict[str, Any], kind: SuggestionKind) -> str | None:
    """Pick the display text of a hit for the requested suggestion kind."""
    if kind == SuggestionKind.PATIENT:
        return hit.get("patient_name") or hit.get("medical_record_number")
    if kind == SuggestionKind.DOCTOR:
        return hit.get("doctor_name")
    if kind == SuggestionKind.DIAGNOSIS:
        return hit.get("diagnosis")
    return hit.get("patient_name") or hit.get("doctor_name") or hit.get("diagnosis")


class AlgoliaSearchBackend(SearchBackend):
    """Search backend speaking the Algolia REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        app_id: str | None,
        api_key: str | None,
        index_name: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        super().__init__(client)
        self._index_url = f"{base_url.rstrip('/')}/1/indexes/{quote(index_name, safe='')}"
        self._app_id = app_id
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0))

    async def search(
        self, query: str, filters: SearchFilters, pagination: Pagination
    ) -> SearchPage:
        """Full-text query against the index."""
        body: dict[str, Any] = {
            "query": query,
            "hitsPerPage": pagination.limit,
            "page": pagination.page,
            "facets": DEFAULT_FACETS,
            "highlightPreTag": "<mark>",
            "highlightPostTag": "</mark>",
            "typoTolerance": True,
            "ignorePlurals": True,
            "removeStopWords": True,
        }
        filter_expression = build_filter_expression(filters)
        if filter_expression:
            body["filters"] = filter_expression

        data = await self._query(body)
        return SearchPage(
            hits=list(data.get("hits") or []),
            total_hits=int(data.get("nbHits") or 0),
            total_pages=int(data.get("nbPages") or 0),
            current_page=int(data.get("page") or 0),
            facets=dict(data.get("facets") or {}),
            processing_time_ms=data.get("processingTimeMS"),
        )

    async def get_record(self, object_id: str) -> dict[str, Any] | None:
        """Fetch a record by objectID."""
        response = await self._client.get(
            f"{self._index_url}/{quote(object_id, safe='')}",
            headers=self._build_headers(),
            timeout=self._timeout,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def suggest(self, query: str, kind: SuggestionKind) -> list[Suggestion]:
        """Autocomplete entries for a partial query."""
        body = {
            "query": query,
            "hitsPerPage": SUGGESTION_HITS,
            "attributesToRetrieve": SUGGESTION_ATTRIBUTES[kind] + ["department"],
            "typoTolerance": False,
        }
        data = await self._query(body)

        suggestions = []
        for hit in data.get("hits") or []:
            text = extract_suggestion_text(hit, kind)
            if not text:
                continue
            suggestions.append(
                Suggestion(text=str(text), kind=kind, department=hit.get("department"))
            )
        return suggestions

    async def _query(self, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(
            f"{self._index_url}/query",
            headers=self._build_headers(),
            json=body,
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._app_id:
            headers["X-Algolia-Application-Id"] = self._app_id
        if self._api_key:
            headers["X-Algolia-API-Key"] = self._api_key
        return headers
