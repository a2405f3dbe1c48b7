"""Search backend layer.

Provides the abstract SearchBackend and the Algolia implementation.

Usage:
    from warden.services.search_backend import AlgoliaSearchBackend, Pagination

    backend = AlgoliaSearchBackend(httpx_client, base_url=..., app_id=..., api_key=...,
                                   index_name="hospital_patient_records")
    page = await backend.search("chest pain", SearchFilters(), Pagination(page=0, limit=20))
"""

from warden.services.search_backend.algolia import AlgoliaSearchBackend, build_filter_expression
from warden.services.search_backend.backend import SearchBackend
from warden.services.search_backend.types import Pagination, SearchPage

__all__ = [
    "SearchBackend",
    "AlgoliaSearchBackend",
    "build_filter_expression",
    "Pagination",
    "SearchPage",
]
