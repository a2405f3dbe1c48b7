"""Abstract base class for policy decision clients.

Rules for implementations:
- Async with httpx.AsyncClient
- No retries inside clients
- No normalization: return the decoded response body as-is
- Transport errors bubble up to the AuthorizationGateway, which fails closed
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from warden.services.policy.types import PolicyResource, PolicySubject


class PolicyClient(ABC):
    """Abstract base class for policy decision service clients."""

    def __init__(self, client: httpx.AsyncClient):
        """Initialize with a shared HTTP client.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
        """
        self._client = client

    @abstractmethod
    async def check(self, subject: PolicySubject, action: str, resource: PolicyResource) -> Any:
        """Ask the policy service whether subject may perform action on resource.

        Args:
            subject: Requester attributes.
            action: Action key, already mapped to the service's vocabulary.
            resource: Candidate attributes.

        Returns:
            The decoded response body. Shape is provider-specific and untrusted.

        Raises:
            httpx.HTTPStatusError: On non-2xx HTTP response.
            httpx.TimeoutException: On request timeout.
            httpx.NetworkError: On network failure.
        """
        pass
