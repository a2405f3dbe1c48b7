"""Permit.io PDP client.

- Endpoint: POST {pdp_url}/allowed
- Headers: Authorization: Bearer <api key>, Content-Type: application/json

Request body:
{
  "user": {"key": "<requester id>", "attributes": {...}},
  "action": "<permission key>",
  "resource": {"type": "<resource key>", "key": "<record id>",
               "tenant": "default", "attributes": {...}},
  "context": {}
}

Response: {"allow": true|false, ...}
"""

from typing import Any

import httpx

from warden.services.policy.client import PolicyClient
from warden.services.policy.types import PolicyResource, PolicySubject

DEFAULT_TIMEOUT_S = 5.0


class PermitPdpClient(PolicyClient):
    """Policy client for a Permit.io policy decision point."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        pdp_url: str,
        api_key: str | None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        super().__init__(client)
        self._allowed_url = f"{pdp_url.rstrip('/')}/allowed"
        self._api_key = api_key
        self._timeout_s = timeout_s

    async def check(self, subject: PolicySubject, action: str, resource: PolicyResource) -> Any:
        """Single permission check."""
        response = await self._client.post(
            self._allowed_url,
            headers=self._build_headers(),
            json=self._build_request_body(subject, action, resource),
            timeout=httpx.Timeout(self._timeout_s, connect=min(self._timeout_s, 2.0)),
        )
        response.raise_for_status()
        return response.json()

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request_body(
        self, subject: PolicySubject, action: str, resource: PolicyResource
    ) -> dict:
        return {
            "user": {"key": subject.key, "attributes": dict(subject.attributes)},
            "action": action,
            "resource": {
                "type": resource.type,
                "key": resource.key,
                "tenant": resource.tenant,
                "attributes": dict(resource.attributes),
            },
            "context": {},
        }
