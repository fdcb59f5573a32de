from __future__ import annotations

from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import RegistryError
from .settings import redact_url


class RegistryRecord(BaseModel):
    """Latest approved deployment as beekeeper reports it."""

    model_config = ConfigDict(extra="ignore")

    docker_url: str = Field(..., min_length=1, description="Authoritative image reference (name:tag)")


class RegistryClient:
    """Single-shot lookups against ``{base_url}/deployments/{path}/latest``.

    No retries happen here; the run loop decides when to ask again.
    """

    def __init__(self, base_url: str, timeout_s: float = 10.0, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def latest_url(self, service_path: str) -> str:
        return f"{self.base_url}/deployments/{quote(service_path, safe='/:')}/latest"

    def fetch_latest(self, service_path: str, tags: str | None = None) -> RegistryRecord | None:
        """Return the latest approved record, or None when beekeeper does not track the path."""
        url = self.latest_url(service_path)
        params = {"tags": tags} if tags else None
        try:
            resp = self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise RegistryError(f"Request to {redact_url(url)} failed: {type(e).__name__}: {e}") from e

        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise RegistryError(f"Beekeeper returned HTTP {resp.status_code} for {service_path!r}")
        try:
            return RegistryRecord.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise RegistryError(f"Invalid beekeeper response for {service_path!r}: {e}") from e
