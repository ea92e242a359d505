"""Cloudflare cache purging by URL prefix."""

import httpx
from loguru import logger

# Cloudflare rejects purge requests with more prefixes than this
MAX_PREFIXES_PER_PURGE = 30


class CachePurgeError(Exception):
    """Raised when a cache purge request fails.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code from Cloudflare.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def generate_purge_prefixes(website_url: str, api_url: str, dataset_id: str, edition: str) -> list[str]:
    """Prefixes to purge after a version of ``dataset_id``/``edition`` is published."""
    prefixes: list[str] = []
    for base in (website_url.rstrip("/"), api_url.rstrip("/")):
        prefixes.extend(
            [
                f"{base}/datasets/{dataset_id}",
                f"{base}/datasets/{dataset_id}/editions",
                f"{base}/datasets/{dataset_id}/editions/{edition}/versions",
            ]
        )
    return prefixes


def batch_prefixes(prefixes: list[str], size: int = MAX_PREFIXES_PER_PURGE) -> list[list[str]]:
    """Split ``prefixes`` into consecutive batches of at most ``size``."""
    return [prefixes[i : i + size] for i in range(0, len(prefixes), size)]


class CloudflarePurgeClient:
    """Purges cached URLs in one Cloudflare zone.

    Args:
        api_token: Cloudflare API token with cache purge permission.
        zone_id: Zone whose cache is purged.
        base_url: Cloudflare API base URL.
        timeout: Request timeout in seconds.
        client: Optional pre-built HTTP client (tests inject a mock transport).
    """

    def __init__(
        self,
        api_token: str,
        zone_id: str,
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_token or not zone_id:
            msg = "Cloudflare API token and zone ID are required"
            raise ValueError(msg)
        self._zone_id = zone_id
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
        )

    async def purge_prefixes(self, prefixes: list[str]) -> int:
        """Purge every prefix, at most MAX_PREFIXES_PER_PURGE per request.

        Returns:
            Number of purge requests issued.
        """
        batches = batch_prefixes(prefixes)
        for batch in batches:
            await self._purge(batch)
        logger.info("Purged {} cache prefixes in {} request(s)", len(prefixes), len(batches))
        return len(batches)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _purge(self, batch: list[str]) -> None:
        path = f"/zones/{self._zone_id}/purge_cache"
        try:
            response = await self._client.post(path, json={"prefixes": batch})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Cloudflare purge error: {} {} for {} prefixes",
                exc.response.status_code,
                exc.response.reason_phrase,
                len(batch),
            )
            raise CachePurgeError(
                f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Cloudflare purge request failed: {}", exc)
            raise CachePurgeError(f"Request failed: {exc}") from exc
