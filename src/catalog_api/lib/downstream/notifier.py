"""Side effects of a committed publish."""

from loguru import logger

from catalog_api.lib.downstream.cache_purge import CloudflarePurgeClient, generate_purge_prefixes
from catalog_api.lib.downstream.downloads import DownloadsEventGenerator, validate_download_request


class DownstreamNotifier:
    """Requests download generation and purges CDN caches after a publish.

    Both collaborators are optional: a missing generator only logs a warning,
    and a missing purge client disables cache purging.

    Args:
        generator: Sends the generate downloads event.
        purger: Cloudflare client, or None when purging is disabled.
        website_url: Public website base URL.
        api_url: Public API base URL.
    """

    def __init__(
        self,
        generator: DownloadsEventGenerator | None,
        purger: CloudflarePurgeClient | None,
        website_url: str,
        api_url: str,
    ) -> None:
        self._generator = generator
        self._purger = purger
        self._website_url = website_url
        self._api_url = api_url

    async def on_published(self, dataset_id: str, instance_id: str, edition: str, version: str) -> None:
        """Notify downstream systems that a version was published.

        The download request and the cache purge are attempted independently;
        if either fails, the first failure is raised once both have run.

        Raises:
            DownloadRequestError: If an identifier is empty or the event cannot be sent.
            CachePurgeError: If the cache purge fails.
        """
        validate_download_request(dataset_id, instance_id, edition, version)
        failures: list[Exception] = []

        if self._generator is None:
            logger.warning("Download generation disabled, skipping event for instance {}", instance_id)
        else:
            try:
                await self._generator.generate(dataset_id, instance_id, edition, version)
            except Exception as exc:
                logger.error("Generate downloads failed for instance {}: {}", instance_id, exc)
                failures.append(exc)

        if self._purger is not None:
            prefixes = generate_purge_prefixes(self._website_url, self._api_url, dataset_id, edition)
            try:
                await self._purger.purge_prefixes(prefixes)
            except Exception as exc:
                logger.error("Cache purge failed for dataset {} edition {}: {}", dataset_id, edition, exc)
                failures.append(exc)

        if failures:
            raise failures[0]

    async def close(self) -> None:
        if self._purger is not None:
            await self._purger.close()
