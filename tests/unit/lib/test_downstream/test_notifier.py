"""Unit tests for the downstream notifier."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.lib.downstream import CachePurgeError, DownloadRequestError, DownstreamNotifier

WEBSITE = "https://www.example.gov.uk"
API = "https://api.example.gov.uk/v1"


def _notifier(generator=None, purger=None) -> DownstreamNotifier:
    return DownstreamNotifier(generator, purger, website_url=WEBSITE, api_url=API)


class TestOnPublished:
    async def test_generates_downloads_and_purges(self) -> None:
        generator = MagicMock()
        generator.generate = AsyncMock()
        purger = MagicMock()
        purger.purge_prefixes = AsyncMock(return_value=1)

        await _notifier(generator, purger).on_published("cpih01", "inst-1", "time-series", "2")

        generator.generate.assert_awaited_once_with("cpih01", "inst-1", "time-series", "2")
        prefixes = purger.purge_prefixes.await_args.args[0]
        assert f"{WEBSITE}/datasets/cpih01" in prefixes
        assert f"{API}/datasets/cpih01/editions/time-series/versions" in prefixes

    async def test_empty_identifier_stops_everything(self) -> None:
        generator = MagicMock()
        generator.generate = AsyncMock()
        purger = MagicMock()
        purger.purge_prefixes = AsyncMock()

        with pytest.raises(DownloadRequestError):
            await _notifier(generator, purger).on_published("cpih01", "inst-1", "time-series", "")

        generator.generate.assert_not_awaited()
        purger.purge_prefixes.assert_not_awaited()

    async def test_purge_runs_when_generation_fails(self) -> None:
        generator = MagicMock()
        generator.generate = AsyncMock(side_effect=DownloadRequestError("broker down"))
        purger = MagicMock()
        purger.purge_prefixes = AsyncMock(return_value=1)

        with pytest.raises(DownloadRequestError, match="broker down"):
            await _notifier(generator, purger).on_published("cpih01", "inst-1", "time-series", "2")

        purger.purge_prefixes.assert_awaited_once()

    async def test_purge_failure_reported(self) -> None:
        purger = MagicMock()
        purger.purge_prefixes = AsyncMock(side_effect=CachePurgeError("HTTP 500", status_code=500))

        with pytest.raises(CachePurgeError):
            await _notifier(None, purger).on_published("cpih01", "inst-1", "time-series", "2")

    async def test_no_collaborators_is_a_no_op(self) -> None:
        await _notifier().on_published("cpih01", "inst-1", "time-series", "2")

    async def test_close_closes_purger(self) -> None:
        purger = MagicMock()
        purger.close = AsyncMock()
        await _notifier(None, purger).close()
        purger.close.assert_awaited_once()
