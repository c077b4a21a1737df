"""
Refreshing every configured source, plus the periodic background refresh.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, TypeVar

from marketplace.domain.errors import SourceConfigError, SourceNotFoundError
from marketplace.domain.models import IngestionResult, MultiSourceResult, MultiSourceResultBuilder, SourceConfig
from marketplace.services.ingestion import SourceIngestor
from marketplace.services.manifest_client import AddonSourceClient
from marketplace.storage.source_store import SourceConfigStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MultiSourceOrchestrator:
    """
    Refreshes enabled sources one after another, highest priority first.

    A failing source is recorded and the run moves on to the next one.
    """

    def __init__(self, config_store: SourceConfigStore, ingestor: SourceIngestor):
        self.config_store = config_store
        self.ingestor = ingestor

    async def refresh_all(self, fetcher: AddonSourceClient) -> MultiSourceResult:
        sources: List[SourceConfig] = self._store_call(self.config_store.find_all, "Failed to load source configurations")
        logger.info(f"Refreshing addons from {len(sources)} sources")

        builder = MultiSourceResult.builder()
        for source in sources:
            await self._refresh_source_safely(fetcher, source, builder)

        result = builder.build()
        self._log_summary(result, len(sources))
        return result

    async def refresh_source(self, fetcher: AddonSourceClient, source_name: str) -> IngestionResult:
        """
        Refresh one source by name.

        Raises:
            SourceNotFoundError: no source with that name is configured.
            ManifestClientError: the manifest could not be fetched.
        """
        source: Optional[SourceConfig] = self._store_call(
            lambda: self.config_store.find_by_name(source_name),
            f"Failed to load source configuration: {source_name}",
        )
        if source is None:
            raise SourceNotFoundError(f"Source not found: {source_name}")
        return await self.ingestor.refresh(fetcher, source)

    async def run_periodic_refresh(self, fetcher: AddonSourceClient, interval_seconds: float) -> None:
        """
        Refresh all sources every ``interval_seconds`` until cancelled.
        """
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.refresh_all(fetcher)
            except Exception as e:
                logger.error(f"Error in periodic refresh loop: {e}")

    async def _refresh_source_safely(
        self, fetcher: AddonSourceClient, source: SourceConfig, builder: MultiSourceResultBuilder
    ) -> None:
        try:
            result = await self.ingestor.refresh(fetcher, source)
            builder.add(source.name, result)
        except Exception as e:
            logger.exception(f"Failed to refresh source '{source.name}'")
            builder.add_failure(source.name, f"{type(e).__name__}: {e}")

    def _store_call(self, operation: Callable[[], T], error_message: str) -> T:
        try:
            return operation()
        except (OSError, ValueError) as e:
            raise SourceConfigError(f"{error_message}: {e}") from e

    def _log_summary(self, result: MultiSourceResult, source_count: int) -> None:
        if result.has_failures:
            logger.error(
                f"Multi-source refresh complete: {result.total_success} addons loaded, "
                f"{len(result.failed_sources)} failed sources: {result.failed_sources}"
            )
        else:
            logger.info(
                f"Multi-source refresh complete: {result.total_success} addons loaded from {source_count} sources"
            )
