"""
Ingestion of a single addon source into the registry.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from marketplace.domain.errors import DescriptorParseError
from marketplace.domain.models import (
    Addon,
    AddonSource,
    IngestionResult,
    IngestionResultBuilder,
    SourceConfig,
)
from marketplace.services.descriptors import DescriptorParser, DescriptorValidator
from marketplace.services.manifest_client import AddonSourceClient
from marketplace.storage.registry import AddonRegistry

logger = logging.getLogger(__name__)


class SourceIngestor:
    """
    Loads every addon of one source and hands the valid ones to the registry.

    Each pointer is handled on its own: a missing descriptor is skipped, and a
    descriptor that fails validation or parsing is recorded as a failure. None
    of these stop the remaining pointers from being processed.
    """

    def __init__(self, parser: DescriptorParser, validator: DescriptorValidator, registry: AddonRegistry):
        self.parser = parser
        self.validator = validator
        self.registry = registry

    async def ingest(self, fetcher: AddonSourceClient, config: SourceConfig) -> IngestionResult:
        """Add the source's addons to the registry, keeping whatever is already there."""
        logger.info(f"Starting ingestion from source '{config.name}' at: {config.location}")
        builder, addons = await self._collect(fetcher, config)
        self.registry.register_all(addons)
        return self._finish(config, builder)

    async def refresh(self, fetcher: AddonSourceClient, config: SourceConfig) -> IngestionResult:
        """
        Replace the source's addons with the current manifest contents.

        Addons removed upstream disappear from the registry. If the manifest
        cannot be fetched the error propagates and the previous addons stay.
        """
        logger.info(f"Refreshing source '{config.name}' from: {config.location}")
        builder, addons = await self._collect(fetcher, config)
        self.registry.replace_source(config.name, addons)
        return self._finish(config, builder)

    async def _collect(
        self, fetcher: AddonSourceClient, config: SourceConfig
    ) -> Tuple[IngestionResultBuilder, List[Addon]]:
        pointers = await fetcher.list_sources(config.location)
        logger.debug(f"Source '{config.name}' lists {len(pointers)} addons")

        builder = IngestionResult.builder()
        addons: List[Addon] = []
        for pointer in pointers:
            addon = await self._process_pointer(fetcher, pointer, config, builder)
            if addon is not None:
                addons.append(addon)
        return builder, addons

    async def _process_pointer(
        self,
        fetcher: AddonSourceClient,
        pointer: AddonSource,
        config: SourceConfig,
        builder: IngestionResultBuilder,
    ) -> Optional[Addon]:
        content = await fetcher.fetch_descriptor(pointer)
        if content is None:
            logger.warning(f"Skipping {config.name}/{pointer.id}: descriptor not found")
            builder.skipped()
            return None

        validation = self.validator.validate(content)
        if not validation.valid:
            logger.warning(f"Validation failed for {config.name}/{pointer.id}: {validation.errors}")
            builder.failure(f"{config.name}/{pointer.id}: validation failed")
            return None

        try:
            addon = self.parser.parse(content)
        except DescriptorParseError as e:
            logger.warning(f"Failed to parse {config.name}/{pointer.id}: {e}")
            builder.failure(f"{config.name}/{pointer.id}: parse error")
            return None

        if not addon.id or not addon.id.strip():
            addon.id = pointer.id
        addon.source = config.name
        logger.debug(f"Loaded addon {config.name}/{addon.id}")
        builder.success()
        return addon

    def _finish(self, config: SourceConfig, builder: IngestionResultBuilder) -> IngestionResult:
        result = builder.build()
        logger.info(
            f"Ingestion from '{config.name}' complete: {result.success_count} success, "
            f"{result.failure_count} failed, {result.skipped_count} skipped"
        )
        return result
