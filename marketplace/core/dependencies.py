from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx
from fastapi import Request

from marketplace.core.config import MarketplaceSettings, get_settings
from marketplace.services.descriptors import DescriptorParser, DescriptorValidator
from marketplace.services.ingestion import SourceIngestor
from marketplace.services.manifest_client import ManifestClient
from marketplace.services.orchestrator import MultiSourceOrchestrator
from marketplace.services.retrying_fetcher import RetryingFetcher
from marketplace.storage.registry import AddonRegistry
from marketplace.storage.source_store import JsonSourceConfigStore, SourceConfigStore


class MarketplaceServices:
    """
    The service graph of one application instance.

    Everything is constructed explicitly and owned by the app; tests build their
    own instance with a mock transport or an in-memory store.
    """

    def __init__(
        self,
        settings: MarketplaceSettings,
        registry: AddonRegistry,
        manifest_client: ManifestClient,
        fetcher: RetryingFetcher,
        config_store: SourceConfigStore,
        ingestor: SourceIngestor,
        orchestrator: MultiSourceOrchestrator,
    ):
        self.settings = settings
        self.registry = registry
        self.manifest_client = manifest_client
        self.fetcher = fetcher
        self.config_store = config_store
        self.ingestor = ingestor
        self.orchestrator = orchestrator


def build_services(
    settings: Optional[MarketplaceSettings] = None,
    config_store: Optional[SourceConfigStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MarketplaceServices:
    settings = settings or get_settings()
    registry = AddonRegistry(default_source=settings.default_source)
    manifest_client = ManifestClient(cache_ttl=timedelta(seconds=settings.cache_ttl_seconds), transport=transport)
    fetcher = RetryingFetcher(
        manifest_client,
        max_retries=settings.max_retries,
        base_delay=settings.retry_base_delay,
    )
    if config_store is None:
        config_store = JsonSourceConfigStore(
            settings.data_dir,
            default_source=settings.default_source,
            default_manifest_url=settings.default_manifest_url,
        )
    ingestor = SourceIngestor(DescriptorParser(), DescriptorValidator(), registry)
    orchestrator = MultiSourceOrchestrator(config_store, ingestor)
    return MarketplaceServices(
        settings=settings,
        registry=registry,
        manifest_client=manifest_client,
        fetcher=fetcher,
        config_store=config_store,
        ingestor=ingestor,
        orchestrator=orchestrator,
    )


def get_services(request: Request) -> MarketplaceServices:
    """FastAPI dependency returning the services owned by the running app."""
    return request.app.state.services
