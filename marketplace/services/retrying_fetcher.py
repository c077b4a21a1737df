"""
Retry decorator around ManifestClient for transient manifest failures.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional

from marketplace.domain.errors import ManifestClientError
from marketplace.domain.models import AddonSource, AddonsManifest
from marketplace.services.manifest_client import AddonSourceClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
JITTER_FACTOR = 0.2


class RetryingFetcher(AddonSourceClient):
    """
    Retries retryable manifest errors with exponential backoff and jitter.

    Not-found, client and parse errors are raised on the first attempt.
    ``max_retries`` counts total attempts, so the default makes at most two
    retries.
    """

    def __init__(
        self,
        client: AddonSourceClient,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        jitter: Optional[Callable[[], float]] = None,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.client = client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep
        self._jitter = jitter or random.random

    def delay_before(self, attempt: int) -> float:
        """Backoff in seconds before ``attempt`` (2-based)."""
        delay = self.base_delay * (2 ** (attempt - 2))
        return delay + delay * JITTER_FACTOR * self._jitter()

    async def fetch_manifest(self, location: str) -> AddonsManifest:
        last_error: Optional[ManifestClientError] = None
        for attempt in range(1, self.max_retries + 1):
            if last_error is not None:
                delay = self.delay_before(attempt)
                logger.warning(
                    f"Fetch attempt {attempt - 1}/{self.max_retries} failed for {location} "
                    f"({last_error}), retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)
            try:
                return await self.client.fetch_manifest(location)
            except ManifestClientError as e:
                if not e.retryable:
                    raise
                last_error = e

        logger.error(f"All {self.max_retries} fetch attempts failed for: {location}")
        raise last_error

    async def list_sources(self, manifest_url: str) -> List[AddonSource]:
        await self.fetch_manifest(manifest_url)
        return await self.client.list_sources(manifest_url)

    async def fetch_descriptor(self, pointer: AddonSource) -> Optional[str]:
        return await self.client.fetch_descriptor(pointer)

    def clear_cache(self) -> None:
        self.client.clear_cache()
