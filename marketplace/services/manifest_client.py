"""
Manifest fetching with a time-bounded, single-flight cache.

This service handles:
- Reading manifests from http(s) URLs with httpx or from local files with aiofiles
- Mapping status codes and I/O failures onto the manifest error taxonomy
- Caching parsed manifests per location until their TTL expires
- Listing addon pointers and serving individual addon descriptors
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

import aiofiles
import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from marketplace.domain.errors import (
    ManifestHTTPClientError,
    ManifestNotFoundError,
    ManifestParseError,
    ManifestServerError,
    ManifestTransportError,
)
from marketplace.domain.models import AddonSource, AddonsManifest

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(hours=1)
DEFAULT_TIMEOUT = 30.0
REMOTE_SCHEMES = ("http", "https")
POINTER_SEPARATOR = "#"

_WINDOWS_DRIVE_IN_URL = re.compile(r"^/[A-Za-z]:")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _consume_exception(task: asyncio.Task) -> None:
    # every waiter may have been cancelled before a failed load finished
    if not task.cancelled():
        task.exception()


def is_remote_location(location: str) -> bool:
    """True for http(s) URLs. Paths, ``file://`` URLs and drive paths are local."""
    return urlparse(location).scheme.lower() in REMOTE_SCHEMES


def local_path(location: str) -> Path:
    """Resolve a local manifest location (plain path or ``file://`` URL) to a Path."""
    if location.lower().startswith("file://"):
        path = unquote(urlparse(location).path)
        # file:///C:/data/manifest.json
        if _WINDOWS_DRIVE_IN_URL.match(path):
            path = path[1:]
        return Path(path)
    return Path(location).expanduser()


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    manifest: AddonsManifest
    cached_at: datetime


class AddonSourceClient(ABC):
    """
    Abstract interface for anything that can serve manifests and descriptors.

    Implemented by ManifestClient and by RetryingFetcher, which decorates it.
    """

    @abstractmethod
    async def fetch_manifest(self, location: str) -> AddonsManifest:
        """Return the manifest at ``location``."""
        pass

    @abstractmethod
    async def list_sources(self, manifest_url: str) -> List[AddonSource]:
        """Return one pointer per addon in the manifest."""
        pass

    @abstractmethod
    async def fetch_descriptor(self, pointer: AddonSource) -> Optional[str]:
        """Return the raw descriptor text for ``pointer``, or None if it cannot be resolved."""
        pass

    @abstractmethod
    def clear_cache(self) -> None:
        pass


class ManifestClient(AddonSourceClient):
    """
    Fetches and caches addon manifests.

    Concurrent callers asking for the same location while it is absent or stale
    share a single in-flight load and all receive its outcome. A failed load
    leaves the cache untouched. The client is bound to one event loop.
    """

    def __init__(
        self,
        cache_ttl: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.cache_ttl = cache_ttl if cache_ttl is not None else DEFAULT_CACHE_TTL
        self.timeout = timeout
        self._clock = clock or _utcnow
        self._transport = transport
        self._cache: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        # bumped by clear_cache; loads started before a clear must not repopulate
        self._generation = 0

    # ========================================================================
    # Manifest access
    # ========================================================================

    async def fetch_manifest(self, location: str) -> AddonsManifest:
        entry = self._cache.get(location)
        if entry is not None and not self._is_stale(entry):
            logger.debug(f"Manifest cache hit for {location}")
            return entry.manifest

        # No await between the lookup and the registration below, so the event
        # loop cannot interleave a second loader for the same location.
        task = self._inflight.get(location)
        if task is None:
            logger.debug(f"Loading manifest from {location}")
            task = asyncio.get_running_loop().create_task(self._load(location, self._generation))
            task.add_done_callback(_consume_exception)
            self._inflight[location] = task
        # shield: a cancelled waiter must not cancel the load other callers share
        return await asyncio.shield(task)

    def clear_cache(self) -> None:
        """Drop cached manifests. Loads already running will not be cached or shared."""
        self._generation += 1
        self._cache.clear()
        self._inflight.clear()
        logger.info("Manifest cache cleared")

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() >= entry.cached_at + self.cache_ttl

    async def _load(self, location: str, generation: int) -> AddonsManifest:
        try:
            if is_remote_location(location):
                content = await self._fetch_remote(location)
            else:
                content = await self._read_local(location)
            manifest = self._parse(location, content)
            if generation == self._generation:
                self._cache[location] = CacheEntry(manifest=manifest, cached_at=self._clock())
            logger.info(f"Loaded manifest from {location} ({len(manifest.addons)} entries)")
            return manifest
        finally:
            if self._inflight.get(location) is asyncio.current_task():
                del self._inflight[location]

    async def _fetch_remote(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.RequestError as e:
            raise ManifestTransportError(f"Failed to fetch manifest from {url}: {e}", location=url) from e

        status = response.status_code
        if status == 404:
            raise ManifestNotFoundError(f"Manifest not found: {url}", location=url)
        if status >= 500:
            raise ManifestServerError(f"Server error {status} fetching manifest: {url}", location=url, status_code=status)
        if not 200 <= status < 300:
            raise ManifestHTTPClientError(f"HTTP {status} fetching manifest: {url}", location=url, status_code=status)
        return response.text

    async def _read_local(self, location: str) -> str:
        path = local_path(location)
        if not path.exists():
            raise ManifestNotFoundError(f"Manifest file not found: {path}", location=location)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise ManifestNotFoundError(f"Manifest file not found: {path}", location=location) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestTransportError(f"Failed to read manifest file {path}: {e}", location=location) from e

    def _parse(self, location: str, content: str) -> AddonsManifest:
        try:
            return AddonsManifest.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ManifestParseError(f"Failed to parse manifest from {location}: {e}", location=location) from e

    # ========================================================================
    # Pointers and descriptors
    # ========================================================================

    async def list_sources(self, manifest_url: str) -> List[AddonSource]:
        manifest = await self.fetch_manifest(manifest_url)
        pointers = []
        for entry in manifest.addon_entries():
            addon_id = entry.get("id")
            name = entry.get("name")
            pointers.append(
                AddonSource(
                    id=addon_id if isinstance(addon_id, str) else None,
                    name=name if isinstance(name, str) else None,
                    path=f"{manifest_url}{POINTER_SEPARATOR}{addon_id if isinstance(addon_id, str) else ''}",
                )
            )
        return pointers

    async def fetch_descriptor(self, pointer: AddonSource) -> Optional[str]:
        manifest_url, separator, addon_id = pointer.path.partition(POINTER_SEPARATOR)
        if not separator or not addon_id.strip():
            logger.debug(f"Pointer has no addon id: {pointer.path}")
            return None

        manifest = await self.fetch_manifest(manifest_url)
        entry = manifest.find_entry(addon_id)
        if entry is None:
            logger.debug(f"Addon '{addon_id}' not present in manifest {manifest_url}")
            return None
        return json.dumps(entry)
