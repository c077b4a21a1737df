"""
In-memory addon registry.

Addons are keyed by plain id, or by ``source:id`` when registered with a
qualified id. All access goes through a re-entrant lock, and readers receive
snapshots so they never see a half-replaced source.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from marketplace.domain import epochs
from marketplace.domain.models import Addon, Category, PluginTier, PublisherType

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "forge"
QUALIFIED_ID_SEPARATOR = ":"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class AddonRegistry:
    def __init__(self, default_source: str = DEFAULT_SOURCE):
        self.default_source = default_source
        self._addons: Dict[str, Addon] = {}
        self._lock = threading.RLock()

    # ========================================================================
    # Writes
    # ========================================================================

    def register(self, addon: Addon) -> None:
        """Store ``addon`` under its plain id, replacing any previous entry."""
        if _is_blank(addon.id):
            raise ValueError("Addon id must not be blank")
        with self._lock:
            self._addons[addon.id] = addon
        logger.debug(f"Registered addon: {addon.id}")

    def register_with_qualified_id(self, addon: Addon) -> None:
        """Store ``addon`` under ``source:id``."""
        if _is_blank(addon.id):
            raise ValueError("Addon id must not be blank")
        if _is_blank(addon.source):
            raise ValueError(f"Addon '{addon.id}' has no source")
        key = f"{addon.source}{QUALIFIED_ID_SEPARATOR}{addon.id}"
        with self._lock:
            self._addons[key] = addon
        logger.debug(f"Registered addon: {key}")

    def register_all(self, addons: Iterable[Addon]) -> None:
        with self._lock:
            for addon in addons:
                self.register(addon)

    def clear_by_source(self, source_name: str) -> int:
        """Remove every addon belonging to ``source_name``. Returns how many were removed."""
        with self._lock:
            keys = [key for key, addon in self._addons.items() if addon.source == source_name]
            for key in keys:
                del self._addons[key]
        logger.info(f"Cleared {len(keys)} addons from source: {source_name}")
        return len(keys)

    def replace_source(self, source_name: str, addons: Iterable[Addon]) -> None:
        """
        Swap the addon set of ``source_name`` in one step.

        Readers see either the old set or the new one, never an empty gap.
        """
        addons = list(addons)
        # reject the whole set before touching the old one
        for addon in addons:
            if _is_blank(addon.id):
                raise ValueError(f"Addon id must not be blank (source '{source_name}')")
        with self._lock:
            self.clear_by_source(source_name)
            self.register_all(addons)
        logger.info(f"Replaced source '{source_name}' with {len(addons)} addons")

    def clear(self) -> None:
        with self._lock:
            self._addons.clear()
        logger.info("Addon registry cleared")

    # ========================================================================
    # Reads
    # ========================================================================

    def find_by_id(self, addon_id: str) -> Optional[Addon]:
        """
        Look up an addon by exact key.

        Unqualified ids fall back to the default source, so ``x`` finds
        ``forge:x`` when no plain ``x`` is registered.
        """
        with self._lock:
            addon = self._addons.get(addon_id)
            if addon is None and QUALIFIED_ID_SEPARATOR not in addon_id:
                addon = self._addons.get(f"{self.default_source}{QUALIFIED_ID_SEPARATOR}{addon_id}")
            return addon

    def find_all(self) -> List[Addon]:
        with self._lock:
            return list(self._addons.values())

    def size(self) -> int:
        with self._lock:
            return len(self._addons)

    def list_sources(self) -> List[str]:
        """Distinct, sorted, non-blank source names."""
        with self._lock:
            names = {addon.source for addon in self._addons.values() if not _is_blank(addon.source)}
        return sorted(names)

    def filter(
        self,
        category: Optional[Category] = None,
        publisher_type: Optional[PublisherType] = None,
        plugin_tier: Optional[PluginTier] = None,
        platform_version: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> List[Addon]:
        """Addons matching every given criterion. ``None`` means no constraint."""
        results = []
        for addon in self.find_all():
            if category is not None and addon.category != category:
                continue
            if publisher_type is not None and (addon.publisher is None or addon.publisher.type != publisher_type):
                continue
            if plugin_tier is not None and addon.plugin_tier != plugin_tier:
                continue
            if platform_version is not None and not epochs.matches_platform_version(addon, platform_version):
                continue
            if source_name is not None and addon.source != source_name:
                continue
            results.append(addon)
        return results
