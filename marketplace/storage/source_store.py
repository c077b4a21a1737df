"""
Source configuration stores.

The marketplace only reads source configurations; editing them is the job of
whatever owns the backing file or service.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from marketplace.domain.models import SourceConfig

logger = logging.getLogger(__name__)

SOURCES_FILE = "sources.json"


def sort_by_priority(configs: Iterable[SourceConfig]) -> List[SourceConfig]:
    """Highest priority first; ties keep their stored order."""
    return sorted(configs, key=lambda c: c.priority, reverse=True)


class SourceConfigStore(ABC):
    """
    Abstract base class for source configuration lookup.
    """

    @abstractmethod
    def find_all_including_disabled(self) -> List[SourceConfig]:
        """All configured sources, highest priority first."""
        pass

    def find_all(self) -> List[SourceConfig]:
        """Enabled sources, highest priority first."""
        return [c for c in self.find_all_including_disabled() if c.enabled]

    def find_by_name(self, name: str) -> Optional[SourceConfig]:
        for config in self.find_all_including_disabled():
            if config.name == name:
                return config
        return None


class InMemorySourceConfigStore(SourceConfigStore):
    def __init__(self, configs: Iterable[SourceConfig] = ()):
        self._configs = list(configs)

    def find_all_including_disabled(self) -> List[SourceConfig]:
        return sort_by_priority(self._configs)


class JsonSourceConfigStore(SourceConfigStore):
    """
    Reads sources from ``<data_dir>/sources.json``.

    The file holds either a list of sources or ``{"sources": [...]}``; each
    source has ``name``, ``url`` and optional ``enabled``, ``priority`` and
    ``readonly``. The file is re-read on every call so external edits take
    effect on the next refresh. When the file does not exist the store serves a
    single default source pointing at ``default_manifest_url``.

    Malformed files raise ``ValueError`` (JSON or pydantic validation errors).
    """

    def __init__(self, data_dir: Path, default_source: str, default_manifest_url: Optional[str] = None):
        self._path = data_dir / SOURCES_FILE
        self._default_source = default_source
        self._default_manifest_url = default_manifest_url

    @property
    def path(self) -> Path:
        return self._path

    def find_all_including_disabled(self) -> List[SourceConfig]:
        return sort_by_priority(self._load())

    def _load(self) -> List[SourceConfig]:
        if not self._path.exists():
            if not self._default_manifest_url:
                logger.warning(f"No source configuration at {self._path} and no default manifest URL set")
                return []
            return [SourceConfig.default_source(self._default_source, self._default_manifest_url)]

        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("sources", [])
        if not isinstance(raw, list):
            raise ValueError(f"{self._path}: expected a list of sources")
        return [SourceConfig.model_validate(item) for item in raw]
