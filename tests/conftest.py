"""Shared fixtures for marketplace tests."""

import json
from pathlib import Path
from typing import Any, Callable, List

import pytest

from marketplace.services.descriptors import DescriptorParser, DescriptorValidator
from marketplace.services.ingestion import SourceIngestor
from marketplace.storage.registry import AddonRegistry
from tests.factories import make_manifest


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    """Write a manifest JSON file under tmp_path and return its path."""

    def _write(entries: List[Any], name: str = "manifest.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(make_manifest(entries)), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def registry() -> AddonRegistry:
    return AddonRegistry()


@pytest.fixture
def ingestor(registry: AddonRegistry) -> SourceIngestor:
    return SourceIngestor(DescriptorParser(), DescriptorValidator(), registry)
