from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query

from marketplace.core.dependencies import MarketplaceServices, get_services
from marketplace.domain import epochs
from marketplace.domain.errors import ManifestClientError, SourceConfigError, SourceNotFoundError
from marketplace.domain.models import Addon, Category, PluginTier, PublisherType

logger = logging.getLogger(__name__)
router = APIRouter()

E = TypeVar("E", bound=Enum)


def _parse_enum(enum_type: Type[E], value: Optional[str], param: str) -> Optional[E]:
    if value is None or not value.strip():
        return None
    try:
        return enum_type(value.strip())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise HTTPException(status_code=400, detail=f"Invalid {param} '{value}'. Allowed: {allowed}")


def _addon_view(addon: Addon, brxm_version: Optional[str]) -> Dict[str, Any]:
    data = addon.to_wire()
    if brxm_version:
        data["effectiveVersion"] = epochs.effective_version(addon, brxm_version)
        data["effectiveArtifacts"] = [a.to_wire() for a in epochs.effective_artifacts(addon, brxm_version)]
        recommended = epochs.recommended_version(addon, brxm_version)
        if recommended:
            data["recommendedVersion"] = recommended
    brxm_range = epochs.describe_range(addon, brxm_version)
    if brxm_range:
        data["brxmRange"] = brxm_range
    return data


# ---------------------------------------------------------------------------
# 1. GET /addons
# ---------------------------------------------------------------------------

@router.get("/addons")
async def list_addons(
    category: Optional[str] = Query(default=None),
    publisher_type: Optional[str] = Query(default=None, alias="publisherType"),
    plugin_tier: Optional[str] = Query(default=None, alias="pluginTier"),
    brxm_version: Optional[str] = Query(default=None, alias="brxmVersion"),
    source: Optional[str] = Query(default=None),
    services: MarketplaceServices = Depends(get_services),
) -> List[Dict[str, Any]]:
    """
    List addons, optionally filtered. All filters must match.
    """
    addons = services.registry.filter(
        category=_parse_enum(Category, category, "category"),
        publisher_type=_parse_enum(PublisherType, publisher_type, "publisherType"),
        plugin_tier=_parse_enum(PluginTier, plugin_tier, "pluginTier"),
        platform_version=brxm_version or None,
        source_name=source or None,
    )
    return [_addon_view(addon, brxm_version) for addon in addons]


# ---------------------------------------------------------------------------
# 2. GET /addons/sources  (declared before /addons/{addon_id})
# ---------------------------------------------------------------------------

@router.get("/addons/sources")
async def list_addon_sources(services: MarketplaceServices = Depends(get_services)) -> List[str]:
    """
    Names of the sources that currently contribute addons.
    """
    return services.registry.list_sources()


# ---------------------------------------------------------------------------
# 3. GET /addons/{addon_id}
# ---------------------------------------------------------------------------

@router.get("/addons/{addon_id}")
async def get_addon(
    addon_id: str,
    brxm_version: Optional[str] = Query(default=None, alias="brxmVersion"),
    services: MarketplaceServices = Depends(get_services),
) -> Dict[str, Any]:
    addon = services.registry.find_by_id(addon_id)
    if addon is None:
        raise HTTPException(status_code=404, detail=f"Addon not found: {addon_id}")
    return _addon_view(addon, brxm_version)


# ---------------------------------------------------------------------------
# 4. Sources and refresh
# ---------------------------------------------------------------------------

@router.get("/sources")
async def list_sources(services: MarketplaceServices = Depends(get_services)) -> List[Dict[str, Any]]:
    """
    Configured sources, including disabled ones, highest priority first.
    """
    try:
        configs = services.config_store.find_all_including_disabled()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read source configuration: {e}")
        raise HTTPException(status_code=503, detail="Source configuration unavailable")
    return [config.model_dump(by_alias=True) for config in configs]


@router.post("/refresh")
async def refresh_all(services: MarketplaceServices = Depends(get_services)) -> Dict[str, Any]:
    try:
        result = await services.orchestrator.refresh_all(services.fetcher)
    except SourceConfigError as e:
        logger.error(f"Refresh aborted: {e}")
        raise HTTPException(status_code=503, detail="Source configuration unavailable")
    return result.summary()


@router.post("/sources/{source_name}/refresh")
async def refresh_source(source_name: str, services: MarketplaceServices = Depends(get_services)) -> Dict[str, Any]:
    try:
        result = await services.orchestrator.refresh_source(services.fetcher, source_name)
    except SourceNotFoundError:
        raise HTTPException(status_code=404, detail=f"Source not found: {source_name}")
    except ManifestClientError as e:
        logger.error(f"Refresh of source '{source_name}' failed: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to fetch manifest for source: {source_name}")
    except SourceConfigError as e:
        logger.error(f"Refresh of source '{source_name}' aborted: {e}")
        raise HTTPException(status_code=503, detail="Source configuration unavailable")
    return {"source": source_name, **result.model_dump()}
