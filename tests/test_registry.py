"""Tests for the in-memory addon registry."""

import threading

import pytest

from marketplace.domain.models import Category, PluginTier, Publisher, PublisherType
from marketplace.storage.registry import AddonRegistry
from tests.factories import make_addon, make_epoch


class TestRegistration:
    """Tests for register, register_with_qualified_id and find_by_id."""

    def test_register_last_write_wins(self, registry: AddonRegistry) -> None:
        """Verify re-registering an id replaces the previous addon."""
        registry.register(make_addon("alpha", version="1.0.0"))
        registry.register(make_addon("alpha", version="2.0.0"))

        assert registry.size() == 1
        assert registry.find_by_id("alpha").version == "2.0.0"

    @pytest.mark.parametrize("addon_id", [None, "", "   "])
    def test_register_requires_id(self, registry: AddonRegistry, addon_id) -> None:
        """Verify blank ids are rejected."""
        with pytest.raises(ValueError, match="id"):
            registry.register(make_addon(addon_id))

    def test_qualified_registration_requires_source(self, registry: AddonRegistry) -> None:
        """Verify qualified registration needs a source."""
        with pytest.raises(ValueError, match="source"):
            registry.register_with_qualified_id(make_addon("alpha"))

    def test_unqualified_lookup_prefers_default_source(self, registry: AddonRegistry) -> None:
        """Verify 'x' resolves to forge:x when forge:x and partner:x exist."""
        registry.register_with_qualified_id(make_addon("x", source="partner"))
        registry.register_with_qualified_id(make_addon("x", source="forge"))

        assert registry.find_by_id("x").source == "forge"
        assert registry.find_by_id("partner:x").source == "partner"

    def test_exact_match_beats_fallback(self, registry: AddonRegistry) -> None:
        """Verify a plain registration is found before the default-source fallback."""
        registry.register(make_addon("x", source="partner"))
        registry.register_with_qualified_id(make_addon("x", source="forge"))

        assert registry.find_by_id("x").source == "partner"

    def test_default_source_is_configurable(self) -> None:
        """Verify the fallback source name is injected."""
        registry = AddonRegistry(default_source="partner")
        registry.register_with_qualified_id(make_addon("x", source="partner"))

        assert registry.find_by_id("x") is not None

    def test_missing_ids(self, registry: AddonRegistry) -> None:
        """Verify None for unknown ids, qualified or not."""
        registry.register_with_qualified_id(make_addon("x", source="forge"))

        assert registry.find_by_id("y") is None
        assert registry.find_by_id("partner:x") is None


class TestSources:
    """Tests for list_sources, clear_by_source, replace_source and clear."""

    def test_list_sources_distinct_sorted(self, registry: AddonRegistry) -> None:
        """Verify blank sources are dropped and names are sorted."""
        registry.register(make_addon("a", source="partner"))
        registry.register(make_addon("b", source="forge"))
        registry.register(make_addon("c", source="forge"))
        registry.register(make_addon("d", source=" "))
        registry.register(make_addon("e"))

        assert registry.list_sources() == ["forge", "partner"]

    def test_clear_by_source(self, registry: AddonRegistry) -> None:
        """Verify only the named source's addons are removed."""
        registry.register(make_addon("a", source="forge"))
        registry.register_with_qualified_id(make_addon("b", source="forge"))
        registry.register(make_addon("c", source="partner"))

        removed = registry.clear_by_source("forge")

        assert removed == 2
        assert [addon.id for addon in registry.find_all()] == ["c"]

    def test_replace_source_swaps_set(self, registry: AddonRegistry) -> None:
        """Verify replace_source drops stale addons and adds the new ones."""
        registry.register(make_addon("old", source="forge"))
        registry.register(make_addon("keep", source="partner"))

        registry.replace_source("forge", [make_addon("new", source="forge")])

        assert {addon.id for addon in registry.find_all()} == {"new", "keep"}

    def test_replace_source_with_blank_id_keeps_old_set(self, registry: AddonRegistry) -> None:
        """Verify a rejected replacement leaves the previous addons untouched."""
        registry.register(make_addon("a", source="forge"))
        registry.register(make_addon("b", source="forge"))

        with pytest.raises(ValueError, match="blank"):
            registry.replace_source("forge", [make_addon("c", source="forge"), make_addon(" ", source="forge")])

        assert sorted(addon.id for addon in registry.find_all()) == ["a", "b"]

    def test_readers_never_see_empty_source_during_replace(self, registry: AddonRegistry) -> None:
        """Verify concurrent readers observe the old or new set, never a gap."""
        registry.replace_source("forge", [make_addon(f"a{i}", source="forge") for i in range(50)])
        gaps = []
        stop = threading.Event()

        def reader() -> None:
            while not stop.is_set():
                if not registry.filter(source_name="forge"):
                    gaps.append(True)

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for round_number in range(200):
                registry.replace_source(
                    "forge", [make_addon(f"r{round_number}-{i}", source="forge") for i in range(50)]
                )
        finally:
            stop.set()
            thread.join()

        assert gaps == []

    def test_clear(self, registry: AddonRegistry) -> None:
        """Verify clear empties the registry."""
        registry.register(make_addon("a", source="forge"))

        registry.clear()

        assert registry.size() == 0


class TestFilter:
    """Tests for AddonRegistry.filter."""

    @pytest.fixture
    def populated(self, registry: AddonRegistry) -> AddonRegistry:
        registry.register(
            make_addon(
                "seo",
                source="partner",
                brxm_min="15.0.0",
                brxm_max="16.6.5",
                category=Category.SEO,
                plugin_tier=PluginTier.SERVICE_PLUGIN,
                publisher=Publisher(name="P", type=PublisherType.PARTNER),
            )
        )
        registry.register(
            make_addon(
                "blocks",
                source="forge",
                category=Category.CONTENT_MANAGEMENT,
                plugin_tier=PluginTier.FORGE_ADDON,
                publisher=Publisher(name="B", type=PublisherType.BLOOMREACH),
                versions=[
                    make_epoch("4.0.0", brxm_min="15.0.0", inferred_max="17.0.0"),
                    make_epoch("5.0.0", brxm_min="17.0.0"),
                ],
            )
        )
        registry.register(make_addon("anything", source="forge", category=Category.OTHER))
        return registry

    def test_no_criteria_returns_all(self, populated: AddonRegistry) -> None:
        """Verify an empty filter returns every addon."""
        assert len(populated.filter()) == 3

    def test_enum_criteria(self, populated: AddonRegistry) -> None:
        """Verify category, publisher type and tier filters."""
        assert [a.id for a in populated.filter(category=Category.SEO)] == ["seo"]
        assert [a.id for a in populated.filter(publisher_type=PublisherType.BLOOMREACH)] == ["blocks"]
        assert [a.id for a in populated.filter(plugin_tier=PluginTier.SERVICE_PLUGIN)] == ["seo"]

    def test_criteria_are_combined(self, populated: AddonRegistry) -> None:
        """Verify all criteria must match."""
        assert populated.filter(category=Category.SEO, source_name="forge") == []

    def test_platform_version(self, populated: AddonRegistry) -> None:
        """Verify epoch-aware and range-based version matching."""
        assert {a.id for a in populated.filter(platform_version="16.0.0")} == {"seo", "blocks", "anything"}
        assert {a.id for a in populated.filter(platform_version="17.0.0")} == {"blocks", "anything"}
        assert {a.id for a in populated.filter(platform_version="14.0.0")} == {"anything"}
