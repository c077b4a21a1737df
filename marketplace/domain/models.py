"""
Pydantic models for the addon marketplace.

This module defines all data models used throughout the application, including:
- Addon descriptors, release lines (epochs), artifacts and compatibility ranges
- The manifest document published by each source
- Source configuration read from the configuration store
- Ingestion and validation results reported by the refresh pipeline

Wire names follow the manifest JSON (camelCase). Python attributes are snake_case
and every model accepts either form on input.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _coerce_version(value: Any) -> Any:
    # YAML parses unquoted versions such as 16.6 as floats
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


VersionString = Annotated[str, BeforeValidator(_coerce_version)]


class WireModel(BaseModel):
    """Base for models read from and written to manifest JSON."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Dump using camelCase wire names, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Category(str, Enum):
    SECURITY = "security"
    INTEGRATION = "integration"
    DEVELOPER_TOOLS = "developer-tools"
    CONTENT_MANAGEMENT = "content-management"
    SEARCH = "search"
    SEO = "seo"
    ANALYTICS = "analytics"
    OTHER = "other"


class PublisherType(str, Enum):
    BLOOMREACH = "bloomreach"
    COMMUNITY = "community"
    PARTNER = "partner"


class PluginTier(str, Enum):
    FORGE_ADDON = "forge-addon"
    SERVICE_PLUGIN = "service-plugin"


class ArtifactType(str, Enum):
    MAVEN_LIB = "maven-lib"
    HCM_MODULE = "hcm-module"


class Target(str, Enum):
    """Where in a brXM project a Maven dependency is installed."""

    CMS = "cms"
    SITE_COMPONENTS = "site-components"
    SITE_WEBAPP = "site-webapp"
    PLATFORM = "platform"
    PARENT = "parent"


# ---------------------------------------------------------------------------
# Addon descriptor models
# ---------------------------------------------------------------------------


class VersionRange(WireModel):
    """
    Inclusive version range. Either bound may be absent.
    """

    min: Optional[VersionString] = Field(default=None, description="Lowest supported version (inclusive).")
    max: Optional[VersionString] = Field(default=None, description="Highest supported version (inclusive).")


class Compatibility(WireModel):
    brxm: Optional[VersionRange] = Field(default=None, description="Supported brXM platform versions.")
    java: Optional[VersionRange] = Field(default=None, description="Supported Java versions.")


class MavenCoordinates(WireModel):
    group_id: Optional[str] = Field(default=None, alias="groupId")
    artifact_id: Optional[str] = Field(default=None, alias="artifactId")
    version: Optional[VersionString] = None
    target: Optional[Target] = Field(
        default=None,
        description="Project module the dependency belongs to.",
    )
    version_property: Optional[str] = Field(
        default=None,
        alias="versionProperty",
        description="Maven property holding the version (e.g., 'my-addon.version').",
    )

    @property
    def coordinates(self) -> str:
        """groupId:artifactId:version, skipping missing parts."""
        return ":".join(part for part in (self.group_id, self.artifact_id, self.version) if part)


class HcmInfo(WireModel):
    module_path: Optional[str] = Field(default=None, alias="modulePath")
    package_url: Optional[str] = Field(default=None, alias="packageUrl")


class Artifact(WireModel):
    """
    One installable unit of an addon: a Maven library or an HCM module.
    """

    type: Optional[ArtifactType] = None
    maven: Optional[MavenCoordinates] = None
    hcm: Optional[HcmInfo] = None


class RepositoryLink(WireModel):
    url: Optional[str] = None
    branch: Optional[str] = None


class Publisher(WireModel):
    name: Optional[str] = None
    type: Optional[PublisherType] = None
    url: Optional[str] = None


class AddonVersion(WireModel):
    """
    One release line (epoch) of an addon, identified by its major version.

    ``inferred_max`` is computed, never authored: it holds the next epoch's
    minimum brXM version and is treated as an exclusive upper bound.
    """

    version: Optional[VersionString] = None
    compatibility: Optional[Compatibility] = None
    artifacts: List[Artifact] = Field(default_factory=list)
    inferred_max: Optional[VersionString] = Field(
        default=None,
        alias="inferredMax",
        description="Exclusive brXM ceiling derived from the next epoch's min.",
    )

    @field_validator("artifacts", mode="before")
    @classmethod
    def _null_artifacts(cls, value: Any) -> Any:
        return [] if value is None else value


class Addon(WireModel):
    """
    A catalog entry describing one installable addon.

    ``source`` is not authored in descriptors; ingestion stamps it with the
    name of the source the addon was loaded from.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    source: Optional[str] = Field(default=None, description="Name of the source this addon was ingested from.")
    version: Optional[VersionString] = None
    description: Optional[str] = None
    repository: Optional[RepositoryLink] = None
    publisher: Optional[Publisher] = None
    category: Optional[Category] = None
    plugin_tier: Optional[PluginTier] = Field(default=None, alias="pluginTier")
    compatibility: Optional[Compatibility] = None
    artifacts: List[Artifact] = Field(default_factory=list)
    versions: List[AddonVersion] = Field(
        default_factory=list,
        description="Release lines ordered ascending by major version. Empty for single-line addons.",
    )

    @field_validator("artifacts", "versions", mode="before")
    @classmethod
    def _null_lists(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def brxm_range(self) -> Optional[VersionRange]:
        return self.compatibility.brxm if self.compatibility else None


# ---------------------------------------------------------------------------
# Manifest models
# ---------------------------------------------------------------------------


class ManifestSource(WireModel):
    name: Optional[str] = None
    url: Optional[str] = None
    commit: Optional[str] = None


class AddonsManifest(WireModel):
    """
    The document published by one source.

    ``addons`` keeps the raw entries so each one is validated on its own during
    ingestion; a single malformed entry must not reject the whole manifest.
    """

    version: Optional[VersionString] = None
    generated_at: Optional[str] = Field(default=None, alias="generatedAt", description="ISO-8601 generation timestamp.")
    source: Optional[ManifestSource] = None
    addons: List[Any] = Field(default_factory=list)

    @field_validator("addons", mode="before")
    @classmethod
    def _null_addons(cls, value: Any) -> Any:
        return [] if value is None else value

    def addon_entries(self) -> Iterator[Dict[str, Any]]:
        """Yield the addon entries that are JSON objects, skipping anything else."""
        for entry in self.addons:
            if isinstance(entry, dict):
                yield entry

    def find_entry(self, addon_id: str) -> Optional[Dict[str, Any]]:
        for entry in self.addon_entries():
            if entry.get("id") == addon_id:
                return entry
        return None


class AddonSource(BaseModel):
    """
    Lightweight pointer to one addon inside a manifest.

    ``path`` is ``<manifest location>#<addon id>``.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    path: str


# ---------------------------------------------------------------------------
# Source configuration
# ---------------------------------------------------------------------------


DEFAULT_PRIORITY = 0
DEFAULT_SOURCE_PRIORITY = 100


class SourceConfig(WireModel):
    """
    One manifest origin as stored in the source configuration store.

    Higher ``priority`` sources are ingested first.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = Field(min_length=1, description="Unique source name, also used as the addon qualifier.")
    location: str = Field(min_length=1, alias="url", description="Manifest URL or local path.")
    enabled: bool = True
    priority: int = DEFAULT_PRIORITY
    readonly: bool = False

    @classmethod
    def of(cls, name: str, location: str) -> "SourceConfig":
        return cls(name=name, location=location)

    @classmethod
    def default_source(cls, name: str, location: str) -> "SourceConfig":
        """The built-in source: enabled, highest default priority, not editable."""
        return cls(name=name, location=location, enabled=True, priority=DEFAULT_SOURCE_PRIORITY, readonly=True)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def invalid(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=False, errors=list(errors))

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls(valid=False, errors=[message])


class IngestionResult(BaseModel):
    """
    Outcome of ingesting one source.
    """

    model_config = ConfigDict(frozen=True)

    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    failures: List[str] = Field(default_factory=list, description="One diagnostic per failed addon.")

    @classmethod
    def empty(cls) -> "IngestionResult":
        return cls()

    @classmethod
    def builder(cls) -> "IngestionResultBuilder":
        return IngestionResultBuilder()


class IngestionResultBuilder:
    def __init__(self) -> None:
        self.success_count = 0
        self.failure_count = 0
        self.skipped_count = 0
        self.failures: List[str] = []

    def success(self) -> "IngestionResultBuilder":
        self.success_count += 1
        return self

    def failure(self, message: str) -> "IngestionResultBuilder":
        self.failure_count += 1
        self.failures.append(message)
        return self

    def skipped(self) -> "IngestionResultBuilder":
        self.skipped_count += 1
        return self

    def build(self) -> IngestionResult:
        return IngestionResult(
            success_count=self.success_count,
            failure_count=self.failure_count,
            skipped_count=self.skipped_count,
            failures=list(self.failures),
        )


class MultiSourceResult(BaseModel):
    """
    Aggregated outcome of refreshing every enabled source.

    A failed source still appears in ``source_results`` with an empty result so
    callers can iterate sources without special-casing failures.
    """

    model_config = ConfigDict(frozen=True)

    source_results: Dict[str, IngestionResult] = Field(default_factory=dict)
    failed_sources: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict, description="Diagnostic per failed source.")

    @property
    def total_success(self) -> int:
        return sum(r.success_count for r in self.source_results.values())

    @property
    def total_failure(self) -> int:
        return sum(r.failure_count for r in self.source_results.values())

    @property
    def total_skipped(self) -> int:
        return sum(r.skipped_count for r in self.source_results.values())

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_sources)

    def summary(self) -> Dict[str, Any]:
        return {
            "sources": {name: r.model_dump() for name, r in self.source_results.items()},
            "failed_sources": list(self.failed_sources),
            "errors": dict(self.errors),
            "total_success": self.total_success,
            "total_failure": self.total_failure,
            "total_skipped": self.total_skipped,
        }

    @classmethod
    def builder(cls) -> "MultiSourceResultBuilder":
        return MultiSourceResultBuilder()


class MultiSourceResultBuilder:
    def __init__(self) -> None:
        self.source_results: Dict[str, IngestionResult] = {}
        self.failed_sources: List[str] = []
        self.errors: Dict[str, str] = {}

    def add(self, source_name: str, result: IngestionResult) -> "MultiSourceResultBuilder":
        self.source_results[source_name] = result
        return self

    def add_failure(self, source_name: str, message: str) -> "MultiSourceResultBuilder":
        self.source_results[source_name] = IngestionResult.empty()
        self.failed_sources.append(source_name)
        self.errors[source_name] = message
        return self

    def build(self) -> MultiSourceResult:
        return MultiSourceResult(
            source_results=dict(self.source_results),
            failed_sources=list(self.failed_sources),
            errors=dict(self.errors),
        )
