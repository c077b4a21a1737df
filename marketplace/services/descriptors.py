"""
Descriptor validation and parsing.

A descriptor is one addon entry, written as YAML or JSON. Validation checks it
against the descriptor schema and reports every problem found; parsing turns a
descriptor into an :class:`~marketplace.domain.models.Addon`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marketplace.domain import versions
from marketplace.domain.errors import DescriptorParseError
from marketplace.domain.models import (
    Addon,
    ArtifactType,
    Category,
    PluginTier,
    PublisherType,
    Target,
    ValidationResult,
    VersionString,
)

logger = logging.getLogger(__name__)

ADDON_ID_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
MIN_DESCRIPTION_LENGTH = 10


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class _SchemaModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class _RangeSchema(_SchemaModel):
    min: Optional[VersionString] = None
    max: Optional[VersionString] = None


class _BrxmRangeSchema(_SchemaModel):
    min: VersionString
    max: Optional[VersionString] = None


class _CompatibilitySchema(_SchemaModel):
    brxm: _BrxmRangeSchema
    java: Optional[_RangeSchema] = None


class _EpochCompatibilitySchema(_SchemaModel):
    brxm: Optional[_RangeSchema] = None
    java: Optional[_RangeSchema] = None


class _RepositorySchema(_SchemaModel):
    url: str = Field(min_length=1)
    branch: Optional[str] = None


class _PublisherSchema(_SchemaModel):
    name: str = Field(min_length=1)
    type: PublisherType
    url: Optional[str] = None


class _MavenSchema(_SchemaModel):
    groupId: str = Field(min_length=1)
    artifactId: str = Field(min_length=1)
    version: Optional[VersionString] = None
    target: Optional[Target] = None
    versionProperty: Optional[str] = None


class _HcmSchema(_SchemaModel):
    modulePath: Optional[str] = None
    packageUrl: Optional[str] = None


class _ArtifactSchema(_SchemaModel):
    type: ArtifactType
    maven: Optional[_MavenSchema] = None
    hcm: Optional[_HcmSchema] = None


class _EpochSchema(_SchemaModel):
    version: VersionString
    compatibility: Optional[_EpochCompatibilitySchema] = None
    artifacts: Optional[List[_ArtifactSchema]] = None


class DescriptorSchema(_SchemaModel):
    """
    Required shape of an addon descriptor.

    ``id`` may be omitted because ingestion falls back to the manifest pointer's
    id, but when present it must be kebab-case.
    """

    id: Optional[str] = Field(default=None, pattern=ADDON_ID_PATTERN)
    name: str = Field(min_length=1)
    version: VersionString = Field(min_length=1)
    description: str = Field(min_length=MIN_DESCRIPTION_LENGTH)
    repository: _RepositorySchema
    publisher: _PublisherSchema
    category: Category
    pluginTier: PluginTier
    compatibility: _CompatibilitySchema
    artifacts: List[_ArtifactSchema] = Field(min_length=1)
    versions: Optional[List[_EpochSchema]] = None


def format_validation_errors(error: ValidationError) -> List[str]:
    """
    Turn a pydantic ValidationError into short ``'<field>': <problem>`` strings.
    """
    messages = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        error_type = err["type"]
        if error_type == "missing":
            messages.append(f"'{loc}': field is required")
        elif error_type == "string_type":
            messages.append(f"'{loc}': expected string")
        elif error_type == "list_type":
            messages.append(f"'{loc}': expected list")
        else:
            messages.append(f"'{loc}': {err['msg'].lower()}")
    return messages


def load_document(content: str) -> Any:
    """JSON when the text starts with ``{`` or ``[``, YAML otherwise."""
    stripped = content.lstrip()
    if stripped.startswith(("{", "[")):
        return json.loads(stripped)
    return yaml.safe_load(content)


# ---------------------------------------------------------------------------
# Validator and parser
# ---------------------------------------------------------------------------


class DescriptorValidator:
    def validate(self, content: str) -> ValidationResult:
        try:
            data = load_document(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            return ValidationResult.error(f"Failed to parse descriptor: {e}")
        if not isinstance(data, dict):
            return ValidationResult.error("Descriptor must be a mapping")

        try:
            DescriptorSchema.model_validate(data)
        except ValidationError as e:
            return ValidationResult.invalid(format_validation_errors(e))
        return ValidationResult.ok()


class DescriptorParser:
    """
    Builds Addon objects from descriptor text.

    Epochs are re-ordered ascending by version so lookups can take the first
    match.
    """

    def parse(self, content: str) -> Addon:
        try:
            data = load_document(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DescriptorParseError(f"Failed to parse descriptor: {e}") from e
        if not isinstance(data, dict):
            raise DescriptorParseError("Descriptor must be a mapping")

        try:
            addon = Addon.model_validate(data)
        except ValidationError as e:
            raise DescriptorParseError("Invalid descriptor: " + "; ".join(format_validation_errors(e))) from e

        # inferredMax is expected in the manifest; infer_max only runs when epochs are assembled
        if addon.versions:
            addon.versions = sorted(addon.versions, key=lambda epoch: versions.sort_key(epoch.version))
        return addon
