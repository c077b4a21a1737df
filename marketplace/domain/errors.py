"""
Exception hierarchy for the addon marketplace.

Manifest errors carry a ``retryable`` flag so the retrying fetcher can decide
whether another attempt makes sense without inspecting messages.
"""
from __future__ import annotations

from typing import Optional


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""


class NotFoundError(MarketplaceError):
    """Raised when a requested manifest, source or addon does not exist."""


# ---------------------------------------------------------------------------
# Manifest fetching
# ---------------------------------------------------------------------------


class ManifestClientError(MarketplaceError):
    """Raised when a manifest cannot be fetched or read."""

    retryable: bool = False

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.location = location


class ManifestNotFoundError(ManifestClientError, NotFoundError):
    """The manifest location does not exist (HTTP 404 or missing file)."""


class ManifestHTTPClientError(ManifestClientError):
    """The server rejected the request with a non-404 4xx (or other non-2xx) status."""

    def __init__(self, message: str, location: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, location)
        self.status_code = status_code


class ManifestServerError(ManifestClientError):
    """The server answered with HTTP 5xx."""

    retryable = True

    def __init__(self, message: str, location: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, location)
        self.status_code = status_code


class ManifestTransportError(ManifestClientError):
    """Connection, timeout or local I/O failure."""

    retryable = True


class ManifestParseError(ManifestClientError):
    """The manifest body is not a valid manifest document."""


# ---------------------------------------------------------------------------
# Descriptors and source configuration
# ---------------------------------------------------------------------------


class DescriptorParseError(MarketplaceError):
    """Raised when a descriptor passes validation but cannot be turned into an Addon."""


class SourceConfigError(MarketplaceError):
    """Raised when the source configuration store cannot be read."""


class SourceNotFoundError(NotFoundError):
    """Raised when a source name is not present in the configuration store."""
