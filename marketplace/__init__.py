"""
Addon marketplace aggregator.

This package is responsible for:
* Fetching addon manifests from remote URLs or local files, with a TTL cache.
* Retrying transient manifest failures with exponential backoff.
* Ingesting each configured source into an in-memory addon registry.
* Resolving which addon release line (epoch) fits a given brXM version.
* Exposing the registry and refresh triggers over a small FastAPI surface.
"""
