"""
Epoch resolution: picking the addon release line that fits a brXM version.

An addon may publish several epochs, one per major version, each with its own
brXM range and artifacts. An epoch without an explicit ``max`` is capped by the
next epoch's ``min`` through ``inferred_max``, which is exclusive.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from marketplace.domain import versions
from marketplace.domain.models import Addon, AddonVersion, Artifact, VersionRange

logger = logging.getLogger(__name__)


def _brxm(epoch: AddonVersion) -> Optional[VersionRange]:
    return epoch.compatibility.brxm if epoch.compatibility else None


def is_epoch_compatible(epoch: AddonVersion, target: str) -> bool:
    brxm = _brxm(epoch)
    if brxm is None:
        return False
    if brxm.min is not None and versions.compare(target, brxm.min) < 0:
        return False
    if brxm.max is not None:
        return versions.compare(target, brxm.max) <= 0
    if epoch.inferred_max is not None:
        return versions.compare(target, epoch.inferred_max) < 0
    return True


def find_compatible_epoch(addon: Addon, target: Optional[str]) -> Optional[AddonVersion]:
    if not target or not addon.versions:
        return None
    for epoch in addon.versions:
        if is_epoch_compatible(epoch, target):
            return epoch
    return None


def infer_max(epochs: List[AddonVersion]) -> List[AddonVersion]:
    """
    Cap each open-ended epoch at the next epoch's minimum.

    Only epochs that have a brXM block without ``max`` are touched, and only
    when the following epoch declares a ``min``. Mutates and returns ``epochs``.
    """
    for current, following in zip(epochs, epochs[1:]):
        current_range = _brxm(current)
        next_range = _brxm(following)
        if current_range is None or current_range.max is not None:
            continue
        if next_range is None or next_range.min is None:
            continue
        current.inferred_max = next_range.min
    return epochs


def assemble_epochs(candidates: Iterable[AddonVersion]) -> List[AddonVersion]:
    """
    Build an epoch list from arbitrary releases.

    Releases are grouped by major version and only the highest release of each
    major is kept. Releases without a numeric major are dropped.
    """
    latest_per_major: Dict[int, AddonVersion] = {}
    for candidate in candidates:
        key = versions.major(candidate.version)
        if key < 0:
            logger.debug(f"Ignoring release without a numeric major version: {candidate.version!r}")
            continue
        existing = latest_per_major.get(key)
        if existing is None or versions.compare(candidate.version, existing.version) > 0:
            latest_per_major[key] = candidate

    ordered = [latest_per_major[k] for k in sorted(latest_per_major)]
    return infer_max(ordered)


def matches_platform_version(addon: Addon, target: str) -> bool:
    """
    Whether ``addon`` supports brXM ``target``.

    Addons with epochs match when any epoch does. Otherwise the addon's own brXM
    range is used, and an addon without one matches everything.
    """
    if addon.versions:
        return find_compatible_epoch(addon, target) is not None
    return versions.is_in_range(target, addon.brxm_range)


# ---------------------------------------------------------------------------
# Effective values for a given brXM version
# ---------------------------------------------------------------------------


def effective_version(addon: Addon, target: Optional[str]) -> Optional[str]:
    epoch = find_compatible_epoch(addon, target)
    if epoch is not None and epoch.version:
        return epoch.version
    return addon.version


def effective_artifacts(addon: Addon, target: Optional[str]) -> List[Artifact]:
    epoch = find_compatible_epoch(addon, target)
    if epoch is not None and epoch.artifacts:
        return epoch.artifacts
    return addon.artifacts


def recommended_version(addon: Addon, target: Optional[str]) -> Optional[str]:
    """The epoch version to suggest instead of the latest, if it differs."""
    epoch = find_compatible_epoch(addon, target)
    if epoch is None or not epoch.version or epoch.version == addon.version:
        return None
    return epoch.version


def describe_range(addon: Addon, target: Optional[str] = None) -> Optional[str]:
    """
    Human-readable brXM range, e.g. ``"15.0.0 - 17.0.0"`` or ``"16.0.0+"``.

    Uses the matching epoch's range when ``target`` selects one.
    """
    epoch = find_compatible_epoch(addon, target)
    if epoch is not None:
        brxm = _brxm(epoch)
        ceiling = (brxm.max if brxm else None) or epoch.inferred_max
    else:
        brxm = addon.brxm_range
        ceiling = brxm.max if brxm else None
    if brxm is None or brxm.min is None:
        return None
    if ceiling:
        return f"{brxm.min} - {ceiling}"
    return f"{brxm.min}+"
