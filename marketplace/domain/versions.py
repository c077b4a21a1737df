"""
Ordering and range checks for dotted numeric versions.

Only the leading digit run of each segment counts, so ``15.0.0-SNAPSHOT``
orders like ``15.0.0`` and a segment such as ``beta`` counts as 0. None of
these helpers raise on malformed input.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from marketplace.domain.models import VersionRange

_LEADING_DIGITS = re.compile(r"\d+")


def _segments(version: str) -> List[int]:
    parts: List[int] = []
    for segment in version.strip().split("."):
        match = _LEADING_DIGITS.match(segment.strip())
        parts.append(int(match.group()) if match else 0)
    return parts


def compare(a: Optional[str], b: Optional[str]) -> int:
    """
    Compare two versions segment by segment.

    The shorter version is padded with zeros. Returns -1, 0 or 1. ``None``
    sorts before any version.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    left = _segments(a)
    right = _segments(b)
    for i in range(max(len(left), len(right))):
        x = left[i] if i < len(left) else 0
        y = right[i] if i < len(right) else 0
        if x != y:
            return -1 if x < y else 1
    return 0


def sort_key(version: Optional[str]) -> Tuple[int, ...]:
    """Key for ``sorted()`` consistent with :func:`compare`."""
    if version is None:
        return ()
    parts = _segments(version)
    # trailing zeros must not make 1.0 and 1.0.0 distinct
    while parts and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def major(version: Optional[str]) -> int:
    """Leading integer of the first segment, or -1 when there is none."""
    if not version or not version.strip():
        return -1
    match = _LEADING_DIGITS.match(version.strip())
    return int(match.group()) if match else -1


def is_in_range(version: Optional[str], version_range: Optional[VersionRange]) -> bool:
    """Inclusive range check. A missing version or range always matches."""
    if version is None or version_range is None:
        return True
    if version_range.min is not None and compare(version, version_range.min) < 0:
        return False
    if version_range.max is not None and compare(version, version_range.max) > 0:
        return False
    return True
