"""Extension version comparisons.

Xdebug reports versions such as ``2.9.5``, ``3.0.0RC1`` or ``3.1.0beta2``.
Major/minor gates compare release tuples only, so a pre-release of 3.1 is
treated as 3.1 the way PHP's ``version_compare`` does.
"""

from __future__ import annotations

from packaging.version import InvalidVersion, Version


def parse_version(raw: str) -> Version:
    """Parse an extension version string, tolerating a ``-dev`` style suffix."""
    try:
        return Version(raw)
    except InvalidVersion:
        head = raw.strip().split("-", 1)[0]
        return Version(head)


def release_at_least(raw: str, *release: int) -> bool:
    """Return True if the release tuple of *raw* is >= *release*."""
    parsed = parse_version(raw).release
    width = max(len(parsed), len(release))
    padded = parsed + (0,) * (width - len(parsed))
    wanted = release + (0,) * (width - len(release))
    return padded >= wanted


def older_than(raw: str, other: str) -> bool:
    """Full comparison, pre-release segments included."""
    return parse_version(raw) < parse_version(other)
