"""Version parsing and planning.

The umbrella package gets a normal patch bump so it stays orderable from one
release to the next. Every other package gets a prerelease version unique to
the revision being released, since nothing outside the channel depends on it.
"""

from __future__ import annotations

from collections.abc import Sequence

import semver

from .errors import InvalidVersionError
from .models import PackageDescriptor, VersionPlan
from .shell import Shell


def parse_version(version_str: str, package: str | None = None) -> semver.Version:
    """Parse a strict semantic version string.

    Raises:
        InvalidVersionError: If version_str is not valid semver.
    """
    try:
        return semver.Version.parse(version_str)
    except (ValueError, TypeError) as exc:
        raise InvalidVersionError(version_str, package) from exc


def bump_patch(version_str: str, package: str | None = None) -> str:
    """Increment the patch version and return as a string.

    Examples:
        "1.2.3" → "1.2.4"
        "1.2.3-exp.abc" → "1.2.4"
    """
    return str(parse_version(version_str, package).bump_patch())


def prerelease_version(
    version_str: str, channel: str, build_id: str, package: str | None = None
) -> str:
    """Build <major.minor.patch>-<channel>.<build_id>.

    Any prerelease or build suffix already on the version is dropped first,
    so running twice on the same revision yields the same result.

    Examples:
        ("0.5.0", "exp", "abcdef") → "0.5.0-exp.abcdef"
        ("0.5.0-exp.123456", "exp", "abcdef") → "0.5.0-exp.abcdef"
    """
    core = parse_version(version_str, package).finalize_version()
    return str(core.replace(prerelease=f"{channel}.{build_id}"))


def plan_versions(
    descriptors: Sequence[PackageDescriptor],
    umbrella: str,
    channel: str,
    build_id: str,
) -> VersionPlan:
    """Compute the next version for every package in the working set."""
    versions: dict[str, str] = {}
    for d in descriptors:
        if d.name == umbrella:
            versions[d.name] = bump_patch(d.version, d.name)
        else:
            versions[d.name] = prerelease_version(d.version, channel, build_id, d.name)
    return VersionPlan(versions=versions)


def resolve_build_id(shell: Shell) -> str:
    """Return the short hash of the current revision."""
    return shell.git("rev-parse", "--short", "HEAD")
