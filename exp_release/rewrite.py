"""Package name and version rewriting.

Turns development descriptors (e.g. "@firebase/app-exp", private) into the
registry-facing form ("@firebase/app", public, planned versions) and back.
The reverse direction never inverts names: the original descriptors are
restored from version control, and only versions are rewritten afterwards.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from .descriptor import read_descriptor, write_descriptor
from .models import PackageDescriptor, ReleaseChannel, RewriteOptions, VersionPlan
from .shell import info, pkg, ver


@lru_cache(maxsize=None)
def _suffix_pattern(suffix: str) -> re.Pattern[str]:
    # Greedy prefix: the last marker wins. The marker must end the name or
    # be followed by another name segment.
    return re.compile(rf"^(.*){re.escape(suffix)}(?=$|[-/])(.*)$")


def strip_channel_suffix(name: str, channel: ReleaseChannel) -> str:
    """Remove the channel marker from a package name.

    Names without the marker are returned unchanged.

    Examples:
        "@firebase/app-exp" → "@firebase/app"
        "firebase-exp" → "firebase"
        "@firebase/app-exp-types" → "@firebase/app-types"
        "@firebase/util" → "@firebase/util"
    """
    match = _suffix_pattern(channel.suffix).match(name)
    if not match:
        return name
    return f"{match.group(1)}{match.group(2)}"


def _rewrite_dependency_map(
    deps: dict[str, str] | None, plan: VersionPlan, channel: ReleaseChannel
) -> dict[str, str] | None:
    """Strip names and pin planned dependencies; leave unplanned ranges alone."""
    if deps is None:
        return None
    rewritten: dict[str, str] = {}
    for dep, range_ in deps.items():
        planned = plan.get(dep)
        rewritten[strip_channel_suffix(dep, channel)] = planned if planned else range_
    return rewritten


def rewrite_descriptor(
    descriptor: PackageDescriptor,
    plan: VersionPlan,
    options: RewriteOptions,
    channel: ReleaseChannel,
) -> PackageDescriptor:
    """Return a new snapshot with the requested rewrites applied.

    devDependencies are never touched: they do not affect consumers of the
    published package.
    """
    update: dict[str, object] = {}

    if options.update_versions:
        planned = plan.get(descriptor.name)
        if planned:
            update["version"] = planned

    if options.remove_channel_suffix_from_name:
        update["name"] = strip_channel_suffix(descriptor.name, channel)
        update["dependencies"] = _rewrite_dependency_map(
            descriptor.dependencies, plan, channel
        )
        update["peer_dependencies"] = _rewrite_dependency_map(
            descriptor.peer_dependencies, plan, channel
        )

    if options.make_public:
        update["private"] = False

    return descriptor.model_copy(update=update)


def rewrite_packages(
    paths: Sequence[Path],
    plan: VersionPlan,
    options: RewriteOptions,
    channel: ReleaseChannel,
) -> list[PackageDescriptor]:
    """Rewrite the package.json of every path in place.

    Each descriptor is re-read from disk, so earlier snapshots never leak
    into the written file.
    """
    written: list[PackageDescriptor] = []
    for path in paths:
        current = read_descriptor(path)
        updated = rewrite_descriptor(current, plan, options, channel)

        if updated.version != current.version:
            info(
                f"Updating {pkg(current.name)} from {ver(current.version)} "
                f"to {ver(updated.version)}"
            )
        if updated.name != current.name:
            info(f"Renaming {pkg(current.name)} to {pkg(updated.name)}")

        write_descriptor(updated)
        written.append(updated)
    return written
