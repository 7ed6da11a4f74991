"""Working set discovery.

Expands the configured workspace globs into package directories and reads
their descriptors, checking that every package name is unique.
"""

from __future__ import annotations

import glob
from collections.abc import Sequence
from pathlib import Path

from .descriptor import DESCRIPTOR_FILENAME, read_descriptor
from .errors import DuplicatePackageError
from .models import PackageDescriptor, ReleaseConfig


def discover_packages(root: Path, config: ReleaseConfig) -> list[Path]:
    """Find the package directories that make up the release.

    Directories matching the workspace globs come first (sorted per glob),
    followed by the extra packages developed outside the channel workspace.
    Directories without a package.json are skipped by the globs; extra
    packages are kept so a missing descriptor surfaces as an error.
    """
    found: list[Path] = []
    for pattern in config.workspaces:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / DESCRIPTOR_FILENAME).is_file():
                found.append(p)

    for extra in config.extra_packages:
        found.append(root / extra)

    # Drop duplicates while preserving order
    seen: set[Path] = set()
    paths: list[Path] = []
    for p in found:
        key = p.resolve()
        if key not in seen:
            seen.add(key)
            paths.append(p)
    return paths


def load_working_set(paths: Sequence[Path]) -> list[PackageDescriptor]:
    """Read every descriptor in the working set.

    Raises:
        DuplicatePackageError: If two directories declare the same name.
    """
    descriptors = [read_descriptor(p) for p in paths]

    by_name: dict[str, list[Path]] = {}
    for d in descriptors:
        by_name.setdefault(d.name, []).append(d.path)
    for name, owners in by_name.items():
        if len(owners) > 1:
            raise DuplicatePackageError(name, owners)

    return descriptors


def find_umbrella_paths(
    descriptors: Sequence[PackageDescriptor], umbrella: str
) -> list[Path]:
    """Return the directories whose package is the umbrella package."""
    return [d.path for d in descriptors if d.name == umbrella]
