"""package.json reading and writing.

Writes always replace the whole file using the same layout npm and yarn
produce (two-space indent, original key order, trailing newline) so that
version-control diffs only show the fields that actually changed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import DescriptorMalformedError, DescriptorNotFoundError
from .models import PackageDescriptor

DESCRIPTOR_FILENAME = "package.json"

_DEP_FIELDS = {
    "dependencies": "dependencies",
    "peerDependencies": "peer_dependencies",
    "devDependencies": "dev_dependencies",
}


def descriptor_path(package_dir: Path) -> Path:
    return package_dir / DESCRIPTOR_FILENAME


def read_descriptor(package_dir: Path) -> PackageDescriptor:
    """Read the package.json in package_dir.

    Raises:
        DescriptorNotFoundError: If there is no package.json.
        DescriptorMalformedError: If it is not a JSON object with string
            name/version and string-to-string dependency maps.
    """
    path = descriptor_path(package_dir)
    if not path.is_file():
        raise DescriptorNotFoundError(package_dir)

    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DescriptorMalformedError(package_dir, str(exc)) from exc

    if not isinstance(doc, dict):
        raise DescriptorMalformedError(package_dir, "top level is not an object")

    for key in ("name", "version"):
        if not isinstance(doc.get(key), str):
            raise DescriptorMalformedError(package_dir, f'"{key}" must be a string')

    deps: dict[str, dict[str, str] | None] = {}
    for key, attr in _DEP_FIELDS.items():
        deps[attr] = _dependency_map(package_dir, key, doc.get(key))

    private = doc.get("private")
    if private is not None and not isinstance(private, bool):
        raise DescriptorMalformedError(package_dir, '"private" must be a boolean')

    return PackageDescriptor(
        path=package_dir,
        name=doc["name"],
        version=doc["version"],
        private=private,
        document=doc,
        **deps,
    )


def _dependency_map(package_dir: Path, key: str, value: Any) -> dict[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise DescriptorMalformedError(
            package_dir, f'"{key}" must map package names to version ranges'
        )
    return dict(value)


def to_document(descriptor: PackageDescriptor) -> dict[str, Any]:
    """Merge the typed fields back into the original document.

    Existing keys keep their position; keys that were absent and are now
    set are appended, and optional keys set to None are dropped.
    """
    doc = dict(descriptor.document)
    doc["name"] = descriptor.name
    doc["version"] = descriptor.version
    for key, attr in _DEP_FIELDS.items():
        value = getattr(descriptor, attr)
        if value is None:
            doc.pop(key, None)
        else:
            doc[key] = dict(value)
    if descriptor.private is None:
        doc.pop("private", None)
    else:
        doc["private"] = descriptor.private
    return doc


def write_descriptor(descriptor: PackageDescriptor) -> None:
    """Replace the package.json at descriptor.path. No backup is kept."""
    text = json.dumps(to_document(descriptor), indent=2, ensure_ascii=False)
    descriptor_path(descriptor.path).write_text(f"{text}\n", encoding="utf-8")
