"""JSON version files: package.json, package-lock.json and Tauri configs.

All are re-serialized with ``json``, keeping key order, the file's
indentation and its trailing newline.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from .exceptions import ValidationError
from .versions import Version

logger = logging.getLogger(__name__)

NPM_DEPENDENCY_KEYS = ("dependencies", "devDependencies", "peerDependencies")
RANGE_PREFIX_RE = re.compile(r"^(?P<prefix>workspace:)?(?P<op>[\^~]|[<>]=?|=)?\s*(?P<version>.*)$")


def load_json(content: str, path: Path) -> dict[str, Any]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as err:
        raise ValidationError(f"Invalid JSON in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a JSON object")
    return data


def dump_json(data: dict[str, Any], original: str) -> str:
    """Serialize data using the indentation and final newline of original."""
    match = re.search(r"^([ \t]+)\S", original, flags=re.MULTILINE)
    indent: str | int = match.group(1) if match else 2
    text = json.dumps(data, indent=indent, ensure_ascii=False)
    return text + "\n" if original.endswith("\n") else text


def top_level_version(data: dict[str, Any], path: Path) -> Version:
    version = data.get("version")
    if not isinstance(version, str):
        raise ValidationError(f"{path} has no version field")
    return Version.parse(version)


def split_range(spec: str) -> tuple[str, str]:
    """Split an npm range into (operator prefix, version).

    Example:
        split_range("^1.2.3") → ("^", "1.2.3")
    """
    match = RANGE_PREFIX_RE.match(spec.strip())
    assert match is not None
    return f"{match['prefix'] or ''}{match['op'] or ''}", match["version"]


def package_json_dependency_names(data: dict[str, Any]) -> set[str]:
    names: set[str] = set()
    for key in NPM_DEPENDENCY_KEYS:
        deps = data.get(key)
        if isinstance(deps, dict):
            names.update(deps)
    return names


# package.json


def read_package_json(content: str, path: Path, dependency: str | None = None) -> Version:
    """Read the top-level version, or the version dependency is declared with."""
    data = load_json(content, path)
    if dependency is None:
        return top_level_version(data, path)
    for key in NPM_DEPENDENCY_KEYS:
        deps = data.get(key)
        spec = deps.get(dependency) if isinstance(deps, dict) else None
        if isinstance(spec, str):
            return Version.parse(split_range(spec)[1])
    raise ValidationError(f"{path} does not depend on {dependency}")


def write_package_json(
    content: str, path: Path, version: Version, dependency: str | None = None
) -> str:
    """Set the top-level version, or every declaration of dependency.

    Range operators such as ``^`` or ``~`` in front of a dependency's
    version are kept.
    """
    data = load_json(content, path)
    if dependency is None:
        data["version"] = str(version)
        return dump_json(data, content)
    updated = False
    for key in NPM_DEPENDENCY_KEYS:
        deps = data.get(key)
        if isinstance(deps, dict) and isinstance(deps.get(dependency), str):
            prefix, _ = split_range(deps[dependency])
            deps[dependency] = f"{prefix}{version}"
            updated = True
    if not updated:
        raise ValidationError(f"{path} does not depend on {dependency}")
    return dump_json(data, content)


# package-lock.json


def _check_lockfile_version(data: dict[str, Any], path: Path) -> None:
    if data.get("lockfileVersion") not in (2, 3):
        logger.warning("%s lockfileVersion is not 2 or 3, errors may occur", path)


def read_package_lock(content: str, path: Path, dependency: str | None = None) -> Version:
    """Read the root version, or the locked version of a workspace member."""
    data = load_json(content, path)
    if dependency is None:
        return top_level_version(data, path)
    packages = data.get("packages")
    if isinstance(packages, dict):
        for package in packages.values():
            if isinstance(package, dict) and package.get("name") == dependency:
                return top_level_version(package, path)
    raise ValidationError(f"{path} has no package named {dependency}")


def write_package_lock(
    content: str, path: Path, version: Version, dependency: str | None = None
) -> str:
    """Update the lockfile for a new root version or a new member version.

    Without dependency the root ``version`` and ``packages[""].version`` are
    set. With it every package entry named dependency gets the new version,
    as do references to it from other entries' dependency maps.
    """
    data = load_json(content, path)
    _check_lockfile_version(data, path)
    new = str(version)
    packages = data.get("packages")
    if dependency is None:
        data["version"] = new
        if isinstance(packages, dict) and isinstance(packages.get(""), dict):
            packages[""]["version"] = new
        return dump_json(data, content)
    if not isinstance(packages, dict):
        return dump_json(data, content)
    for package in packages.values():
        if not isinstance(package, dict):
            continue
        if package.get("name") == dependency:
            package["version"] = new
        for key in ("dependencies", "devDependencies"):
            deps = package.get(key)
            if isinstance(deps, dict) and dependency in deps:
                deps[dependency] = new
    return dump_json(data, content)


# tauri.conf.json and its per-platform variants


def read_tauri_conf(content: str, path: Path) -> Version:
    return top_level_version(load_json(content, path), path)


def write_tauri_conf(content: str, path: Path, version: Version) -> str:
    data = load_json(content, path)
    data["version"] = str(version)
    return dump_json(data, content)
