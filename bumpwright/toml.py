"""TOML version files: Cargo.toml, Cargo.lock, pyproject.toml and gleam.toml.

Uses tomlkit to preserve formatting and comments when rewriting versions,
so a release touches nothing but the version strings themselves.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterator

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .deps import pin_dependency, pinned_version
from .exceptions import ValidationError, VersionConflictError
from .versions import Version

logger = logging.getLogger(__name__)

CARGO_DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")
REQUIREMENT_OPERATOR_RE = re.compile(r"^\s*(?P<op>[=^~<>]*)\s*(?P<version>.*)$")


def load_toml(content: str, path: Path) -> tomlkit.TOMLDocument:
    """Parse TOML content into a document that preserves formatting.

    Raises:
        ValidationError: If the content is not valid TOML.
    """
    try:
        return tomlkit.parse(content)
    except TOMLKitError as err:
        raise ValidationError(f"Invalid TOML in {path}: {err}") from err


def dump_toml(doc: tomlkit.TOMLDocument) -> str:
    """Serialize a TOMLDocument, preserving original formatting."""
    return tomlkit.dumps(doc)


def _version_of(value: Any, path: Path, where: str) -> Version:
    if value is None:
        raise ValidationError(f"{path} has no {where}")
    return Version.parse(str(value))


# Cargo.toml


def cargo_package_name(doc: tomlkit.TOMLDocument, path: Path) -> str:
    """The [package].name of a Cargo manifest."""
    name = doc.get("package", {}).get("name")
    if name is None:
        raise ValidationError(f"{path} is missing package.name")
    return str(name)


def _cargo_dependency_entries(doc: tomlkit.TOMLDocument) -> Iterator[tuple[Any, str]]:
    """Yield (table, key) for every dependency table of a manifest."""
    for table_name in CARGO_DEPENDENCY_TABLES:
        table = doc.get(table_name)
        if isinstance(table, dict):
            yield from ((table, key) for key in table)
    workspace_deps = doc.get("workspace", {}).get("dependencies")
    if isinstance(workspace_deps, dict):
        yield from ((workspace_deps, key) for key in workspace_deps)


def _is_cargo_dependency(table: Any, key: str, dependency: str) -> bool:
    entry = table[key]
    if isinstance(entry, dict) and "package" in entry:
        return str(entry["package"]) == dependency
    return key == dependency


def cargo_dependency_names(doc: tomlkit.TOMLDocument) -> set[str]:
    """Names of every dependency a manifest declares, renames resolved."""
    names = set()
    for table, key in _cargo_dependency_entries(doc):
        entry = table[key]
        names.add(str(entry["package"]) if isinstance(entry, dict) and "package" in entry else key)
    return names


def read_cargo(content: str, path: Path, dependency: str | None = None) -> Version:
    """Read [package].version, or the version of dependency.

    Dependency versions may be a plain string or a table with a version key.
    """
    doc = load_toml(content, path)
    if dependency is None:
        cargo_package_name(doc, path)
        return _version_of(doc.get("package", {}).get("version"), path, "package.version")
    for table, key in _cargo_dependency_entries(doc):
        if not _is_cargo_dependency(table, key, dependency):
            continue
        entry = table[key]
        raw = entry.get("version") if isinstance(entry, dict) else entry
        if raw is None:
            continue
        match = REQUIREMENT_OPERATOR_RE.match(str(raw))
        return Version.parse(match["version"] if match else str(raw))
    raise ValidationError(f"{path} does not declare a version for dependency {dependency}")


def write_cargo(content: str, path: Path, version: Version, dependency: str | None = None) -> str:
    """Rewrite [package].version, or every versioned entry for dependency.

    A requirement operator in front of a dependency version (``=``, ``^``,
    ``~``) is kept.
    """
    doc = load_toml(content, path)
    if dependency is None:
        package = doc.get("package")
        if package is None or "version" not in package:
            raise ValidationError(f"{path} is missing package.version")
        package["version"] = str(version)
        return dump_toml(doc)

    updated = False
    for table, key in _cargo_dependency_entries(doc):
        if not _is_cargo_dependency(table, key, dependency):
            continue
        entry = table[key]
        current = entry.get("version") if isinstance(entry, dict) else entry
        if current is None:
            continue
        match = REQUIREMENT_OPERATOR_RE.match(str(current))
        new_value = f"{match['op'] if match else ''}{version}"
        if isinstance(entry, dict):
            entry["version"] = new_value
        else:
            table[key] = new_value
        updated = True
    if not updated:
        raise ValidationError(f"{path} does not declare a version for dependency {dependency}")
    return dump_toml(doc)


# Cargo.lock


def _cargo_lock_packages(doc: tomlkit.TOMLDocument, path: Path) -> Any:
    lock_version = doc.get("version")
    if lock_version is None:
        logger.warning("Unknown version of %s, outcome may be unexpected", path)
    elif not 3 <= int(lock_version) <= 4:
        logger.warning("Unsupported version of %s: %s, outcome may be unexpected", path, lock_version)
    packages = doc.get("package")
    if packages is None:
        raise ValidationError(f"{path} has no [[package]] entries")
    return packages


def read_cargo_lock(content: str, path: Path, dependency: str | None = None) -> Version:
    """Version of the locked package named dependency."""
    if dependency is None:
        raise ValidationError(f"{path}: Cargo.lock files need a dependency to update")
    doc = load_toml(content, path)
    for package in _cargo_lock_packages(doc, path):
        if package.get("name") == dependency:
            return _version_of(package.get("version"), path, f"version for {dependency}")
    raise ValidationError(f"{path} has no locked package named {dependency}")


def write_cargo_lock(
    content: str, path: Path, version: Version, dependency: str | None = None
) -> str:
    """Set the version of every locked package named dependency."""
    if dependency is None:
        raise ValidationError(f"{path}: Cargo.lock files need a dependency to update")
    doc = load_toml(content, path)
    for package in _cargo_lock_packages(doc, path):
        name = package.get("name")
        if name is None:
            raise ValidationError(f"{path} has a [[package]] without a name")
        if name == dependency:
            package["version"] = str(version)
    return dump_toml(doc)


# pyproject.toml


def _pyproject_versions(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """The version fields that are set, keyed by their dotted location."""
    found = {}
    project_version = doc.get("project", {}).get("version")
    if project_version is not None:
        found["project.version"] = project_version
    poetry_version = doc.get("tool", {}).get("poetry", {}).get("version")
    if poetry_version is not None:
        found["tool.poetry.version"] = poetry_version
    return found


def read_pyproject(content: str, path: Path, dependency: str | None = None) -> Version:
    """Read [project].version and/or [tool.poetry].version.

    Raises:
        ValidationError: If neither is set.
        VersionConflictError: If both are set and disagree.
    """
    doc = load_toml(content, path)
    if dependency is not None:
        return pinned_version(doc, path, dependency)
    found = _pyproject_versions(doc)
    if not found:
        raise ValidationError(f"No versions were found in {path}")
    values = {str(value) for value in found.values()}
    if len(values) > 1:
        raise VersionConflictError(
            f"Found conflicting versions {found.get('project.version')} and "
            f"{found.get('tool.poetry.version')} in {path}"
        )
    return Version.parse(values.pop())


def write_pyproject(
    content: str, path: Path, version: Version, dependency: str | None = None
) -> str:
    """Rewrite every version field that is set, or pin dependency."""
    doc = load_toml(content, path)
    if dependency is not None:
        pin_dependency(doc, path, dependency, str(version))
        return dump_toml(doc)
    found = _pyproject_versions(doc)
    if not found:
        raise ValidationError(f"No versions were found in {path}")
    if "project.version" in found:
        doc["project"]["version"] = str(version)
    if "tool.poetry.version" in found:
        doc["tool"]["poetry"]["version"] = str(version)
    return dump_toml(doc)


def pyproject_name(doc: tomlkit.TOMLDocument) -> str | None:
    name = doc.get("project", {}).get("name") or doc.get("tool", {}).get("poetry", {}).get("name")
    return str(name) if name is not None else None


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace packages. Returns an empty list when there are none.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    return [str(member) for member in members] if members else []


def get_cargo_workspace_members(doc: tomlkit.TOMLDocument) -> list[str]:
    """Member globs from [workspace].members of a Cargo manifest."""
    members = doc.get("workspace", {}).get("members")
    return [str(member) for member in members] if members else []


# gleam.toml


def read_gleam(content: str, path: Path) -> Version:
    """Read the top-level ``version`` of a Gleam project."""
    doc = load_toml(content, path)
    return _version_of(doc.get("version"), path, "version property")


def write_gleam(content: str, path: Path, version: Version) -> str:
    """Set the top-level ``version``, adding it if the file has none."""
    doc = load_toml(content, path)
    doc["version"] = str(version)
    return dump_toml(doc)
