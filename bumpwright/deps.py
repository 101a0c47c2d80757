"""Dependency pinning for pyproject.toml.

Provides functions for parsing PEP 508 dependency strings and pinning the
dependencies of one workspace member on another to the released version.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .exceptions import ValidationError
from .versions import Version


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def pin_dep(dep_str: str, version: str) -> str:
    """Pin a PEP 508 dependency to an exact version.

    Preserves extras and environment markers, but replaces the version
    specifier with an exact pin.

    Examples:
        pin_dep("requests>=2.0", "2.31.0") → "requests==2.31.0"
        pin_dep("pkg[b,a]~=1.0", "1.5.0") → "pkg[a,b]==1.5.0"
    """
    req = Requirement(dep_str)
    # Sort extras alphabetically for consistent output
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}=={version}{marker}"


def dependency_lists(doc: Any) -> Iterator[list]:
    """Yield every PEP 508 dependency list of a pyproject document.

    Covers [project].dependencies, [project].optional-dependencies.* and
    [dependency-groups].*. The lists are yielded as-is so callers can
    modify them in place.
    """
    project = doc.get("project", {})
    deps = project.get("dependencies")
    if isinstance(deps, list):
        yield deps
    opt_deps = project.get("optional-dependencies")
    if isinstance(opt_deps, dict):
        yield from (group for group in opt_deps.values() if isinstance(group, list))
    dep_groups = doc.get("dependency-groups")
    if isinstance(dep_groups, dict):
        yield from (group for group in dep_groups.values() if isinstance(group, list))


def _matches(dep_str: Any, name: str) -> bool:
    # Dependency groups may contain {include-group = "..."} tables
    if not isinstance(dep_str, str):
        return False
    try:
        return dep_canonical_name(dep_str) == name
    except InvalidRequirement:
        return False


def dependency_names(doc: Any) -> set[str]:
    """Canonical names of every dependency declared in doc."""
    names = set()
    for deps in dependency_lists(doc):
        for dep_str in deps:
            if isinstance(dep_str, str):
                try:
                    names.add(dep_canonical_name(dep_str))
                except InvalidRequirement:
                    continue
    return names


def pin_dependency(doc: Any, path: Path, dependency: str, version: str) -> None:
    """Pin every requirement on dependency to version, modifying doc in place.

    Raises:
        ValidationError: If doc does not depend on dependency at all.
    """
    name = canonicalize_name(dependency)
    found = False
    for deps in dependency_lists(doc):
        for i, dep_str in enumerate(deps):
            if _matches(dep_str, name):
                deps[i] = pin_dep(str(dep_str), version)
                found = True
    if not found:
        raise ValidationError(f"{path} does not depend on {dependency}")


def pinned_version(doc: Any, path: Path, dependency: str) -> Version:
    """The exact version dependency is pinned to.

    Raises:
        ValidationError: If there is no requirement on dependency, or it is
            not an exact ``==`` pin.
    """
    name = canonicalize_name(dependency)
    for deps in dependency_lists(doc):
        for dep_str in deps:
            if not _matches(dep_str, name):
                continue
            specs = list(Requirement(str(dep_str)).specifier)
            if len(specs) == 1 and specs[0].operator == "==":
                return Version.parse(specs[0].version)
            raise ValidationError(f"{path}: {dep_str} is not pinned to an exact version")
    raise ValidationError(f"{path} does not depend on {dependency}")
