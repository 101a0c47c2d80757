"""Deno version files: deno.json and deno.lock.

deno.json may contain comments (JSONC); they are dropped when the version
is rewritten. Versions of workspace members that import each other are
pinned in deno.lock, so a dependency ref on deno.json changes nothing and
the lockfile is where those versions get updated. Only version 5
lockfiles are understood.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, NamedTuple

from .exceptions import ValidationError
from .jsonfiles import dump_json, load_json, split_range, top_level_version
from .versions import Version

logger = logging.getLogger(__name__)

SUPPORTED_LOCKFILE_VERSION = "5"
# A string literal (kept) or a comment (dropped)
JSONC_TOKEN_RE = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', flags=re.DOTALL)
SPECIFIER_RE = re.compile(r"^(?P<kind>jsr|npm):(?P<name>@?[^@\s]+)(?:@(?P<req>\S*))?$")
LOCK_DEPENDENCY_KEYS = ("dependencies", "optionalDependencies", "peerDependencies")


class Specifier(NamedTuple):
    """A ``jsr:`` or ``npm:`` package requirement such as ``jsr:@std/fs@^1.0.0``."""

    kind: str
    name: str
    req: str

    def with_version(self, version: str) -> str:
        return f"{self.kind}:{self.name}@{version}"


def parse_specifier(text: str) -> Specifier | None:
    match = SPECIFIER_RE.match(text)
    if match is None:
        return None
    return Specifier(match["kind"], match["name"], match["req"] or "")


def strip_json_comments(content: str) -> str:
    """content without ``//`` and ``/* */`` comments; string literals are untouched."""
    return JSONC_TOKEN_RE.sub(lambda match: match.group(1) or "", content)


def load_jsonc(content: str, path: Path) -> dict[str, Any]:
    return load_json(strip_json_comments(content), path)


def deno_dependency_names(data: dict[str, Any]) -> set[str]:
    """Package names required through the ``imports`` map of a deno.json."""
    imports = data.get("imports")
    if not isinstance(imports, dict):
        return set()
    names = set()
    for value in imports.values():
        specifier = parse_specifier(value) if isinstance(value, str) else None
        if specifier is not None:
            names.add(specifier.name)
    return names


# deno.json


def read_deno_json(content: str, path: Path, dependency: str | None = None) -> Version:
    """Read the top-level version, or the version an import of dependency asks for."""
    data = load_jsonc(content, path)
    if dependency is None:
        return top_level_version(data, path)
    imports = data.get("imports")
    if isinstance(imports, dict):
        for value in imports.values():
            specifier = parse_specifier(value) if isinstance(value, str) else None
            if specifier is not None and specifier.name == dependency and specifier.req:
                return Version.parse(split_range(specifier.req)[1])
    raise ValidationError(f"{path} does not import {dependency}")


def write_deno_json(content: str, path: Path, version: Version, dependency: str | None = None) -> str:
    """Set the top-level version. Dependency refs leave the file unchanged."""
    if dependency is not None:
        logger.debug("%s: %s is pinned by deno.lock, not by imports", path, dependency)
        return content
    data = load_jsonc(content, path)
    data["version"] = str(version)
    return dump_json(data, content)


# deno.lock


def load_deno_lock(content: str, path: Path) -> dict[str, Any]:
    """Parse a lockfile, refusing versions other than 5.

    Raises:
        ValidationError: For invalid JSON or an unsupported lockfile version.
    """
    data = load_json(content, path)
    version = data.get("version")
    if version != SUPPORTED_LOCKFILE_VERSION:
        raise ValidationError(
            f"Unsupported lockfile version {version} in {path}, "
            f"only version {SUPPORTED_LOCKFILE_VERSION} is supported"
        )
    return data


def _require_dependency(path: Path, dependency: str | None) -> str:
    if dependency is None:
        raise ValidationError(f"{path}: deno.lock files need a dependency to update")
    return dependency


def read_deno_lock(content: str, path: Path, dependency: str | None = None) -> Version:
    """The version a specifier of dependency resolves to."""
    dependency = _require_dependency(path, dependency)
    specifiers = load_deno_lock(content, path).get("specifiers")
    if isinstance(specifiers, dict):
        for key, resolved in specifiers.items():
            specifier = parse_specifier(key)
            if specifier is not None and specifier.name == dependency and isinstance(resolved, str):
                return Version.parse(resolved)
    raise ValidationError(f"{path} has no specifier for {dependency}")


def _renamed(key: str, name: str, old: set[str], new: str) -> str:
    """``name@version`` package keys move to the new version."""
    key_name, _, key_version = key.rpartition("@")
    return f"{name}@{new}" if key_name == name and key_version in old else key


def _updated_specifier(text: str, name: str, old: set[str], new: str) -> str:
    specifier = parse_specifier(text)
    if specifier is None or specifier.name != name or specifier.req not in old:
        return text
    return specifier.with_version(new)


def _update_dependency_lists(entry: dict[str, Any], name: str, old: set[str], new: str) -> None:
    package_json = entry.get("packageJson")
    lists = [entry.get(key) for key in LOCK_DEPENDENCY_KEYS]
    if isinstance(package_json, dict):
        lists.append(package_json.get("dependencies"))
    for values in lists:
        if isinstance(values, list):
            values[:] = [
                _updated_specifier(value, name, old, new) if isinstance(value, str) else value
                for value in values
            ]


def _update_workspace(workspace: dict[str, Any], name: str, old: set[str], new: str) -> None:
    _update_dependency_lists(workspace, name, old, new)
    members = workspace.get("members")
    if isinstance(members, dict):
        for member in members.values():
            if isinstance(member, dict):
                _update_dependency_lists(member, name, old, new)
    links = workspace.get("links")
    if isinstance(links, dict):
        items = list(links.items())
        links.clear()
        for key, link in items:
            if isinstance(link, dict):
                _update_dependency_lists(link, name, old, new)
            links[_updated_specifier(key, name, old, new)] = link


def write_deno_lock(content: str, path: Path, version: Version, dependency: str | None = None) -> str:
    """Point every specifier of dependency at version.

    The resolved value of each matching specifier is replaced, then the
    ``jsr``/``npm`` package entries and workspace requirements that used the
    old version are moved over, keeping their position in the file.
    """
    dependency = _require_dependency(path, dependency)
    data = load_deno_lock(content, path)
    new = str(version)
    old: set[str] = set()
    kinds: set[str] = set()
    specifiers = data.get("specifiers")
    if isinstance(specifiers, dict):
        for key, resolved in specifiers.items():
            specifier = parse_specifier(key)
            if specifier is None or specifier.name != dependency or not isinstance(resolved, str):
                continue
            old.update((resolved, specifier.req))
            kinds.add(specifier.kind)
            specifiers[key] = new
    if not kinds:
        logger.debug("%s has no specifier for %s", path, dependency)
        return content

    for kind in sorted(kinds):
        section = data.get(kind)
        if isinstance(section, dict):
            items = list(section.items())
            section.clear()
            section.update((_renamed(key, dependency, old, new), entry) for key, entry in items)
    workspace = data.get("workspace")
    if isinstance(workspace, dict):
        _update_workspace(workspace, dependency, old, new)
    return dump_json(data, content)
