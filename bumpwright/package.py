"""Packages and workspace discovery.

A package is a releasable unit: one logical version spread over one or more
versioned files, plus an optional changelog. Packages are either defined
explicitly (PackageConfig) or detected from the manifests in the repository
root, including Cargo, npm, Deno and uv workspaces.
"""

from __future__ import annotations

import glob
import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Sequence

from packaging.utils import canonicalize_name

from .aggregate import DEFAULT_PACKAGE_NAME, ChangelogSections
from .config import AssetConfig, FileFormat, PackageConfig, VersionedFileRef
from .deno import deno_dependency_names, load_jsonc
from .deps import dependency_names
from .exceptions import FileAccessError, ValidationError, VersionConflictError
from .gomod import GoVersioning, release_tag
from .graph import topo_sort
from .jsonfiles import package_json_dependency_names
from .models import Change
from .toml import (
    cargo_dependency_names,
    cargo_package_name,
    get_cargo_workspace_members,
    get_workspace_member_globs,
    load_toml,
    pyproject_name,
)
from .versioned_files import FileBuffer
from .versions import PackageVersions, Version, tag_name

logger = logging.getLogger(__name__)

# Manifests a single package is detected from, in this order
DEFAULT_MANIFESTS = (
    FileFormat.CARGO,
    FileFormat.GO_MOD,
    FileFormat.PACKAGE_JSON,
    FileFormat.PUBSPEC,
    FileFormat.PYPROJECT,
    FileFormat.POM,
    FileFormat.GLEAM,
    FileFormat.TAURI_CONF,
    FileFormat.DENO_JSON,
)
DEFAULT_CHANGELOG = "CHANGELOG.md"


class Package:
    """A releasable unit and the state of its release.

    Attributes:
        name: Package name, None for the single package of a repository.
        versioned_files: Files (or dependency entries) carrying the version.
        changelog: Changelog path relative to the repository root.
        scopes: Commit scopes this package accepts; None accepts every commit.
        sections: Changelog sections, built-ins plus configured extras.
        assets: Files to upload with a forge release.
        go_versioning: How go.mod major versions are guarded.
        versions: Current versions, filled in by load_versions().
        pending_changes: Changes that apply to this release.
        override: Version to release instead of a computed one.
    """

    def __init__(
        self,
        name: str | None = None,
        versioned_files: Iterable[VersionedFileRef] = (),
        changelog: PurePosixPath | None = None,
        scopes: Sequence[str] | None = None,
        sections: ChangelogSections | None = None,
        assets: Iterable[AssetConfig] = (),
        go_versioning: GoVersioning = GoVersioning.STANDARD,
    ) -> None:
        self.name = name
        self.versioned_files = list(versioned_files)
        self.changelog = changelog
        self.scopes = list(scopes) if scopes is not None else None
        self.sections = sections or ChangelogSections()
        self.assets = list(assets)
        self.go_versioning = go_versioning
        self.versions = PackageVersions()
        self.pending_changes: list[Change] = []
        self.override: Version | None = None

    @classmethod
    def from_config(cls, config: PackageConfig) -> Package:
        return cls(
            name=config.name,
            versioned_files=config.versioned_files,
            changelog=config.changelog,
            scopes=config.scopes,
            sections=ChangelogSections.from_config(config.extra_changelog_sections),
            assets=config.assets,
            go_versioning=(
                GoVersioning.IGNORE_MAJOR_RULES
                if config.ignore_go_major_versioning
                else GoVersioning.STANDARD
            ),
        )

    def __repr__(self) -> str:
        return f"Package({self.label!r})"

    @property
    def label(self) -> str:
        """Name used in change files and messages."""
        return self.name or DEFAULT_PACKAGE_NAME

    @property
    def version_refs(self) -> list[VersionedFileRef]:
        """Refs holding the package's own version, not a dependency on it."""
        return [ref for ref in self.versioned_files if ref.dependency is None]

    def tag_for(self, version: Version) -> str:
        return tag_name(version, self.name)

    def release_tags(self, version: Version, buffer: FileBuffer) -> list[str]:
        """Tags to create for version: the package tag plus any go module tags.

        go.mod files outside the repository root get a tag named after their
        directory, read from the already updated module line.
        """
        tags = [self.tag_for(version)]
        for ref in self.version_refs:
            if ref.format is not FileFormat.GO_MOD:
                continue
            go_tag = release_tag(ref.path, buffer.read(ref.path), version)
            if go_tag not in tags:
                tags.append(go_tag)
        return tags


def validate_packages(packages: Sequence[Package]) -> None:
    """Check that package names are usable for tags and change files.

    Raises:
        ValidationError: If names repeat, or several packages lack a name.
    """
    if len(packages) > 1 and any(package.name is None for package in packages):
        raise ValidationError("When there are multiple packages, every package needs a name")
    seen: set[str] = set()
    for package in packages:
        if package.label in seen:
            raise ValidationError(f"Package {package.label} is defined more than once")
        seen.add(package.label)


def load_versions(package: Package, buffer: FileBuffer, tags: Sequence[str]) -> PackageVersions:
    """Current versions of package from its files and release tags.

    Every ref holding the package's own version must agree. The file
    version wins over tags; with no such refs the newest tags decide.

    Raises:
        VersionConflictError: If two files report different versions.
    """
    found: dict[Version, VersionedFileRef] = {}
    for ref in package.version_refs:
        version = buffer.read_ref(ref, tags)
        logger.debug("%s has version %s", ref, version)
        found.setdefault(version, ref)
    if len(found) > 1:
        (first, first_ref), (second, second_ref) = list(found.items())[:2]
        raise VersionConflictError(
            f"Found inconsistent versions in package {package.label}: "
            f"{first_ref} had {first} and {second_ref} had {second}"
        )

    versions = PackageVersions.from_tags(tags, package.name)
    if found:
        versions.update(next(iter(found)))
    package.versions = versions
    return versions


def last_stable_tag(package: Package, tags: Sequence[str]) -> str | None:
    """The tag of the package's newest stable release, if it was tagged."""
    stable = PackageVersions.from_tags(tags, package.name).stable
    if stable is None:
        return None
    tag = package.tag_for(stable)
    return tag if tag in tags else None


# Workspace discovery


def _read(path: Path) -> str:
    try:
        return path.read_text()
    except OSError as err:
        raise FileAccessError(path, f"could not read file: {err}") from err


def _member_dirs(root: Path, patterns: Iterable[str], manifest: str) -> list[Path]:
    """Expand member globs to directories that contain manifest."""
    member_dirs: list[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(str(root / pattern))):
            directory = Path(match)
            if (directory / manifest).is_file() and directory not in member_dirs:
                member_dirs.append(directory)
    return member_dirs


def _relative(path: Path, root: Path) -> PurePosixPath:
    return PurePosixPath(path.relative_to(root).as_posix())


def cargo_workspace_members(root: Path) -> list[Package]:
    """One package per member of a Cargo workspace.

    Each member gets its own Cargo.toml plus dependency refs in the manifests
    of members depending on it, the workspace's ``[workspace.dependencies]``
    and Cargo.lock.
    """
    manifest = root / "Cargo.toml"
    if not manifest.is_file():
        return []
    root_doc = load_toml(_read(manifest), manifest)
    members = get_cargo_workspace_members(root_doc)
    if not members:
        return []

    docs: dict[str, tuple[PurePosixPath, Any]] = {}
    for directory in _member_dirs(root, members, "Cargo.toml"):
        path = directory / "Cargo.toml"
        doc = load_toml(_read(path), path)
        docs[cargo_package_name(doc, path)] = (_relative(path, root), doc)

    has_lock = (root / "Cargo.lock").is_file()
    root_deps = cargo_dependency_names(root_doc)
    packages = []
    for name, (path, _) in docs.items():
        refs = [VersionedFileRef(path=path)]
        for other, (other_path, other_doc) in docs.items():
            if other != name and name in cargo_dependency_names(other_doc):
                refs.append(VersionedFileRef(path=other_path, dependency=name))
        if name in root_deps:
            refs.append(VersionedFileRef(path=PurePosixPath("Cargo.toml"), dependency=name))
        if has_lock:
            refs.append(VersionedFileRef(path=PurePosixPath("Cargo.lock"), dependency=name))
        packages.append(Package(name=name, versioned_files=refs, scopes=[name]))
    logger.info("Found %d Cargo workspace members", len(packages))
    return packages


def _npm_workspace_patterns(data: Any) -> list[str]:
    workspaces = data.get("workspaces") if isinstance(data, dict) else None
    # Yarn also allows {"packages": [...]}
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if not isinstance(workspaces, list):
        return []
    return [pattern for pattern in workspaces if isinstance(pattern, str)]


def npm_workspace_members(root: Path) -> list[Package]:
    """One package per member of an npm workspace."""
    manifest = root / "package.json"
    if not manifest.is_file():
        return []
    try:
        patterns = _npm_workspace_patterns(json.loads(_read(manifest)))
    except json.JSONDecodeError as err:
        raise ValidationError(f"Invalid JSON in {manifest}: {err}") from err
    if not patterns:
        return []

    members: dict[str, tuple[PurePosixPath, dict[str, Any]]] = {}
    for directory in _member_dirs(root, patterns, "package.json"):
        path = directory / "package.json"
        try:
            data = json.loads(_read(path))
        except json.JSONDecodeError as err:
            raise ValidationError(f"Invalid JSON in {path}: {err}") from err
        name = data.get("name") if isinstance(data, dict) else None
        if not isinstance(name, str):
            raise ValidationError(f"Could not find a name in {path}")
        members[name] = (_relative(path, root), data)

    has_lock = (root / "package-lock.json").is_file()
    packages = []
    for name, (path, _) in members.items():
        refs = [VersionedFileRef(path=path)]
        if has_lock:
            refs.append(VersionedFileRef(path=PurePosixPath("package-lock.json"), dependency=name))
        for other, (other_path, other_data) in members.items():
            if other != name and name in package_json_dependency_names(other_data):
                refs.append(VersionedFileRef(path=other_path, dependency=name))
        packages.append(
            Package(
                name=name,
                versioned_files=refs,
                changelog=path.parent / DEFAULT_CHANGELOG,
                scopes=[name],
            )
        )
    logger.info("Found %d npm workspace members", len(packages))
    return packages


DENO_MANIFESTS = ("deno.json", "package.json")


def _deno_workspace_patterns(data: dict[str, Any]) -> list[str]:
    workspace = data.get("workspace")
    if isinstance(workspace, dict):
        workspace = workspace.get("members")
    if not isinstance(workspace, list):
        return []
    return [pattern for pattern in workspace if isinstance(pattern, str)]


def _deno_member(directory: Path, root: Path) -> tuple[str, PurePosixPath, set[str]] | None:
    """Name, manifest path and dependency names of a Deno workspace folder.

    deno.json is used when it has both a name and a version, then
    package.json under the same condition. Other folders are not packages.
    """
    for manifest in DENO_MANIFESTS:
        path = directory / manifest
        if not path.is_file():
            continue
        data = load_jsonc(_read(path), path)
        if isinstance(data.get("name"), str) and isinstance(data.get("version"), str):
            if manifest == "deno.json":
                deps = deno_dependency_names(data)
            else:
                deps = package_json_dependency_names(data)
            return data["name"], _relative(path, root), deps
    return None


def deno_workspace_members(root: Path) -> list[Package]:
    """One package per member of a Deno workspace.

    Members are listed by the ``workspace`` key of the root deno.json; the
    root folder counts as a member too when it is a package itself. Each one
    gets a deno.lock ref, when the lockfile exists, and refs in the
    manifests of members that import it.
    """
    manifest = root / "deno.json"
    if not manifest.is_file():
        return []
    patterns = _deno_workspace_patterns(load_jsonc(_read(manifest), manifest))
    if not patterns:
        return []

    directories = [root]
    seen = {root.resolve()}
    for pattern in patterns:
        for match in sorted(glob.glob(str(root / pattern))):
            directory = Path(match)
            if directory.is_dir() and directory.resolve() not in seen:
                seen.add(directory.resolve())
                directories.append(directory)

    members: dict[str, tuple[PurePosixPath, set[str]]] = {}
    for directory in directories:
        member = _deno_member(directory, root)
        if member is not None:
            name, path, deps = member
            members[name] = (path, deps)

    has_lock = (root / "deno.lock").is_file()
    packages = []
    for name, (path, _) in members.items():
        refs = [VersionedFileRef(path=path)]
        if has_lock:
            refs.append(VersionedFileRef(path=PurePosixPath("deno.lock"), dependency=name))
        for other, (other_path, other_deps) in members.items():
            if other != name and name in other_deps:
                refs.append(VersionedFileRef(path=other_path, dependency=name))
        packages.append(
            Package(
                name=name,
                versioned_files=refs,
                changelog=path.parent / DEFAULT_CHANGELOG,
                scopes=[name],
            )
        )
    logger.info("Found %d Deno workspace members", len(packages))
    return packages


def uv_workspace_members(root: Path) -> list[Package]:
    """One package per member of a uv workspace, dependencies first.

    Reads [tool.uv.workspace].members from the root pyproject.toml; members
    that require another member get a dependency ref on it.
    """
    manifest = root / "pyproject.toml"
    if not manifest.is_file():
        return []
    member_globs = get_workspace_member_globs(load_toml(_read(manifest), manifest))
    if not member_globs:
        return []

    members: dict[str, tuple[PurePosixPath, set[str]]] = {}
    for directory in _member_dirs(root, member_globs, "pyproject.toml"):
        path = directory / "pyproject.toml"
        doc = load_toml(_read(path), path)
        name = canonicalize_name(pyproject_name(doc) or directory.name)
        members[name] = (_relative(path, root), dependency_names(doc))

    internal = {
        name: sorted(dep for dep in deps if dep in members and dep != name)
        for name, (_, deps) in members.items()
    }
    packages = []
    for name in topo_sort(internal):
        path, _ = members[name]
        refs = [VersionedFileRef(path=path)]
        for other in sorted(members):
            if name in internal[other]:
                refs.append(VersionedFileRef(path=members[other][0], dependency=name))
        packages.append(
            Package(
                name=name,
                versioned_files=refs,
                changelog=path.parent / DEFAULT_CHANGELOG,
                scopes=[name],
            )
        )
    logger.info("Found %d uv workspace members", len(packages))
    return packages


def find_packages(root: Path) -> list[Package]:
    """Detect packages from the manifests in root.

    Workspaces yield one package per member. Otherwise a single unnamed
    package is made of every default manifest present, with CHANGELOG.md
    if it exists. Returns an empty list when nothing is found.
    """
    packages = cargo_workspace_members(root)
    packages.extend(npm_workspace_members(root))
    packages.extend(deno_workspace_members(root))
    packages.extend(uv_workspace_members(root))
    if packages:
        return packages

    refs = [
        VersionedFileRef(path=PurePosixPath(fmt.value))
        for fmt in DEFAULT_MANIFESTS
        if (root / fmt.value).is_file()
    ]
    if not refs:
        logger.info("No versioned files found in %s", root)
        return []
    changelog = PurePosixPath(DEFAULT_CHANGELOG) if (root / DEFAULT_CHANGELOG).is_file() else None
    return [Package(versioned_files=refs, changelog=changelog)]
