"""Configuration models.

Configuration arrives as plain data (already loaded by the caller) and is
validated into these Pydantic models before any release work starts.
"""

from __future__ import annotations

import enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import ValidationError

CHANGESET_DIR = PurePosixPath(".changeset")


class FileFormat(str, enum.Enum):
    """Supported versioned file formats, named after their file names."""

    CARGO = "Cargo.toml"
    CARGO_LOCK = "Cargo.lock"
    PYPROJECT = "pyproject.toml"
    PACKAGE_JSON = "package.json"
    PACKAGE_LOCK = "package-lock.json"
    PUBSPEC = "pubspec.yaml"
    GLEAM = "gleam.toml"
    POM = "pom.xml"
    GO_MOD = "go.mod"
    TAURI_CONF = "tauri.conf.json"
    TAURI_MACOS_CONF = "tauri.macos.conf.json"
    TAURI_WINDOWS_CONF = "tauri.windows.conf.json"
    TAURI_LINUX_CONF = "tauri.linux.conf.json"
    DENO_JSON = "deno.json"
    DENO_LOCK = "deno.lock"
    REGEX = "regex"

    @classmethod
    def from_path(cls, path: PurePosixPath) -> FileFormat:
        """Format for a file name.

        Raises:
            ValidationError: For file names with no known format.
        """
        for fmt in cls:
            if fmt is not cls.REGEX and path.name == fmt.value:
                return fmt
        raise ValidationError(f"Unknown versioned file format: {path}")


class VersionedFileRef(BaseModel):
    """A file, or one dependency within it, that carries a version.

    Attributes:
        path: Path relative to the repository root.
        dependency: When set, the file's declaration of this dependency is
                    updated instead of the file's own version.
        patterns: Regular expressions locating the version in any text file.
    """

    model_config = ConfigDict(frozen=True)

    path: PurePosixPath
    dependency: str | None = None
    patterns: tuple[str, ...] | None = None

    @field_validator("patterns", mode="before")
    @classmethod
    def _single_pattern(cls, value: object) -> object:
        return (value,) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _known_format(self) -> VersionedFileRef:
        if self.patterns is None:
            FileFormat.from_path(self.path)
        elif self.dependency is not None:
            raise ValidationError(f"{self.path}: regex files cannot update a dependency")
        return self

    @property
    def format(self) -> FileFormat:
        if self.patterns is not None:
            return FileFormat.REGEX
        return FileFormat.from_path(self.path)

    def __str__(self) -> str:
        return f"{self.path} ({self.dependency})" if self.dependency else str(self.path)


class ChangelogSectionConfig(BaseModel):
    """An extra changelog section.

    Attributes:
        name: Heading text of the section.
        footers: Commit footer tokens (e.g. ``Security-Note``) listed here.
        types: Change file types listed here; ``major``, ``minor`` and
               ``patch`` take over the matching built-in section.
    """

    name: str
    footers: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)


class AssetConfig(BaseModel):
    """A file to upload with a forge release."""

    path: PurePosixPath
    name: str | None = None

    @property
    def asset_name(self) -> str:
        return self.name or self.path.name


class PackageConfig(BaseModel):
    """Explicit definition of a releasable package."""

    name: str | None = None
    versioned_files: list[VersionedFileRef] = Field(default_factory=list)
    changelog: PurePosixPath | None = None
    scopes: list[str] | None = None
    extra_changelog_sections: list[ChangelogSectionConfig] = Field(default_factory=list)
    assets: list[AssetConfig] = Field(default_factory=list)
    ignore_go_major_versioning: bool = False

    @field_validator("versioned_files", mode="before")
    @classmethod
    def _paths_as_refs(cls, value: object) -> object:
        if isinstance(value, list):
            return [{"path": item} if isinstance(item, str) else item for item in value]
        return value


class ReleaseOptions(BaseModel):
    """Options for one release run.

    Attributes:
        prerelease_label: Release ``-label.N`` prereleases instead of stable versions.
        override_version: Use this version instead of computing one. Either a
                          single version for every package or a map of
                          package name to version.
        allow_empty: Treat "nothing to release" as a no-op instead of an error.
        dry_run: Describe the plan instead of applying it.
        changeset_dir: Directory holding change files.
    """

    prerelease_label: str | None = None
    override_version: str | dict[str, str] | None = None
    allow_empty: bool = False
    dry_run: bool = False
    changeset_dir: PurePosixPath = CHANGESET_DIR

    def override_for(self, package_name: str | None) -> str | None:
        if isinstance(self.override_version, dict):
            return self.override_version.get(package_name or "")
        return self.override_version
