"""Data models for bumpwright.

These Pydantic models represent the values that flow between the change
sources, the aggregator and the release pipeline.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

from .versions import StableRule, Version


class ChangeKind(str, enum.Enum):
    BREAKING = "breaking"
    FEATURE = "feature"
    FIX = "fix"
    FOOTER = "footer"
    CUSTOM = "custom"


class ChangeType(BaseModel):
    """What kind of change something is, and so which changelog section it belongs to.

    Attributes:
        kind: Built-in kind, or FOOTER / CUSTOM for changes that only feed
              configured changelog sections.
        name: The commit footer token (FOOTER) or change file type (CUSTOM).
    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    name: str | None = None

    @classmethod
    def breaking(cls) -> ChangeType:
        return cls(kind=ChangeKind.BREAKING)

    @classmethod
    def feature(cls) -> ChangeType:
        return cls(kind=ChangeKind.FEATURE)

    @classmethod
    def fix(cls) -> ChangeType:
        return cls(kind=ChangeKind.FIX)

    @classmethod
    def footer(cls, token: str) -> ChangeType:
        return cls(kind=ChangeKind.FOOTER, name=token)

    @classmethod
    def from_change_file(cls, value: str) -> ChangeType:
        """Map a change file bump type: major, minor, patch or a custom type."""
        builtin = {"major": ChangeKind.BREAKING, "minor": ChangeKind.FEATURE, "patch": ChangeKind.FIX}
        if value in builtin:
            return cls(kind=builtin[value])
        return cls(kind=ChangeKind.CUSTOM, name=value)

    def matches(self, other: ChangeType) -> bool:
        """Equality, except footer tokens compare case-insensitively."""
        if self.kind is not other.kind:
            return False
        if self.kind is ChangeKind.FOOTER:
            return (self.name or "").lower() == (other.name or "").lower()
        return self.name == other.name

    @property
    def rule(self) -> StableRule:
        """The stable bump rule this kind of change implies."""
        if self.kind is ChangeKind.BREAKING:
            return StableRule.MAJOR
        if self.kind is ChangeKind.FEATURE:
            return StableRule.MINOR
        return StableRule.PATCH

    def __str__(self) -> str:
        return self.name if self.name is not None else self.kind.value


class OriginKind(str, enum.Enum):
    COMMIT = "commit"
    CHANGE_FILE = "change-file"


class ChangeOrigin(BaseModel):
    """Where a change came from: a commit description or a change file id."""

    model_config = ConfigDict(frozen=True)

    kind: OriginKind
    value: str

    def __str__(self) -> str:
        label = "commit" if self.kind is OriginKind.COMMIT else "changeset"
        return f"{label} {self.value}"


class GitInfo(BaseModel):
    """The commit that introduced a change."""

    model_config = ConfigDict(frozen=True)

    sha: str
    author: str = ""


class Change(BaseModel):
    """One user-relevant modification.

    Attributes:
        change_type: Decides the bump rule and the changelog section.
        summary: One-line summary, used as the bullet or sub-heading text.
        details: Markdown body, only present for complex change file entries.
        origin: The commit or change file this came from.
        packages: Scopes (commits) or package names (change files) this
                  change is limited to. Empty means every package.
        commit: The commit that introduced the change, when known.
    """

    model_config = ConfigDict(frozen=True)

    change_type: ChangeType
    summary: str
    details: str | None = None
    origin: ChangeOrigin
    packages: frozenset[str] = Field(default_factory=frozenset)
    commit: GitInfo | None = None

    @property
    def is_simple(self) -> bool:
        """Simple changes render as bullets, complex ones as sub-headings."""
        return self.details is None


class VersionBump(BaseModel):
    """Records a version change for a package.

    Attributes:
        old: The version before bumping, None for a first release.
        new: The version after bumping.
    """

    old: str | None
    new: str


class Release(BaseModel):
    """Structured release notes for one package, handed to forge clients.

    Attributes:
        title: Release title without any Markdown heading prefix.
        version: The released version.
        notes: Release notes in Markdown, with sections at heading level 2.
        package_name: The released package, None for a single unnamed package.
        tag: The git tag created for the release.
    """

    title: str
    version: Version
    notes: str
    package_name: str | None = None
    tag: str | None = None
