"""Semantic version parsing, ordering and bumping.

Versions are ``major.minor.patch`` with an optional ``-label.N`` prerelease
suffix. Parsing goes through ``semver.Version.parse`` and then narrows the
prerelease to the ``label.N`` shape the bump rules understand.

Bumping works on a PackageVersions: the latest stable release plus every
prerelease newer than it, which is what the prerelease numbering needs.
"""

from __future__ import annotations

import enum
import logging
from functools import total_ordering
from typing import Iterable, Union

import semver
from pydantic import BaseModel, ConfigDict

from .exceptions import ValidationError, VersionParseError

logger = logging.getLogger(__name__)


class Prerelease(BaseModel):
    """The ``label.N`` part of a prerelease version (e.g. ``rc.2``)."""

    model_config = ConfigDict(frozen=True)

    label: str
    number: int

    def __str__(self) -> str:
        return f"{self.label}.{self.number}"


@total_ordering
class Version(BaseModel):
    """A semantic version.

    Stable versions sort after prereleases of the same ``major.minor.patch``;
    prereleases of one stable component sort by label, then by number.
    """

    model_config = ConfigDict(frozen=True)

    major: int
    minor: int
    patch: int
    pre: Prerelease | None = None

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse ``1.2.3`` or ``1.2.3-label.N``.

        Raises:
            VersionParseError: If the string is not a supported version.
        """
        value = value.strip()
        try:
            parsed = semver.Version.parse(value)
        except (TypeError, ValueError) as err:
            raise VersionParseError(value, str(err)) from err
        if parsed.build:
            raise VersionParseError(value, "build metadata is not supported")
        pre = None
        if parsed.prerelease is not None:
            label, sep, number = parsed.prerelease.partition(".")
            if not sep or not number.isdigit():
                raise VersionParseError(value, "prerelease must look like label.N")
            pre = Prerelease(label=label, number=int(number))
        return cls(major=parsed.major, minor=parsed.minor, patch=parsed.patch, pre=pre)

    @property
    def is_prerelease(self) -> bool:
        return self.pre is not None

    def stable_component(self) -> Version:
        """This version with any prerelease suffix removed."""
        return Version(major=self.major, minor=self.minor, patch=self.patch)

    def increment_major(self) -> Version:
        return Version(major=self.major + 1, minor=0, patch=0)

    def increment_minor(self) -> Version:
        return Version(major=self.major, minor=self.minor + 1, patch=0)

    def increment_patch(self) -> Version:
        return Version(major=self.major, minor=self.minor, patch=self.patch + 1)

    def _sort_key(self) -> tuple[int, int, int, int, str, int]:
        if self.pre is None:
            return (self.major, self.minor, self.patch, 1, "", 0)
        return (self.major, self.minor, self.patch, 0, self.pre.label, self.pre.number)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        stable = f"{self.major}.{self.minor}.{self.patch}"
        return f"{stable}-{self.pre}" if self.pre else stable


def parse_version(version_str: str) -> Version:
    """Parse a version string, see Version.parse."""
    return Version.parse(version_str)


class StableRule(enum.IntEnum):
    """Bump rules for stable versions, ordered by severity."""

    PATCH = 1
    MINOR = 2
    MAJOR = 3

    def __str__(self) -> str:
        return self.name


class PreRule(BaseModel):
    """Bump to the next ``-label.N`` prerelease of the version stable_rule implies."""

    model_config = ConfigDict(frozen=True)

    label: str
    stable_rule: StableRule = StableRule.PATCH


class ReleaseRule(BaseModel):
    """Promote the latest prerelease to its stable version."""

    model_config = ConfigDict(frozen=True)


Rule = Union[StableRule, PreRule, ReleaseRule]


def bump_stable(version: Version, rule: StableRule) -> Version:
    """Apply a stable rule, honoring the 0.x rule.

    While major is 0, MAJOR increments minor and MINOR increments patch.

    Examples:
        bump_stable(1.2.3, MAJOR) → 2.0.0
        bump_stable(0.1.2, MAJOR) → 0.2.0
        bump_stable(0.1.2, MINOR) → 0.1.3
    """
    if rule is StableRule.MAJOR and version.major != 0:
        new = version.increment_major()
    elif rule is StableRule.MAJOR or (rule is StableRule.MINOR and version.major != 0):
        new = version.increment_minor()
    else:
        new = version.increment_patch()
    if version.major == 0 and rule is not StableRule.PATCH:
        logger.debug("Rule is %s but major component is 0, bumping %s to %s", rule, version, new)
    else:
        logger.debug("Using %s rule to bump %s to %s", rule, version, new)
    return new


class PackageVersions:
    """The latest stable version of a package plus newer prereleases.

    Prereleases are grouped by their stable component, then by label, keeping
    only the highest number per label.
    """

    def __init__(self, stable: Version | None = None) -> None:
        self.stable = stable
        self.prereleases: dict[Version, dict[str, int]] = {}

    @classmethod
    def from_tags(cls, tags: Iterable[str], package_name: str | None = None) -> PackageVersions:
        """Collect versions from release tags.

        Tags must be sorted newest first. Only tags with the package's prefix
        (``v`` or ``{name}/v``) count, and the scan stops at the first stable
        version since older prereleases no longer matter.
        """
        prefix = tag_prefix(package_name)
        versions = cls()
        for tag in tags:
            if not tag.startswith(prefix):
                continue
            try:
                version = Version.parse(tag[len(prefix) :])
            except VersionParseError:
                continue
            if not version.is_prerelease:
                versions.stable = version
                break
            versions.update(version)
        if versions.stable is None and not versions.prereleases:
            logger.debug("No tags found starting with %s", prefix)
        return versions

    @classmethod
    def from_version(cls, version: Version) -> PackageVersions:
        versions = cls()
        versions.update(version)
        return versions

    def update(self, version: Version) -> None:
        """Record a version, ignoring it if something newer is already known."""
        if not version.is_prerelease:
            if self.stable is not None and self.stable >= version:
                return
            self.stable = version
            self.prereleases.clear()
            return
        assert version.pre is not None
        labels = self.prereleases.setdefault(version.stable_component(), {})
        if labels.get(version.pre.label, -1) < version.pre.number:
            labels[version.pre.label] = version.pre.number

    def latest(self) -> Version | None:
        """The newest recorded version, prereleases included."""
        if self.prereleases:
            stable = max(self.prereleases)
            labels = self.prereleases[stable]
            label = max(labels)
            return stable.model_copy(update={"pre": Prerelease(label=label, number=labels[label])})
        return self.stable

    def bump(self, rule: Rule) -> Version:
        """Compute the next version for rule and record it.

        Raises:
            ValidationError: If a Release rule is used without any prerelease.
        """
        if isinstance(rule, PreRule):
            version = self._bump_pre(rule)
        elif isinstance(rule, ReleaseRule):
            if not self.prereleases:
                raise ValidationError("No prerelease version found, but a release rule was requested")
            version = max(self.prereleases)
        elif self.stable is not None:
            version = bump_stable(self.stable, rule)
        else:
            # No stable release yet: the newest prerelease's stable component,
            # or 0.0.0 for a brand new package.
            version = max(self.prereleases) if self.prereleases else Version(major=0, minor=0, patch=0)
        self.update(version)
        return version

    def _bump_pre(self, rule: PreRule) -> Version:
        logger.debug("Prerelease label %s selected, determining next stable version", rule.label)
        if self.stable is not None:
            stable = bump_stable(self.stable, rule.stable_rule)
        elif self.prereleases:
            stable = max(self.prereleases)
        else:
            stable = Version(major=0, minor=0, patch=0)
        existing = self.prereleases.get(stable, {}).get(rule.label)
        number = existing + 1 if existing is not None else 0
        if existing is None:
            logger.debug("No existing prerelease found, starting %s.0", rule.label)
        self.prereleases.clear()
        version = stable.model_copy(update={"pre": Prerelease(label=rule.label, number=number)})
        self.update(version)
        return version


def tag_prefix(package_name: str | None) -> str:
    """Tag prefix for a package: ``v`` or ``{name}/v``."""
    return f"{package_name}/v" if package_name else "v"


def tag_name(version: Version, package_name: str | None) -> str:
    """Release tag name for a package version.

    Examples:
        tag_name(1.2.3, None) → "v1.2.3"
        tag_name(1.2.3, "core") → "core/v1.2.3"
    """
    return f"{tag_prefix(package_name)}{version}"
