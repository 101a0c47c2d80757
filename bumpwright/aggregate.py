"""Change filtering and classification.

Decides which changes apply to a package, which bump rule they imply, and
which changelog section each one is listed under. Everything here is a pure
function of its inputs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from .models import Change, ChangeType, OriginKind
from .versions import StableRule

if TYPE_CHECKING:
    from .config import ChangelogSectionConfig

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_NAME = "default"

BUILTIN_SECTIONS: list[tuple[str, ChangeType]] = [
    ("Breaking Changes", ChangeType.breaking()),
    ("Features", ChangeType.feature()),
    ("Fixes", ChangeType.fix()),
    ("Notes", ChangeType.footer("Changelog-Note")),
]


class Section(BaseModel):
    """A changelog section and the change types listed under it."""

    model_config = ConfigDict(frozen=True)

    name: str
    sources: tuple[ChangeType, ...]

    def accepts(self, change_type: ChangeType) -> bool:
        return any(source.matches(change_type) for source in self.sources)


class ChangelogSections:
    """Ordered changelog sections: built-ins first, then configured extras."""

    def __init__(self, sections: Iterable[Section] | None = None) -> None:
        if sections is None:
            sections = [Section(name=name, sources=(source,)) for name, source in BUILTIN_SECTIONS]
        self.sections: list[Section] = list(sections)

    @classmethod
    def from_config(cls, extra_sections: Iterable[ChangelogSectionConfig]) -> ChangelogSections:
        """Combine the built-in sections with configured ones.

        A configured section that lists a built-in source (``major``,
        ``minor``, ``patch`` or a built-in footer) or reuses a built-in name
        takes that built-in over and keeps its position. When the three bump
        type sections are all taken over, every configured section goes
        after the remaining built-ins, in declaration order.
        """
        builtins: list[Section | None] = [
            Section(name=name, sources=(source,)) for name, source in BUILTIN_SECTIONS
        ]
        placed: dict[int, Section] = {}
        configured: list[Section] = []
        appended: list[Section] = []
        for config in extra_sections:
            sources = [ChangeType.footer(token) for token in config.footers]
            sources += [ChangeType.from_change_file(name) for name in config.types]
            claimed: list[int] = []
            for index, builtin in enumerate(builtins):
                if builtin is None:
                    continue
                if any(builtin.accepts(source) for source in sources):
                    claimed.append(index)
                elif builtin.name == config.name:
                    sources.extend(builtin.sources)
                    claimed.append(index)
            section = Section(name=config.name, sources=tuple(sources))
            configured.append(section)
            for index in claimed:
                builtins[index] = None
            if claimed:
                placed[claimed[0]] = section
            else:
                appended.append(section)

        untouched = [section for section in builtins if section is not None]
        # Breaking, Features and Fixes are the first three built-ins
        if all(builtin is None for builtin in builtins[:3]):
            return cls(untouched + configured)
        ordered: list[Section] = []
        for index, builtin in enumerate(builtins):
            if index in placed:
                ordered.append(placed[index])
            elif builtin is not None:
                ordered.append(builtin)
        return cls(ordered + appended)

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def section_for(self, change_type: ChangeType) -> Section | None:
        """The first section listing change_type, or None."""
        for section in self.sections:
            if section.accepts(change_type):
                return section
        return None

    def contains_footer(self, token: str) -> bool:
        """Whether a commit footer token feeds any section (case-insensitive)."""
        return self.section_for(ChangeType.footer(token)) is not None


class ClassifiedChanges(BaseModel):
    """The changes of one release, grouped for the changelog.

    Attributes:
        rule: The bump rule implied by the changes, None when there are none.
        sections: Non-empty sections in changelog order; within a section
                  simple changes come before complex ones.
    """

    rule: StableRule | None
    sections: list[tuple[Section, list[Change]]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.rule is None


def applies_to(change: Change, package_name: str | None, scopes: Iterable[str] | None) -> bool:
    """Whether change is part of the release of a package.

    A change with no affected packages applies everywhere. Change file
    entries name packages directly (``default`` for a single unnamed
    package). Commit scopes are matched case-insensitively against the
    package's scopes, and packages without scopes accept every commit.
    """
    if not change.packages:
        return True
    if change.origin.kind is OriginKind.CHANGE_FILE:
        return (package_name or DEFAULT_PACKAGE_NAME) in change.packages
    wanted = {scope.lower() for scope in scopes or ()}
    if not wanted:
        return True
    return any(name.lower() in wanted for name in change.packages)


def is_simple(change: Change) -> bool:
    return change.is_simple


def bump_kind(changes: Iterable[Change]) -> StableRule | None:
    """The most severe rule implied by changes: MAJOR > MINOR > PATCH.

    Returns None when there are no changes at all.
    """
    rule: StableRule | None = None
    for change in changes:
        implied = change.change_type.rule
        logger.debug("%s implies rule %s", change.origin, implied)
        if rule is None or implied > rule:
            rule = implied
    return rule


def classify(changes: Iterable[Change], sections: ChangelogSections) -> ClassifiedChanges:
    """Group changes by changelog section and compute the bump rule.

    Every change contributes to the rule. A change whose type no section
    lists (e.g. a custom change file type without a configured section)
    still bumps the version but is left out of the changelog.
    """
    changes = list(changes)
    grouped: dict[str, list[Change]] = {section.name: [] for section in sections}
    for change in changes:
        section = sections.section_for(change.change_type)
        if section is None:
            logger.debug("No changelog section for %s, skipping %r", change.change_type, change.summary)
            continue
        grouped[section.name].append(change)
    ordered = [
        (section, sorted(grouped[section.name], key=lambda c: not c.is_simple))
        for section in sections
        if grouped[section.name]
    ]
    return ClassifiedChanges(rule=bump_kind(changes), sections=ordered)
