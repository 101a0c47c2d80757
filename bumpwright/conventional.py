"""Conventional commit parsing.

Turns commit messages of the form ``type(scope)!: summary`` (plus optional
body and footers) into Change records. Messages that don't follow the
format are ignored rather than treated as errors.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .aggregate import ChangelogSections
from .git import Commit
from .models import Change, ChangeOrigin, ChangeType, GitInfo, OriginKind

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(
    r"^(?P<type>[A-Za-z][\w-]*)(?:\((?P<scope>[^()\r\n]+)\))?(?P<bang>!)?: (?P<description>\S.*)$"
)
FOOTER_RE = re.compile(
    r"^(?P<token>BREAKING[ -]CHANGE|[\w-]+)(?P<separator>: | #)(?P<value>.*)$", flags=re.IGNORECASE
)


class Footer(BaseModel):
    """A ``Token: value`` or ``Token #value`` trailer."""

    model_config = ConfigDict(frozen=True)

    token: str
    separator: str
    value: str

    @property
    def is_breaking(self) -> bool:
        return self.token.upper() in ("BREAKING CHANGE", "BREAKING-CHANGE")


class ConventionalCommit(BaseModel):
    """A parsed conventional commit message."""

    model_config = ConfigDict(frozen=True)

    type: str
    scope: str | None = None
    breaking: bool = False
    description: str
    body: str | None = None
    footers: tuple[Footer, ...] = ()

    def summary_line(self) -> str:
        """The header as written, with ``!`` only when no footer explains the break."""
        scope = f"({self.scope})" if self.scope else ""
        has_footer = any(footer.is_breaking for footer in self.footers)
        bang = "!" if self.breaking and not has_footer else ""
        return f"{self.type}{scope}{bang}: {self.description}"


def parse_conventional_commit(message: str) -> ConventionalCommit | None:
    """Parse a commit message, returning None if it isn't a conventional commit.

    The footer block is the trailing run of paragraphs whose first line is a
    footer; lines that don't start a new footer continue the previous one.
    """
    lines = message.strip().splitlines()
    if not lines:
        return None
    header = HEADER_RE.match(lines[0].strip())
    if header is None:
        return None

    paragraphs: list[list[str]] = []
    for line in lines[1:]:
        if not line.strip():
            if paragraphs and paragraphs[-1]:
                paragraphs.append([])
            continue
        if not paragraphs:
            paragraphs.append([])
        paragraphs[-1].append(line)
    paragraphs = [p for p in paragraphs if p]

    split = len(paragraphs)
    while split > 0 and FOOTER_RE.match(paragraphs[split - 1][0]):
        split -= 1

    footers: list[Footer] = []
    for paragraph in paragraphs[split:]:
        for line in paragraph:
            match = FOOTER_RE.match(line)
            if match:
                footers.append(Footer(**match.groupdict()))
            else:
                last = footers[-1]
                footers[-1] = last.model_copy(update={"value": f"{last.value}\n{line}"})

    body = "\n\n".join("\n".join(p) for p in paragraphs[:split]) or None
    has_breaking_footer = any(footer.is_breaking for footer in footers)
    return ConventionalCommit(
        type=header["type"],
        scope=header["scope"],
        breaking=bool(header["bang"]) or has_breaking_footer,
        description=header["description"].strip(),
        body=body,
        footers=tuple(footers),
    )


def changes_from_commit(
    commit: Commit,
    sections: ChangelogSections,
    scopes: Iterable[str] | None = None,
) -> list[Change]:
    """Changes described by one commit.

    A breaking footer becomes its own breaking change and the summary is then
    filed under its type (feat or fix). Without such a footer a ``!`` makes
    the summary itself breaking. Footers that feed a changelog section become
    changes too. Other commit types only contribute their footers.
    """
    parsed = parse_conventional_commit(commit.message)
    if parsed is None:
        return []
    wanted = {scope.lower() for scope in scopes or ()}
    if parsed.scope and wanted and parsed.scope.lower() not in wanted:
        return []

    summary = parsed.summary_line()
    packages = frozenset({parsed.scope}) if parsed.scope else frozenset()
    info = GitInfo(sha=commit.sha, author=commit.author)
    changes: list[Change] = []
    for footer in parsed.footers:
        if footer.is_breaking:
            change_type = ChangeType.breaking()
        elif sections.contains_footer(footer.token):
            change_type = ChangeType.footer(footer.token)
        else:
            continue
        description = f"{summary}\n\tContaining footer {footer.token}{footer.separator.rstrip()} {footer.value}"
        changes.append(
            Change(
                change_type=change_type,
                summary=footer.value,
                origin=ChangeOrigin(kind=OriginKind.COMMIT, value=description),
                packages=packages,
                commit=info,
            )
        )

    has_breaking_footer = any(footer.is_breaking for footer in parsed.footers)
    commit_type = parsed.type.lower()
    if parsed.breaking and not has_breaking_footer:
        change_type = ChangeType.breaking()
    elif commit_type == "feat":
        change_type = ChangeType.feature()
    elif commit_type == "fix":
        change_type = ChangeType.fix()
    else:
        return changes
    changes.append(
        Change(
            change_type=change_type,
            summary=parsed.description,
            origin=ChangeOrigin(kind=OriginKind.COMMIT, value=summary),
            packages=packages,
            commit=info,
        )
    )
    return changes


def changes_from_commits(
    commits: Iterable[Commit],
    sections: ChangelogSections,
    scopes: Iterable[str] | None = None,
) -> list[Change]:
    """Changes from every conventional commit in commits, in order."""
    scopes = list(scopes) if scopes is not None else None
    if scopes:
        logger.debug("Only checking commits with scopes: %s", scopes)
    changes: list[Change] = []
    for commit in commits:
        changes.extend(changes_from_commit(commit, sections, scopes))
    return changes
