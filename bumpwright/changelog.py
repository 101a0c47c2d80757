"""Changelog rendering and placement.

A changelog is Markdown where every release starts with a heading whose text
begins with the version, e.g. ``## 1.2.0 (2024-05-01)``. New releases go
directly above the newest existing release, keeping the heading level that
changelog already uses.

Release notes are rendered once with sections at level 2 (the version title
being level 1) and shifted to the changelog's level when written.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path

from .aggregate import ClassifiedChanges
from .exceptions import FileAccessError, VersionParseError
from .models import Release
from .versions import Version

logger = logging.getLogger(__name__)

DEFAULT_HEADER_LEVEL = 2
DATE_RE = re.compile(r"^\(?(\d{4}-\d{2}-\d{2})\)?$")


def parse_title(line: str) -> tuple[int, Version, date | None] | None:
    """Parse a release heading into (level, version, date).

    Only ``#`` and ``##`` headings count. Returns None for anything else.

    Examples:
        parse_title("## 0.1.2 (2023-05-02)") → (2, 0.1.2, 2023-05-02)
        parse_title("# 1.0.0") → (1, 1.0.0, None)
        parse_title("## sad") → None
    """
    parts = line.split()
    if len(parts) < 2 or parts[0] not in ("#", "##"):
        return None
    try:
        version = Version.parse(parts[1])
    except VersionParseError:
        return None
    released = None
    for part in parts[2:]:
        match = DATE_RE.match(part)
        if match:
            try:
                released = date.fromisoformat(match.group(1))
            except ValueError:
                continue
            break
    return len(parts[0]), version, released


def locate_insertion_point(text: str) -> int | None:
    """Index of the first line that is a release heading, or None."""
    for index, line in enumerate(text.splitlines()):
        if parse_title(line) is not None:
            return index
    return None


def release_title(version: Version, released: date | None = None) -> str:
    released = released or today()
    return f"{version} ({released.isoformat()})"


def today() -> date:
    return datetime.now(timezone.utc).date()


def render_notes(classified: ClassifiedChanges, level: int = 2) -> str:
    """Render the sections of a release.

    Each non-empty section gets a heading at level, its simple changes as a
    bullet list, then each complex change as a heading one level deeper
    followed by its details.
    """
    blocks: list[str] = []
    for section, changes in classified.sections:
        lines = [f"{'#' * level} {section.name}", ""]
        simple = [change for change in changes if change.is_simple]
        complex_ = [change for change in changes if not change.is_simple]
        if simple:
            lines.extend(f"- {change.summary}" for change in simple)
            lines.append("")
        for change in complex_:
            lines.extend([f"{'#' * (level + 1)} {change.summary}", "", (change.details or "").strip(), ""])
        blocks.append("\n".join(lines).rstrip())
    return "\n\n".join(blocks)


def render_section(
    version: Version,
    released: date,
    classified: ClassifiedChanges,
    level: int = DEFAULT_HEADER_LEVEL,
) -> str:
    """A complete changelog entry: version heading followed by its sections."""
    heading = f"{'#' * level} {release_title(version, released)}"
    notes = render_notes(classified, level + 1)
    return f"{heading}\n\n{notes}" if notes else heading


def shift_headings(notes: str, by: int) -> str:
    """Add by ``#`` to every heading line (negative removes them)."""
    shifted = []
    for line in notes.splitlines():
        if line.startswith("#"):
            if by >= 0:
                line = "#" * by + line
            elif line.startswith("#" * (1 - by)):
                line = line[-by:]
        shifted.append(line)
    return "\n".join(shifted)


class Changelog:
    """A changelog file's path and (possibly updated) content."""

    def __init__(self, path: Path, content: str = "") -> None:
        self.path = path
        self.content = content
        index = locate_insertion_point(content)
        if index is None:
            self.header_level = DEFAULT_HEADER_LEVEL
        else:
            self.header_level = parse_title(content.splitlines()[index])[0]  # type: ignore[index]

    @classmethod
    def load(cls, path: Path) -> Changelog:
        """Read a changelog, treating a missing file as empty."""
        if not path.exists():
            return cls(path)
        try:
            return cls(path, path.read_text())
        except OSError as err:
            raise FileAccessError(path, f"could not read changelog: {err}") from err

    def render(self, release: Release) -> str:
        """The entry for release at this changelog's heading level."""
        hashes = "#" * self.header_level
        notes = shift_headings(release.notes, self.header_level - 1)
        return f"{hashes} {release.title}\n\n{notes}".rstrip()

    def with_release(self, release: Release) -> str:
        """Insert release above the newest existing release and return the entry.

        With no existing release heading the entry is appended. A trailing
        newline is kept if the file had one (or was empty).
        """
        entry = self.render(release)
        lines = self.content.splitlines()
        index = locate_insertion_point(self.content)
        if index is None:
            while lines and not lines[-1].strip():
                lines.pop()
            new_lines = lines + ([""] if lines else []) + [entry]
        else:
            new_lines = lines[:index] + [entry, ""] + lines[index:]
        new_content = "\n".join(new_lines)
        if self.content.endswith("\n") or not self.content:
            new_content += "\n"
        self.content = new_content
        logger.debug("Added %s to %s", release.title, self.path)
        return entry

    def get_release(self, version: Version, package_name: str | None = None) -> Release | None:
        """Extract the notes of an existing release, normalized to level 1 titles."""
        lines = self.content.splitlines()
        for index, line in enumerate(lines):
            parsed = parse_title(line)
            if parsed is None or parsed[0] != self.header_level or parsed[1] != version:
                continue
            prefix = "#" * self.header_level + " "
            body: list[str] = []
            for following in lines[index + 1 :]:
                if following.startswith(prefix):
                    break
                body.append(following)
            notes = shift_headings("\n".join(body).strip("\n"), 1 - self.header_level)
            if not notes.strip():
                return None
            return Release(
                title=line.lstrip("#").strip(),
                version=version,
                notes=notes,
                package_name=package_name,
            )
        return None
