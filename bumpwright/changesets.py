"""Change files in the ``.changeset`` directory.

A change file is Markdown with YAML frontmatter mapping package names to
change types::

    ---
    my-package: minor
    default: patch
    ---

    # Summary of the change

    Optional details, rendered as their own changelog entry.

``default`` refers to a single unnamed package. Types are ``major``,
``minor``, ``patch`` or any custom type a changelog section lists.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import yaml
from pydantic import BaseModel, ConfigDict

from .exceptions import ChangeFileError, FileAccessError, ValidationError
from .models import Change, ChangeOrigin, ChangeType, GitInfo, OriginKind

logger = logging.getLogger(__name__)


class ChangeFile(BaseModel):
    """A parsed change file.

    Attributes:
        id: The file name without ``.md``.
        path: Where the file lives.
        packages: Package name → change type (``major``, ``minor``, ``patch``
                  or a custom type), in frontmatter order.
        summary: First non-empty body line with heading markers removed.
        details: The rest of the body, None when there is nothing after
                 the summary.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    path: Path
    packages: dict[str, str]
    summary: str
    details: str | None = None

    def changes(self, commit: GitInfo | None = None) -> list[Change]:
        """One Change per package listed in the frontmatter."""
        return [
            Change(
                change_type=ChangeType.from_change_file(change_type),
                summary=self.summary,
                details=self.details,
                origin=ChangeOrigin(kind=OriginKind.CHANGE_FILE, value=self.path.name),
                packages=frozenset({package}),
                commit=commit,
            )
            for package, change_type in self.packages.items()
        ]


def split_summary(body: str) -> tuple[str, str | None]:
    """Split a change body into summary and details.

    Examples:
        "# a feature\\n\\n\\n" → ("a feature", None)
        "# a feature\\n\\nwith details" → ("a feature", "with details")
    """
    lines = body.strip().splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines:
        return "", None
    summary = lines[0].lstrip("# ")
    rest = lines[1:]
    while rest and not rest[0].strip():
        rest.pop(0)
    details = "\n".join(rest)
    return summary, details or None


def parse_change_file(path: Path, content: str) -> ChangeFile:
    """Parse change file content.

    Raises:
        ChangeFileError: If the frontmatter is missing, not valid YAML, or
            not a mapping of package names to change type strings.
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        raise ChangeFileError(path, "missing frontmatter")
    try:
        end = next(i for i, line in enumerate(lines[1:], start=1) if line.strip() == "---")
    except StopIteration:
        raise ChangeFileError(path, "unclosed frontmatter") from None
    try:
        frontmatter = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError as err:
        raise ChangeFileError(path, f"invalid YAML frontmatter: {err}") from err
    if not isinstance(frontmatter, dict) or not frontmatter:
        raise ChangeFileError(path, "frontmatter must map package names to change types")
    packages: dict[str, str] = {}
    for name, change_type in frontmatter.items():
        if not isinstance(change_type, str) or not change_type.strip():
            raise ChangeFileError(path, f"change type for {name} must be a string")
        packages[str(name)] = change_type.strip()

    summary, details = split_summary("\n".join(lines[end + 1 :]))
    if not summary:
        raise ChangeFileError(path, "missing summary")
    return ChangeFile(id=path.stem, path=path, packages=packages, summary=summary, details=details)


def read_change_files(directory: Path) -> list[ChangeFile]:
    """Read every ``*.md`` change file in directory, sorted by name.

    A missing directory means there are no change files.
    """
    if not directory.is_dir():
        return []
    change_files = []
    for path in sorted(directory.glob("*.md")):
        try:
            content = path.read_text()
        except OSError as err:
            raise FileAccessError(path, f"could not read change file: {err}") from err
        change_files.append(parse_change_file(path, content))
    logger.debug("Read %d change files from %s", len(change_files), directory)
    return change_files


def unique_id(summary: str) -> str:
    """File-name-safe id derived from a summary.

    Example:
        unique_id("Add `--dry-run` flag!") → "add_dry_run_flag"
    """
    return re.sub(r"[^a-z0-9]+", "_", summary.lower()).strip("_")


def render_change_file(packages: dict[str, str], summary: str, details: str | None = None) -> str:
    frontmatter = yaml.safe_dump(packages, sort_keys=False, default_flow_style=False)
    body = f"# {summary}\n"
    if details:
        body += f"\n{details.strip()}\n"
    return f"---\n{frontmatter}---\n\n{body}"


def write_change_file(
    directory: Path,
    packages: dict[str, str],
    summary: str,
    details: str | None = None,
    known_types: Iterable[str] | None = None,
) -> Path:
    """Create a new change file and return its path.

    Args:
        directory: The change file directory, created if missing.
        packages: Package name (or ``default``) → change type.
        summary: One-line summary, becomes the heading.
        details: Optional Markdown body.
        known_types: If given, every change type must be one of these.

    Raises:
        ValidationError: On an empty summary, no packages, or an unknown type.
        FileAccessError: If the file cannot be written.
    """
    summary = summary.strip()
    if not summary or not unique_id(summary):
        raise ValidationError("A change file needs a summary")
    if not packages:
        raise ValidationError("A change file needs at least one package")
    if known_types is not None:
        allowed = set(known_types)
        for name, change_type in packages.items():
            if change_type not in allowed:
                raise ValidationError(f"Unknown change type {change_type!r} for {name}")
    path = directory / f"{unique_id(summary)}.md"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(render_change_file(packages, summary, details))
    except OSError as err:
        raise FileAccessError(path, f"could not write change file: {err}") from err
    logger.info("Created change file %s", path)
    return path
