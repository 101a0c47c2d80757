"""Arbitrary text files located with regular expressions.

Each pattern needs a named group ``version``. Reading requires every pattern
to match and takes the first pattern's version; writing replaces the
``version`` group of every match of every pattern, leaving all other bytes
alone.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from .exceptions import ValidationError
from .versions import Version

# Accept the (?<name>...) group syntax too, translated to Python's (?P<name>...)
NAMED_GROUP_RE = re.compile(r"\(\?<(?![=!])")


def compile_patterns(patterns: Sequence[str], path: Path) -> list[re.Pattern[str]]:
    """Compile patterns, checking each has a ``version`` group.

    Raises:
        ValidationError: If a pattern is invalid or lacks the group.
    """
    if not patterns:
        raise ValidationError(f"No patterns given for {path}")
    compiled = []
    for pattern in patterns:
        try:
            regex = re.compile(NAMED_GROUP_RE.sub("(?P<", pattern))
        except re.error as err:
            raise ValidationError(f"Invalid pattern {pattern!r} for {path}: {err}") from err
        if "version" not in regex.groupindex:
            raise ValidationError(f"Pattern {pattern!r} for {path} has no named group 'version'")
        compiled.append(regex)
    return compiled


def read_regex_file(content: str, path: Path, patterns: Sequence[str]) -> Version:
    """Version matched by the first pattern; every pattern must match.

    Raises:
        ValidationError: Naming the first pattern that does not match.
    """
    version: Version | None = None
    for pattern, regex in zip(patterns, compile_patterns(patterns, path)):
        match = regex.search(content)
        if match is None or match.group("version") is None:
            raise ValidationError(f"Pattern {pattern!r} did not match anything in {path}")
        if version is None:
            version = Version.parse(match.group("version"))
    assert version is not None
    return version


def write_regex_file(content: str, path: Path, version: Version, patterns: Sequence[str]) -> str:
    """Replace the ``version`` group of every match of every pattern."""
    new = str(version)

    def replace(match: re.Match[str]) -> str:
        start, end = match.span("version")
        if start < 0:
            return match.group(0)
        offset = match.start()
        whole = match.group(0)
        return whole[: start - offset] + new + whole[end - offset :]

    for regex in compile_patterns(patterns, path):
        content = regex.sub(replace, content)
    return content
