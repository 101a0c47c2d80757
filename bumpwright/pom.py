"""Maven pom.xml version handling.

ElementTree validates the document and reads ``project/version``; writes
patch the text of that one element in place so formatting, comments and
namespace prefixes survive.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path

from .exceptions import ValidationError
from .versions import Version

TAG_RE = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>|<[?!].*?>|<(/?)([\w:.-]+)[^>]*?(/?)>", re.DOTALL)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def load_pom(content: str, path: Path) -> ET.Element:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as err:
        raise ValidationError(f"Invalid XML in {path}: {err}") from err
    if _local_name(root.tag) != "project":
        raise ValidationError(f"{path} is missing the required property project")
    return root


def read_pom(content: str, path: Path) -> Version:
    root = load_pom(content, path)
    for child in root:
        if _local_name(child.tag) == "version" and child.text and child.text.strip():
            return Version.parse(child.text)
    raise ValidationError(f"{path} is missing the required property project.version")


def _child_spans(content: str) -> dict[str, tuple[int, int]]:
    """Text spans of the direct children of the root element, by local name.

    Only the first occurrence of each name is kept.
    """
    spans: dict[str, tuple[int, int]] = {}
    depth = 0
    open_at: tuple[str, int] | None = None
    for match in TAG_RE.finditer(content):
        closing, name, self_closing = match.group(1), match.group(2), match.group(3)
        if name is None:
            continue
        local = name.rsplit(":", 1)[-1]
        if closing:
            depth -= 1
            if depth == 1 and open_at is not None and open_at[0] == local:
                spans.setdefault(local, (open_at[1], match.start()))
                open_at = None
        elif self_closing:
            continue
        else:
            if depth == 1:
                open_at = (local, match.end())
            depth += 1
    return spans


def write_pom(content: str, path: Path, version: Version) -> str:
    """Set ``project/version``, adding it after ``artifactId`` if missing."""
    load_pom(content, path)
    spans = _child_spans(content)
    if "version" in spans:
        start, end = spans["version"]
        return content[:start] + str(version) + content[end:]
    if "artifactId" not in spans:
        raise ValidationError(f"{path} has neither project.version nor project.artifactId")
    _, end = spans["artifactId"]
    close = content.index(">", end) + 1
    line_start = content.rfind("\n", 0, end) + 1
    indent = re.match(r"[ \t]*", content[line_start:]).group(0)  # type: ignore[union-attr]
    # Reuse the namespace prefix of </ns:artifactId>, if any
    closing_name = content[end + 2 : close - 1]
    prefix = closing_name.rsplit(":", 1)[0] + ":" if ":" in closing_name else ""
    element = f"\n{indent}<{prefix}version>{version}</{prefix}version>"
    return content[:close] + element + content[close:]
