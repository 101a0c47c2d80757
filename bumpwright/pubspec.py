"""pubspec.yaml (Dart) version handling.

PyYAML does not keep comments, so writes replace only the ``version:`` line
and fall back to re-dumping the document when there is no such line.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError
from .versions import Version


def load_pubspec(content: str, path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise ValidationError(f"Error deserializing {path}: {err}") from err
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must be a mapping with a top level version")
    return data


def read_pubspec(content: str, path: Path) -> Version:
    data = load_pubspec(content, path)
    if "version" not in data:
        raise ValidationError(f"{path} has no top level version")
    return Version.parse(str(data["version"]))


def write_pubspec(content: str, path: Path, version: Version) -> str:
    data = load_pubspec(content, path)
    lines = content.splitlines(keepends=True)
    for index, line in enumerate(lines):
        if line.startswith("version:"):
            ending = line[len(line.rstrip("\r\n")) :]
            lines[index] = yaml.safe_dump({"version": str(version)}).strip() + ending
            return "".join(lines)
    data["version"] = str(version)
    return yaml.safe_dump(data, sort_keys=False)
