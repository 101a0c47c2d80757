"""go.mod version handling.

Go has no version field; the version lives in a comment on the module
line (``module example.com/mod/v2 // v2.1.0``), falling back to the
module's release tags. Major versions above 1 are part of the module path
(``/v2``), so major bumps are guarded:

* STANDARD refuses any bump that would change the major version in the
  module path.
* BUMP_MAJOR (an explicit override version) rewrites the ``/vN`` suffix,
  except for modules living in a ``vN`` directory where only the comment
  changes.
* IGNORE_MAJOR_RULES only ever rewrites the comment.

Release tags derive from the directory holding go.mod, not the package name.
"""

from __future__ import annotations

import enum
import logging
import re
from pathlib import PurePosixPath
from typing import Iterable

from pydantic import BaseModel

from .exceptions import ValidationError, VersionConflictError, VersionParseError
from .versions import Version

logger = logging.getLogger(__name__)

MAJOR_SUFFIX_RE = re.compile(r"^v(\d+)$")


class GoVersioning(str, enum.Enum):
    STANDARD = "standard"
    IGNORE_MAJOR_RULES = "ignore_major_rules"
    BUMP_MAJOR = "bump_major"


class ModuleLine(BaseModel):
    """The parts of a ``module`` line.

    Attributes:
        module: Module path without any ``/vN`` suffix.
        major: The N of a ``/vN`` suffix, if present.
        version: Version from the ``// v{version}`` comment, if present.
    """

    module: str
    major: int | None = None
    version: Version | None = None

    @classmethod
    def parse(cls, line: str) -> ModuleLine:
        parts = line.split()
        if len(parts) < 2:
            raise ValidationError(f"Module line has no module path: {line!r}")
        module = parts[1]
        major = None
        head, sep, tail = module.rpartition("/")
        suffix = MAJOR_SUFFIX_RE.match(tail)
        if sep and suffix:
            module, major = head, int(suffix.group(1))
        version = None
        if len(parts) > 3 and parts[2] == "//" and parts[3].startswith("v"):
            try:
                version = Version.parse(parts[3][1:])
            except VersionParseError:
                version = None
        return cls(module=module, major=major, version=version)

    def __str__(self) -> str:
        path = f"{self.module}/v{self.major}" if self.major is not None else self.module
        comment = f" // v{self.version}" if self.version is not None else ""
        return f"module {path}{comment}"


def find_module_line(content: str, path: PurePosixPath) -> str:
    for line in content.splitlines():
        if line.startswith("module "):
            return line
    raise ValidationError(f"No module line found in {path}")


def _directory(path: PurePosixPath) -> str:
    parent = str(path.parent)
    return "" if parent == "." else parent


def _uses_major_directory(path: PurePosixPath, major: int | None) -> bool:
    return major is not None and path.parent.name == f"v{major}"


def tag_prefix(path: PurePosixPath, major: int | None = None) -> str:
    """Tag prefix for the module at path: ``{dir}/`` or empty at the root.

    A trailing ``vN`` directory is not part of the prefix.
    """
    directory = PurePosixPath(_directory(path))
    if major is not None and directory.name == f"v{major}":
        directory = directory.parent
    return "" if str(directory) in (".", "") else f"{directory}/"


def read_go_mod(content: str, path: PurePosixPath, tags: Iterable[str] = ()) -> Version:
    """Version from the module line comment, else the newest matching tag.

    Tags must be sorted newest first. A module with a ``/vN`` suffix only
    matches tags of major N; one without only matches majors 0 and 1.
    """
    line = ModuleLine.parse(find_module_line(content, path))
    if line.version is not None:
        return line.version
    prefix = tag_prefix(path, line.major)
    majors = (line.major,) if line.major is not None else (0, 1)
    for tag in tags:
        if not tag.startswith(f"{prefix}v"):
            continue
        try:
            version = Version.parse(tag[len(prefix) + 1 :])
        except VersionParseError:
            continue
        if version.major in majors:
            return version
    raise ValidationError(
        f"No version found for {path}: no module line comment and no tag with prefix "
        f"{prefix!r} and major version in {list(majors)}"
    )


def write_go_mod(
    content: str,
    path: PurePosixPath,
    version: Version,
    versioning: GoVersioning = GoVersioning.STANDARD,
) -> str:
    """Record version in the module line comment, guarding major bumps.

    Raises:
        VersionConflictError: In STANDARD mode when the new major version
            would have to change the module path.
    """
    original = find_module_line(content, path)
    line = ModuleLine.parse(original)
    line = line.model_copy(update={"version": version})
    new_major = version.major
    path_major = line.major if line.major is not None else 1

    if versioning is not GoVersioning.IGNORE_MAJOR_RULES and new_major > 1 and new_major != path_major:
        if versioning is GoVersioning.STANDARD:
            if line.major is None:
                raise VersionConflictError(
                    f"Will not bump Go module {path} to {version}: the module path would need a "
                    f"/v{new_major} suffix"
                )
            raise VersionConflictError(
                f"Will not change the major version of Go module {path} (module path ends in "
                f"/v{line.major}) to {version}"
            )
        if _uses_major_directory(path, line.major):
            logger.info("%s uses a major version directory, only updating the version comment", path)
        else:
            line = line.model_copy(update={"major": new_major})
    elif (
        versioning is GoVersioning.STANDARD
        and line.major is not None
        and new_major != line.major
    ):
        raise VersionConflictError(
            f"Will not change the major version of Go module {path} (module path ends in "
            f"/v{line.major}) to {version}"
        )

    return content.replace(original, str(line), 1)


def release_tag(path: PurePosixPath, content: str, version: Version) -> str:
    """Tag for a go module release, derived from the go.mod directory.

    Examples:
        go.mod at 1.2.0 → "v1.2.0"
        sub/go.mod at 1.2.0 → "sub/v1.2.0"
        sub/v2/go.mod at 2.1.0 → "sub/v2.1.0"
    """
    line = ModuleLine.parse(find_module_line(content, path))
    return f"{tag_prefix(path, line.major)}v{version}"
