"""Registry of versioned file formats.

Every format is a pair of functions, ``read(content, ref, tags)`` and
``write(content, ref, version, go_versioning)``, registered once per
FileFormat. FileBuffer threads several edits of one path through a single
in-memory copy, so refs sharing a file see each other's changes.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, NamedTuple, Sequence

from . import deno, gomod, jsonfiles, pom, pubspec, regexfile, toml
from .config import FileFormat, VersionedFileRef
from .exceptions import FileAccessError
from .gomod import GoVersioning
from .versions import Version

logger = logging.getLogger(__name__)

Reader = Callable[[str, VersionedFileRef, Sequence[str]], Version]
Writer = Callable[[str, VersionedFileRef, Version, GoVersioning], str]


class FormatHandler(NamedTuple):
    read: Reader
    write: Writer


def _path(ref: VersionedFileRef) -> Path:
    return Path(ref.path)


# Every platform variant of tauri.conf.json is read the same way
TAURI_HANDLER = FormatHandler(
    read=lambda content, ref, tags: jsonfiles.read_tauri_conf(content, _path(ref)),
    write=lambda content, ref, version, _: jsonfiles.write_tauri_conf(content, _path(ref), version),
)


REGISTRY: dict[FileFormat, FormatHandler] = {
    FileFormat.CARGO: FormatHandler(
        read=lambda content, ref, tags: toml.read_cargo(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: toml.write_cargo(content, _path(ref), version, ref.dependency),
    ),
    FileFormat.CARGO_LOCK: FormatHandler(
        read=lambda content, ref, tags: toml.read_cargo_lock(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: toml.write_cargo_lock(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.PYPROJECT: FormatHandler(
        read=lambda content, ref, tags: toml.read_pyproject(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: toml.write_pyproject(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.PACKAGE_JSON: FormatHandler(
        read=lambda content, ref, tags: jsonfiles.read_package_json(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: jsonfiles.write_package_json(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.PACKAGE_LOCK: FormatHandler(
        read=lambda content, ref, tags: jsonfiles.read_package_lock(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: jsonfiles.write_package_lock(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.PUBSPEC: FormatHandler(
        read=lambda content, ref, tags: pubspec.read_pubspec(content, _path(ref)),
        write=lambda content, ref, version, _: pubspec.write_pubspec(content, _path(ref), version),
    ),
    FileFormat.GLEAM: FormatHandler(
        read=lambda content, ref, tags: toml.read_gleam(content, _path(ref)),
        write=lambda content, ref, version, _: toml.write_gleam(content, _path(ref), version),
    ),
    FileFormat.POM: FormatHandler(
        read=lambda content, ref, tags: pom.read_pom(content, _path(ref)),
        write=lambda content, ref, version, _: pom.write_pom(content, _path(ref), version),
    ),
    FileFormat.GO_MOD: FormatHandler(
        read=lambda content, ref, tags: gomod.read_go_mod(content, ref.path, tags),
        write=lambda content, ref, version, versioning: gomod.write_go_mod(
            content, ref.path, version, versioning
        ),
    ),
    FileFormat.TAURI_CONF: TAURI_HANDLER,
    FileFormat.TAURI_MACOS_CONF: TAURI_HANDLER,
    FileFormat.TAURI_WINDOWS_CONF: TAURI_HANDLER,
    FileFormat.TAURI_LINUX_CONF: TAURI_HANDLER,
    FileFormat.DENO_JSON: FormatHandler(
        read=lambda content, ref, tags: deno.read_deno_json(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: deno.write_deno_json(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.DENO_LOCK: FormatHandler(
        read=lambda content, ref, tags: deno.read_deno_lock(content, _path(ref), ref.dependency),
        write=lambda content, ref, version, _: deno.write_deno_lock(
            content, _path(ref), version, ref.dependency
        ),
    ),
    FileFormat.REGEX: FormatHandler(
        read=lambda content, ref, tags: regexfile.read_regex_file(content, _path(ref), ref.patterns or ()),
        write=lambda content, ref, version, _: regexfile.write_regex_file(
            content, _path(ref), version, ref.patterns or ()
        ),
    ),
}


def read_version(content: str, ref: VersionedFileRef, tags: Sequence[str] = ()) -> Version:
    """The version ref carries in content."""
    return REGISTRY[ref.format].read(content, ref, tags)


def write_version(
    content: str,
    ref: VersionedFileRef,
    version: Version,
    go_versioning: GoVersioning = GoVersioning.STANDARD,
) -> str:
    """content with ref's version replaced by version."""
    return REGISTRY[ref.format].write(content, ref, version, go_versioning)


class FileBuffer:
    """In-memory contents of the files touched by a release.

    The first read of a path comes from disk; later reads return the latest
    buffered content, so edits to one path accumulate.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.contents: dict[PurePosixPath, str] = {}
        self.changed: list[PurePosixPath] = []

    def exists(self, path: PurePosixPath) -> bool:
        return path in self.contents or (self.root / path).is_file()

    def read(self, path: PurePosixPath) -> str:
        """Current content of path.

        Raises:
            FileAccessError: If the file is missing or unreadable.
        """
        if path not in self.contents:
            full = self.root / path
            try:
                self.contents[path] = full.read_text()
            except FileNotFoundError as err:
                raise FileAccessError(path, "file not found") from err
            except OSError as err:
                raise FileAccessError(path, f"could not read file: {err}") from err
        return self.contents[path]

    def update(self, path: PurePosixPath, content: str) -> None:
        if self.contents.get(path) == content:
            return
        self.contents[path] = content
        if path not in self.changed:
            self.changed.append(path)

    def read_ref(self, ref: VersionedFileRef, tags: Sequence[str] = ()) -> Version:
        return read_version(self.read(ref.path), ref, tags)

    def write_ref(
        self,
        ref: VersionedFileRef,
        version: Version,
        go_versioning: GoVersioning = GoVersioning.STANDARD,
    ) -> str:
        """Apply a version change to the buffered content of ref.path."""
        content = write_version(self.read(ref.path), ref, version, go_versioning)
        self.update(ref.path, content)
        logger.debug("Set %s to %s", ref, version)
        return content
