"""Release actions and their collection.

Every physical effect of a release (writing a file, deleting a consumed
change file, staging a path, creating a tag) is a value object. Packages add
their actions to one ActionCollector, which deduplicates them by
``(kind, target)`` and applies them once, after all packages are planned.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict

from .exceptions import FileAccessError
from .shell import git as run_git

logger = logging.getLogger(__name__)


class WriteFile(BaseModel):
    """Replace the content of a file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["write"] = "write"
    path: PurePosixPath
    content: str

    @property
    def target(self) -> str:
        return str(self.path)

    def describe(self) -> str:
        return f"Would write {self.path}"


class DeleteFile(BaseModel):
    """Remove a file, e.g. a change file consumed by the release."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"
    path: PurePosixPath

    @property
    def target(self) -> str:
        return str(self.path)

    def describe(self) -> str:
        return f"Would delete {self.path}"


class StageFile(BaseModel):
    """Add a path to the git index."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["stage"] = "stage"
    path: PurePosixPath

    @property
    def target(self) -> str:
        return str(self.path)

    def describe(self) -> str:
        return f"Would add {self.path} to git"


class CreateTag(BaseModel):
    """Create a git tag pointing at target."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tag"] = "tag"
    name: str
    target_ref: str = "HEAD"

    @property
    def target(self) -> str:
        return self.name

    def describe(self) -> str:
        return f"Would create git tag {self.name}"


ReleaseAction = Union[WriteFile, DeleteFile, StageFile, CreateTag]

# Files change before they are staged, and everything is staged before tagging
APPLY_ORDER = {"write": 0, "delete": 0, "stage": 1, "tag": 2}


class ActionCollector:
    """Ordered, deduplicated set of release actions.

    Writes to the same path merge into one: the latest content wins, in the
    position of the first write. Other actions are kept once per target.
    """

    def __init__(self) -> None:
        self._actions: dict[tuple[str, str], ReleaseAction] = {}

    def add(self, action: ReleaseAction) -> None:
        key = (action.kind, action.target)
        if key in self._actions and not isinstance(action, WriteFile):
            return
        self._actions[key] = action

    def extend(self, actions: Iterable[ReleaseAction]) -> None:
        for action in actions:
            self.add(action)

    def __len__(self) -> int:
        return len(self._actions)

    def plan(self) -> list[ReleaseAction]:
        """Actions in the order they will be applied."""
        return sorted(self._actions.values(), key=lambda action: APPLY_ORDER[action.kind])

    def describe(self) -> list[str]:
        """Human-readable lines for a dry run."""
        return [action.describe() for action in self.plan()]

    def apply(
        self,
        root: Path,
        dry_run: bool = False,
        git: Callable[..., str] = run_git,
    ) -> list[ReleaseAction]:
        """Carry out the plan, or log it when dry_run is set.

        Args:
            root: Repository root that action paths are relative to.
            dry_run: Only log what would happen.
            git: Runs git commands for staging and tagging.

        Returns:
            The actions in application order.
        """
        plan = self.plan()
        if dry_run:
            for line in self.describe():
                logger.info(line)
            return plan

        staged: list[str] = []
        for action in plan:
            if isinstance(action, WriteFile):
                _write(root / action.path, action.content)
            elif isinstance(action, DeleteFile):
                _delete(root / action.path)
            elif isinstance(action, StageFile):
                staged.append(str(action.path))
            else:
                if staged:
                    git("add", "--", *staged, cwd=root)
                    staged = []
                git("tag", action.name, action.target_ref, cwd=root)
                logger.info("Created tag %s", action.name)
        if staged:
            git("add", "--", *staged, cwd=root)
        return plan


def _write(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    except OSError as err:
        raise FileAccessError(path, f"could not write file: {err}") from err
    logger.info("Wrote %s", path)


def _delete(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("%s was already deleted", path)
    except OSError as err:
        raise FileAccessError(path, f"could not delete file: {err}") from err
    else:
        logger.info("Deleted %s", path)
