"""Git history queries.

Commit selection is a reachability question: the commits of a release are
those reachable from HEAD but not from the previous release tag. The graph
is read once with ``git log`` and the set difference is computed here, so
merged side branches are neither lost nor counted twice.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .exceptions import GitHistoryError
from .models import GitInfo
from .shell import git

logger = logging.getLogger(__name__)

# Field and record separators for `git log --format`
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = f"%H{FIELD_SEP}%P{FIELD_SEP}%an{FIELD_SEP}%B{RECORD_SEP}"


class Commit(BaseModel):
    """One node of the commit graph."""

    model_config = ConfigDict(frozen=True)

    sha: str
    parents: tuple[str, ...] = ()
    message: str = ""
    author: str = ""


class CommitGraph:
    """Commits keyed by sha, kept in ``git log`` order (newest first)."""

    def __init__(self, commits: Iterable[Commit]) -> None:
        self.commits: dict[str, Commit] = {commit.sha: commit for commit in commits}

    def __contains__(self, sha: object) -> bool:
        return sha in self.commits

    def __len__(self) -> int:
        return len(self.commits)

    def reachable(self, start: str) -> set[str]:
        """Every commit reachable from start, start included.

        Parents missing from the graph (e.g. beyond a shallow clone) end the
        walk without error.

        Raises:
            GitHistoryError: If start itself is not in the graph.
        """
        if start not in self.commits:
            raise GitHistoryError(f"Commit {start} is not part of the loaded history")
        seen: set[str] = set()
        stack = [start]
        while stack:
            sha = stack.pop()
            if sha in seen:
                continue
            seen.add(sha)
            commit = self.commits.get(sha)
            if commit is None:
                continue
            stack.extend(parent for parent in commit.parents if parent not in seen)
        return seen

    def commits_since(self, head: str, base: str | None = None) -> list[Commit]:
        """Commits reachable from head but not from base, newest first.

        With no base every commit reachable from head is returned.
        """
        included = self.reachable(head)
        if base is not None:
            included -= self.reachable(base)
        return [commit for sha, commit in self.commits.items() if sha in included]


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with LOG_FORMAT."""
    commits: list[Commit] = []
    for record in output.split(RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        sha, parents, author, message = record.split(FIELD_SEP, 3)
        commits.append(
            Commit(sha=sha, parents=tuple(parents.split()), author=author, message=message.strip())
        )
    return commits


def head_sha() -> str:
    """The commit HEAD points at.

    Raises:
        GitHistoryError: If HEAD cannot be resolved, e.g. in a repo without commits.
    """
    return git("rev-parse", "--verify", "HEAD^{commit}")


def resolve(rev: str) -> str:
    """Resolve a tag or other revision to a commit sha."""
    return git("rev-list", "-n", "1", rev)


def load_commit_graph(*revs: str) -> CommitGraph:
    """Read the history reachable from revs (HEAD by default)."""
    output = git("log", f"--format={LOG_FORMAT}", *(revs or ("HEAD",)))
    graph = CommitGraph(parse_log(output))
    logger.debug("Loaded %d commits", len(graph))
    return graph


def collect_commits_since(tag: str | None) -> list[Commit]:
    """Commits in HEAD that are not part of the release tagged tag.

    Args:
        tag: The last stable release tag, or None to take the whole history.
    """
    head = head_sha()
    if tag is None:
        return load_commit_graph(head).commits_since(head)
    base = resolve(tag)
    logger.info("Collecting commits since %s (%s)", tag, base[:7])
    return load_commit_graph(head, base).commits_since(head, base)


def tags_on_head() -> list[str]:
    """Tags reachable from HEAD, highest version first."""
    output = git("tag", "--merged", "HEAD", "--sort=-v:refname", check=False)
    return output.splitlines() if output else []


def file_origin(path: Path) -> GitInfo | None:
    """The commit that added path, if it has been committed."""
    output = git(
        "log", "--diff-filter=A", f"--format=%H{FIELD_SEP}%an", "--", str(path), check=False
    )
    if not output:
        return None
    sha, author = output.splitlines()[-1].split(FIELD_SEP, 1)
    return GitInfo(sha=sha, author=author)
