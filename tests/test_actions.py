"""Tests for bumpwright.actions."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from unittest.mock import MagicMock, call

import pytest

from bumpwright.actions import ActionCollector, CreateTag, DeleteFile, StageFile, WriteFile

CHANGELOG = PurePosixPath("CHANGELOG.md")
CHANGE_FILE = PurePosixPath(".changeset/feature.md")


@pytest.fixture
def collector() -> ActionCollector:
    actions = ActionCollector()
    actions.extend(
        [
            CreateTag(name="v1.1.0"),
            StageFile(path=CHANGELOG),
            WriteFile(path=CHANGELOG, content="first"),
            DeleteFile(path=CHANGE_FILE),
            StageFile(path=CHANGE_FILE),
        ]
    )
    return actions


class TestActionCollector:
    def test_duplicates_collapse(self, collector: ActionCollector) -> None:
        collector.add(StageFile(path=CHANGELOG))
        collector.add(CreateTag(name="v1.1.0"))
        assert len(collector) == 5

    def test_latest_write_wins(self, collector: ActionCollector) -> None:
        collector.add(WriteFile(path=CHANGELOG, content="second"))
        writes = [action for action in collector.plan() if isinstance(action, WriteFile)]
        assert writes == [WriteFile(path=CHANGELOG, content="second")]

    def test_same_path_different_kinds_kept(self) -> None:
        actions = ActionCollector()
        actions.extend([WriteFile(path=CHANGELOG, content="x"), StageFile(path=CHANGELOG)])
        assert len(actions) == 2

    def test_plan_order(self, collector: ActionCollector) -> None:
        assert [action.kind for action in collector.plan()] == ["write", "delete", "stage", "stage", "tag"]

    def test_describe(self, collector: ActionCollector) -> None:
        assert collector.describe() == [
            "Would write CHANGELOG.md",
            "Would delete .changeset/feature.md",
            "Would add CHANGELOG.md to git",
            "Would add .changeset/feature.md to git",
            "Would create git tag v1.1.0",
        ]


class TestApply:
    def test_dry_run_touches_nothing(self, tmp_path: Path, collector: ActionCollector) -> None:
        git = MagicMock()

        plan = collector.apply(tmp_path, dry_run=True, git=git)

        assert len(plan) == 5
        assert not (tmp_path / "CHANGELOG.md").exists()
        git.assert_not_called()

    def test_apply(self, tmp_path: Path, collector: ActionCollector) -> None:
        (tmp_path / ".changeset").mkdir()
        (tmp_path / ".changeset" / "feature.md").write_text("---\ndefault: minor\n---\n# Feature\n")
        git = MagicMock()

        collector.apply(tmp_path, git=git)

        assert (tmp_path / "CHANGELOG.md").read_text() == "first"
        assert not (tmp_path / ".changeset" / "feature.md").exists()
        assert git.call_args_list == [
            call("add", "--", "CHANGELOG.md", ".changeset/feature.md", cwd=tmp_path),
            call("tag", "v1.1.0", "HEAD", cwd=tmp_path),
        ]

    def test_writes_create_parent_directories(self, tmp_path: Path) -> None:
        actions = ActionCollector()
        actions.add(WriteFile(path=PurePosixPath("crates/core/CHANGELOG.md"), content="notes"))

        actions.apply(tmp_path, git=MagicMock())

        assert (tmp_path / "crates" / "core" / "CHANGELOG.md").read_text() == "notes"

    def test_deleting_missing_file_is_fine(self, tmp_path: Path) -> None:
        actions = ActionCollector()
        actions.add(DeleteFile(path=CHANGE_FILE))
        actions.apply(tmp_path, git=MagicMock())
