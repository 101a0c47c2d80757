"""Tests for bumpwright.conventional."""

from __future__ import annotations

from bumpwright.aggregate import ChangelogSections
from bumpwright.config import ChangelogSectionConfig
from bumpwright.conventional import changes_from_commit, changes_from_commits, parse_conventional_commit
from bumpwright.git import Commit
from bumpwright.models import ChangeKind, ChangeType, OriginKind


def commit(message: str, sha: str = "abc1234") -> Commit:
    return Commit(sha=sha, message=message, author="Dev")


class TestParseConventionalCommit:
    def test_simple(self) -> None:
        parsed = parse_conventional_commit("feat: add a thing")
        assert parsed is not None
        assert parsed.type == "feat"
        assert parsed.scope is None
        assert parsed.description == "add a thing"
        assert not parsed.breaking

    def test_scope_and_bang(self) -> None:
        parsed = parse_conventional_commit("fix(parser)!: drop old syntax")
        assert parsed is not None
        assert parsed.scope == "parser"
        assert parsed.breaking

    def test_not_conventional(self) -> None:
        assert parse_conventional_commit("Merge branch 'main'") is None
        assert parse_conventional_commit("") is None
        assert parse_conventional_commit("feat:missing space") is None

    def test_body_and_footers(self) -> None:
        message = (
            "feat: something\n\n"
            "A longer explanation\nover two lines.\n\n"
            "Reviewed-by: Someone\n"
            "Refs #123\n"
        )
        parsed = parse_conventional_commit(message)
        assert parsed is not None
        assert parsed.body == "A longer explanation\nover two lines."
        assert [(f.token, f.value) for f in parsed.footers] == [("Reviewed-by", "Someone"), ("Refs", "123")]

    def test_breaking_footer_sets_breaking(self) -> None:
        parsed = parse_conventional_commit("chore: tidy\n\nBREAKING CHANGE: removed the CLI")
        assert parsed is not None
        assert parsed.breaking
        assert parsed.footers[0].is_breaking

    def test_hyphenated_breaking_footer(self) -> None:
        parsed = parse_conventional_commit("fix: x\n\nBREAKING-CHANGE: y")
        assert parsed is not None
        assert parsed.footers[0].is_breaking

    def test_breaking_footer_any_case(self) -> None:
        for token in ("breaking change", "Breaking Change", "breaking-change"):
            parsed = parse_conventional_commit(f"feat: thing\n\n{token}: api removed")
            assert parsed is not None
            assert parsed.breaking
            assert parsed.footers[0].token == token

    def test_footer_continuation_lines(self) -> None:
        parsed = parse_conventional_commit("feat: x\n\nBREAKING CHANGE: first line\nsecond line")
        assert parsed is not None
        assert parsed.footers[0].value == "first line\nsecond line"

    def test_paragraph_that_is_not_trailing_is_body(self) -> None:
        parsed = parse_conventional_commit("feat: x\n\nNote: this is prose\n\nMore prose here")
        assert parsed is not None
        assert parsed.footers == ()
        assert parsed.body == "Note: this is prose\n\nMore prose here"


class TestChangesFromCommit:
    def test_feature(self) -> None:
        changes = changes_from_commit(commit("feat: add a thing"), ChangelogSections())
        assert len(changes) == 1
        change = changes[0]
        assert change.change_type == ChangeType.feature()
        assert change.summary == "add a thing"
        assert change.origin.kind is OriginKind.COMMIT
        assert change.origin.value == "feat: add a thing"
        assert change.commit is not None and change.commit.sha == "abc1234"
        assert change.is_simple

    def test_type_is_case_insensitive(self) -> None:
        changes = changes_from_commit(commit("FIX: broken"), ChangelogSections())
        assert [c.change_type for c in changes] == [ChangeType.fix()]

    def test_bang_makes_summary_breaking(self) -> None:
        changes = changes_from_commit(commit("fix!: change API"), ChangelogSections())
        assert [c.change_type for c in changes] == [ChangeType.breaking()]
        assert changes[0].summary == "change API"

    def test_breaking_footer_yields_two_changes(self) -> None:
        message = "feat!: new config format\n\nBREAKING CHANGE: old files are no longer read"
        changes = changes_from_commit(commit(message), ChangelogSections())
        assert [c.change_type.kind for c in changes] == [ChangeKind.BREAKING, ChangeKind.FEATURE]
        assert changes[0].summary == "old files are no longer read"
        assert changes[0].origin.value == (
            "feat: new config format\n\tContaining footer BREAKING CHANGE: old files are no longer read"
        )
        assert changes[1].summary == "new config format"

    def test_lowercase_breaking_footer_is_breaking(self) -> None:
        changes = changes_from_commit(commit("fix: thing\n\nBreaking Change: api removed"), ChangelogSections())
        assert [c.change_type.kind for c in changes] == [ChangeKind.BREAKING, ChangeKind.FIX]
        assert changes[0].summary == "api removed"

    def test_other_types_are_ignored(self) -> None:
        assert changes_from_commit(commit("chore: bump deps"), ChangelogSections()) == []
        assert changes_from_commit(commit("docs: typo"), ChangelogSections()) == []

    def test_breaking_chore_counts(self) -> None:
        changes = changes_from_commit(commit("chore!: drop python 3.8"), ChangelogSections())
        assert [c.change_type for c in changes] == [ChangeType.breaking()]

    def test_builtin_note_footer(self) -> None:
        message = "chore: release prep\n\nChangelog-Note: Remember to migrate"
        changes = changes_from_commit(commit(message), ChangelogSections())
        assert [c.change_type for c in changes] == [ChangeType.footer("Changelog-Note")]
        assert changes[0].summary == "Remember to migrate"

    def test_configured_footer_is_case_insensitive(self) -> None:
        sections = ChangelogSections.from_config(
            [ChangelogSectionConfig(name="Security", footers=["Security-Note"])]
        )
        message = "fix: patch hole\n\nsecurity-note: CVE-2024-0001"
        changes = changes_from_commit(commit(message), sections)
        assert [c.change_type.kind for c in changes] == [ChangeKind.FOOTER, ChangeKind.FIX]
        assert sections.section_for(changes[0].change_type).name == "Security"  # type: ignore[union-attr]

    def test_unknown_footer_ignored(self) -> None:
        changes = changes_from_commit(commit("fix: x\n\nReviewed-by: Someone"), ChangelogSections())
        assert [c.change_type for c in changes] == [ChangeType.fix()]

    def test_repeated_footers_each_become_a_change(self) -> None:
        message = "chore: x\n\nChangelog-Note: one\nChangelog-Note: two"
        changes = changes_from_commit(commit(message), ChangelogSections())
        assert [c.summary for c in changes] == ["one", "two"]

    def test_scope_recorded(self) -> None:
        changes = changes_from_commit(commit("feat(core): x"), ChangelogSections())
        assert changes[0].packages == frozenset({"core"})

    def test_scope_filter(self) -> None:
        sections = ChangelogSections()
        assert changes_from_commit(commit("feat(api): x"), sections, ["core"]) == []
        assert len(changes_from_commit(commit("feat(CORE): x"), sections, ["core"])) == 1
        assert len(changes_from_commit(commit("feat: x"), sections, ["core"])) == 1


class TestChangesFromCommits:
    def test_keeps_order(self) -> None:
        commits = [commit("fix: A", "1"), commit("chore: skip", "2"), commit("feat: B", "3")]
        changes = changes_from_commits(commits, ChangelogSections())
        assert [c.summary for c in changes] == ["A", "B"]
