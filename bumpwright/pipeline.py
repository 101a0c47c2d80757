"""Release pipeline: discover → collect changes → bump → plan → apply.

This module orchestrates a release:
1. Find (or take) the packages to release
2. Read release tags reachable from HEAD and the change files
3. Per package, collect conventional commits since its last stable tag
   and the change file entries that apply to it
4. Compute the next version and update every versioned file and changelog
   in one shared in-memory buffer
5. Collect file writes, change file deletions, staging and tags as actions

Planning never touches the working tree, so a dry run raises exactly the
errors a real run would. run_release() applies the plan afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .actions import ActionCollector, CreateTag, DeleteFile, StageFile, WriteFile
from .aggregate import applies_to, classify
from .changelog import Changelog, release_title, render_notes, today
from .changesets import ChangeFile, read_change_files
from .config import ReleaseOptions
from .conventional import changes_from_commits
from .exceptions import NoChangesError, ValidationError
from .git import Commit, collect_commits_since, file_origin, tags_on_head
from .gomod import GoVersioning
from .models import Change, GitInfo, Release, VersionBump
from .package import Package, find_packages, last_stable_tag, load_versions, validate_packages
from .shell import git, step
from .versioned_files import FileBuffer
from .versions import PreRule, Rule, Version

logger = logging.getLogger(__name__)


class ReleasePlan(BaseModel):
    """Everything a release will do, computed before anything is changed.

    Attributes:
        actions: Deduplicated file, staging and tag actions.
        releases: Release notes per released package, for forge clients.
        bumps: Package label → version change.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    actions: ActionCollector
    releases: list[Release] = Field(default_factory=list)
    bumps: dict[str, VersionBump] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.releases


def check_change_files(change_files: Sequence[ChangeFile], packages: Sequence[Package]) -> None:
    """Every package a change file names must exist.

    Raises:
        ValidationError: Naming the change file and the unknown package.
    """
    known = {package.label for package in packages}
    for change_file in change_files:
        unknown = sorted(set(change_file.packages) - known)
        if unknown:
            raise ValidationError(
                f"Change file {change_file.path.name} names unknown package(s) "
                f"{', '.join(unknown)}; known packages: {', '.join(sorted(known))}"
            )


def collect_changes(
    package: Package,
    tags: Sequence[str],
    change_files: Sequence[ChangeFile],
    commit_cache: dict[str | None, list[Commit]],
    origins: dict[str, GitInfo | None],
) -> list[Change]:
    """Changes from commits and change files that apply to package.

    Commits are read once per distinct last stable tag and change file
    origins once per file, via the caches.
    """
    tag = last_stable_tag(package, tags)
    if tag not in commit_cache:
        commit_cache[tag] = collect_commits_since(tag)
    changes = changes_from_commits(commit_cache[tag], package.sections, package.scopes)
    for change_file in change_files:
        if package.label not in change_file.packages:
            continue
        if change_file.id not in origins:
            origins[change_file.id] = file_origin(change_file.path)
        changes.extend(change_file.changes(commit=origins[change_file.id]))
    return [change for change in changes if applies_to(change, package.name, package.scopes)]


def next_version(package: Package, options: ReleaseOptions) -> tuple[Version, GoVersioning] | None:
    """The version to release package at, or None if there is nothing to release.

    An override wins over computed versions and may change a go module's
    major version.

    Raises:
        ValidationError: If the current version is unknown and not overridden.
    """
    override = options.override_for(package.name)
    if override is not None:
        package.override = Version.parse(override)
        package.versions.update(package.override)
        return package.override, GoVersioning.BUMP_MAJOR

    classified = classify(package.pending_changes, package.sections)
    if classified.rule is None:
        return None
    if package.versions.latest() is None:
        raise ValidationError(
            f"Could not determine the current version of package {package.label}; "
            "add a versioned file, a release tag or an override version"
        )
    rule: Rule = classified.rule
    if options.prerelease_label:
        rule = PreRule(label=options.prerelease_label, stable_rule=classified.rule)
    return package.versions.bump(rule), package.go_versioning


def prepare_package(
    package: Package,
    version: Version,
    go_versioning: GoVersioning,
    buffer: FileBuffer,
) -> Release:
    """Update package's files and changelog in buffer and build its release notes."""
    for ref in package.versioned_files:
        buffer.write_ref(ref, version, go_versioning)

    classified = classify(package.pending_changes, package.sections)
    release = Release(
        title=release_title(version, today()),
        version=version,
        notes=render_notes(classified),
        package_name=package.name,
        tag=package.tag_for(version),
    )
    if package.changelog is not None:
        content = buffer.read(package.changelog) if buffer.exists(package.changelog) else ""
        changelog = Changelog(buffer.root / package.changelog, content)
        changelog.with_release(release)
        buffer.update(package.changelog, changelog.content)
    return release


def prepare_release(
    root: Path,
    packages: Sequence[Package] | None = None,
    options: ReleaseOptions | None = None,
) -> ReleasePlan:
    """Compute the release of every package without changing anything.

    Args:
        root: Repository root.
        packages: Packages to release; detected from root when None.
        options: Release options; defaults when None.

    Returns:
        The plan, ready for run_release() or inspection.

    Raises:
        NoChangesError: If no package has anything to release and
            options.allow_empty is not set.
    """
    options = options or ReleaseOptions()
    if packages is None:
        packages = find_packages(root)
    if not packages:
        raise ValidationError(f"No packages are defined or could be detected in {root}")
    validate_packages(packages)

    step("Reading release tags")
    tags = tags_on_head()
    print(f"  {len(tags)} tags reachable from HEAD")

    step("Reading change files")
    change_files = read_change_files(root / options.changeset_dir)
    check_change_files(change_files, packages)
    for change_file in change_files:
        print(f"  {change_file.path.name}: {change_file.summary}")

    buffer = FileBuffer(root)
    plan = ReleasePlan(actions=ActionCollector())
    commit_cache: dict[str | None, list[Commit]] = {}
    origins: dict[str, GitInfo | None] = {}
    tag_owners: dict[str, str] = {}
    consumed: list[ChangeFile] = []

    for package in packages:
        step(f"Preparing {package.label}")
        load_versions(package, buffer, tags)
        package.pending_changes = collect_changes(package, tags, change_files, commit_cache, origins)
        old = package.versions.latest()

        result = next_version(package, options)
        if result is None:
            print("  No changes")
            continue
        version, go_versioning = result

        release = prepare_package(package, version, go_versioning, buffer)
        plan.releases.append(release)
        plan.bumps[package.label] = VersionBump(old=str(old) if old else None, new=str(version))
        print(f"  {package.label}: {old or '<none>'} → {version}")

        for tag in package.release_tags(version, buffer):
            owner = tag_owners.setdefault(tag, package.label)
            if owner != package.label:
                raise ValidationError(
                    f"Tag {tag} for package {package.label} collides with package {owner}"
                )
        if not version.is_prerelease:
            # Prereleases keep change files around for the final release
            for change_file in change_files:
                if package.label in change_file.packages and change_file not in consumed:
                    consumed.append(change_file)

    if plan.is_empty:
        if options.allow_empty:
            logger.info("Nothing to release")
            return plan
        raise NoChangesError(packages[0].name if len(packages) == 1 else None)

    for path in buffer.changed:
        plan.actions.add(WriteFile(path=path, content=buffer.contents[path]))
        plan.actions.add(StageFile(path=path))
    for change_file in consumed:
        path = PurePosixPath(options.changeset_dir) / change_file.path.name
        plan.actions.add(DeleteFile(path=path))
        plan.actions.add(StageFile(path=path))
    for tag in tag_owners:
        plan.actions.add(CreateTag(name=tag))
    return plan


def run_release(
    root: Path,
    packages: Sequence[Package] | None = None,
    options: ReleaseOptions | None = None,
    run_git: Callable[..., str] = git,
) -> ReleasePlan:
    """Plan the release, then apply it (or log it for a dry run)."""
    options = options or ReleaseOptions()
    plan = prepare_release(root, packages, options)
    if plan.is_empty:
        print("\nNothing to release.")
        return plan

    step("Applying release" if not options.dry_run else "Dry run")
    for line in plan.actions.describe():
        print(f"  {line}")
    plan.actions.apply(root, dry_run=options.dry_run, git=run_git)

    print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")
    return plan
