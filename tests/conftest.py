"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)


@pytest.fixture
def single_package_repo(tmp_path: Path) -> Path:
    """A repository with one package.json, a changelog and a change file."""
    (tmp_path / "package.json").write_text('{\n  "name": "app",\n  "version": "1.2.3"\n}\n')
    (tmp_path / "CHANGELOG.md").write_text(
        "# Changelog\n\n## 1.2.3 (2024-01-01)\n\n### Fixes\n\n- Old fix\n"
    )
    changeset = tmp_path / ".changeset"
    changeset.mkdir()
    (changeset / "new_feature.md").write_text("---\ndefault: minor\n---\n\n# New feature\n")
    return tmp_path


@pytest.fixture
def cargo_workspace(tmp_path: Path) -> Path:
    """A Cargo workspace where `app` depends on `core`."""
    (tmp_path / "Cargo.toml").write_text(
        '[workspace]\nmembers = ["crates/core", "crates/app"]\n\n'
        '[workspace.dependencies]\ncore = { path = "crates/core", version = "0.3.0" }\n'
    )
    (tmp_path / "crates" / "core").mkdir(parents=True)
    (tmp_path / "crates" / "core" / "Cargo.toml").write_text(
        '[package]\nname = "core"\nversion = "0.3.0"\n'
    )
    (tmp_path / "crates" / "app").mkdir(parents=True)
    (tmp_path / "crates" / "app" / "Cargo.toml").write_text(
        '[package]\nname = "app"\nversion = "1.0.0"\n\n[dependencies]\ncore = "0.3.0"\n'
    )
    (tmp_path / "Cargo.lock").write_text(
        'version = 3\n\n[[package]]\nname = "app"\nversion = "1.0.0"\n\n'
        '[[package]]\nname = "core"\nversion = "0.3.0"\n'
    )
    return tmp_path
