"""Tests for bumpwright.pubspec and bumpwright.pom."""

from __future__ import annotations

from pathlib import Path

import pytest

from bumpwright.exceptions import ValidationError
from bumpwright.pom import read_pom, write_pom
from bumpwright.pubspec import read_pubspec, write_pubspec
from bumpwright.versions import Version

PUBSPEC = Path("pubspec.yaml")
POM = Path("pom.xml")


class TestPubspec:
    content = "name: my_app\n# The app version\nversion: 1.0.0\n\nenvironment:\n  sdk: '>=3.0.0 <4.0.0'\n"

    def test_read(self) -> None:
        assert read_pubspec(self.content, PUBSPEC) == Version.parse("1.0.0")

    def test_write_keeps_comments(self) -> None:
        result = write_pubspec(self.content, PUBSPEC, Version.parse("1.1.0"))
        assert result == self.content.replace("version: 1.0.0", "version: 1.1.0")

    def test_write_without_version_line(self) -> None:
        result = write_pubspec("name: my_app\ndescription: demo\n", PUBSPEC, Version.parse("0.1.0"))
        assert result == "name: my_app\ndescription: demo\nversion: 0.1.0\n"

    def test_missing_version(self) -> None:
        with pytest.raises(ValidationError, match="no top level version"):
            read_pubspec("name: my_app\n", PUBSPEC)

    def test_invalid_yaml(self) -> None:
        with pytest.raises(ValidationError, match="Error deserializing"):
            read_pubspec("name: [unclosed\n", PUBSPEC)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ValidationError, match="must be a mapping"):
            read_pubspec("- just\n- a list\n", PUBSPEC)


class TestPom:
    content = """\
<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <!-- <version>comment</version> -->
    <groupId>com.example</groupId>
    <artifactId>demo</artifactId>
    <version>1.0.0</version>
    <dependencies>
        <dependency>
            <artifactId>lib</artifactId>
            <version>9.9.9</version>
        </dependency>
    </dependencies>
</project>
"""

    def test_read(self) -> None:
        assert read_pom(self.content, POM) == Version.parse("1.0.0")

    def test_write_only_project_version(self) -> None:
        result = write_pom(self.content, POM, Version.parse("1.1.0"))
        assert result == self.content.replace("<version>1.0.0</version>", "<version>1.1.0</version>")

    def test_write_adds_missing_version(self) -> None:
        content = self.content.replace("    <version>1.0.0</version>\n", "")
        result = write_pom(content, POM, Version.parse("0.1.0"))
        assert "<artifactId>demo</artifactId>\n    <version>0.1.0</version>\n" in result
        assert read_pom(result, POM) == Version.parse("0.1.0")

    def test_missing_version(self) -> None:
        content = self.content.replace("    <version>1.0.0</version>\n", "")
        with pytest.raises(ValidationError, match="project.version"):
            read_pom(content, POM)

    def test_wrong_root(self) -> None:
        with pytest.raises(ValidationError, match="missing the required property project"):
            read_pom("<settings/>", POM)

    def test_invalid_xml(self) -> None:
        with pytest.raises(ValidationError, match="Invalid XML"):
            read_pom("<project>", POM)
