"""Tests for bumpwright.deno."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bumpwright.deno import (
    deno_dependency_names,
    parse_specifier,
    read_deno_json,
    read_deno_lock,
    strip_json_comments,
    write_deno_json,
    write_deno_lock,
)
from bumpwright.exceptions import ValidationError
from bumpwright.versions import Version

DENO_JSON = Path("deno.json")
DENO_LOCK = Path("deno.lock")


class TestSpecifiers:
    def test_scoped_jsr(self) -> None:
        specifier = parse_specifier("jsr:@scope/first-package@^1.0.0")
        assert specifier is not None
        assert (specifier.kind, specifier.name, specifier.req) == ("jsr", "@scope/first-package", "^1.0.0")
        assert specifier.with_version("1.1.0") == "jsr:@scope/first-package@1.1.0"

    def test_npm_without_version(self) -> None:
        assert parse_specifier("npm:chalk") == ("npm", "chalk", "")

    def test_not_a_package(self) -> None:
        assert parse_specifier("./local/mod.ts") is None
        assert parse_specifier("https://deno.land/x/mod.ts") is None


class TestStripJsonComments:
    def test_line_and_block_comments(self) -> None:
        content = '{\n  // the name\n  "name": "a", /* inline */ "version": "1.0.0"\n}'
        assert json.loads(strip_json_comments(content)) == {"name": "a", "version": "1.0.0"}

    def test_strings_untouched(self) -> None:
        content = '{"url": "https://example.com/*x*/", "quote": "say \\"//hi\\""}'
        assert strip_json_comments(content) == content


class TestDenoJson:
    content = (
        "{\n"
        '  "name": "@scope/second-package",\n'
        '  "version": "1.0.0",\n'
        '  "imports": {\n'
        '    "@scope/first-package": "jsr:@scope/first-package@^1.0.0",\n'
        '    "chalk": "npm:chalk@5",\n'
        '    "local": "./mod.ts"\n'
        "  }\n"
        "}\n"
    )

    def test_read(self) -> None:
        assert read_deno_json(self.content, DENO_JSON) == Version.parse("1.0.0")

    def test_read_jsonc(self) -> None:
        content = '{\n  // released by CI\n  "name": "a",\n  "version": "2.1.0"\n}\n'
        assert read_deno_json(content, DENO_JSON) == Version.parse("2.1.0")

    def test_read_dependency(self) -> None:
        assert read_deno_json(self.content, DENO_JSON, "@scope/first-package") == Version.parse("1.0.0")

    def test_unknown_dependency(self) -> None:
        with pytest.raises(ValidationError, match="does not import other"):
            read_deno_json(self.content, DENO_JSON, "other")

    def test_write(self) -> None:
        result = write_deno_json(self.content, DENO_JSON, Version.parse("1.1.0"))
        assert result == self.content.replace('"version": "1.0.0"', '"version": "1.1.0"')

    def test_write_dependency_changes_nothing(self) -> None:
        result = write_deno_json(self.content, DENO_JSON, Version.parse("2.0.0"), "@scope/first-package")
        assert result == self.content

    def test_missing_version(self) -> None:
        with pytest.raises(ValidationError, match="no version field"):
            read_deno_json('{"name": "a"}', DENO_JSON)

    def test_dependency_names(self) -> None:
        assert deno_dependency_names(json.loads(self.content)) == {"@scope/first-package", "chalk"}
        assert deno_dependency_names({"imports": None}) == set()


class TestDenoLock:
    data = {
        "version": "5",
        "specifiers": {
            "jsr:@scope/first-package@^1.0.0": "1.0.0",
            "jsr:@std/path@1": "1.0.8",
        },
        "jsr": {
            "@scope/first-package@1.0.0": {"integrity": "abc"},
            "@std/path@1.0.8": {"integrity": "def"},
        },
        "workspace": {
            "dependencies": ["jsr:@std/path@1"],
            "members": {
                "packages/second": {"dependencies": ["jsr:@scope/first-package@^1.0.0"]},
            },
        },
    }
    content = json.dumps(data, indent=2) + "\n"

    def test_read(self) -> None:
        assert read_deno_lock(self.content, DENO_LOCK, "@scope/first-package") == Version.parse("1.0.0")

    def test_read_unknown(self) -> None:
        with pytest.raises(ValidationError, match="no specifier for other"):
            read_deno_lock(self.content, DENO_LOCK, "other")

    def test_write(self) -> None:
        result = write_deno_lock(self.content, DENO_LOCK, Version.parse("1.1.0"), "@scope/first-package")
        data = json.loads(result)

        assert data["specifiers"]["jsr:@scope/first-package@^1.0.0"] == "1.1.0"
        assert list(data["jsr"]) == ["@scope/first-package@1.1.0", "@std/path@1.0.8"]
        assert data["jsr"]["@scope/first-package@1.1.0"] == {"integrity": "abc"}
        assert data["workspace"]["members"]["packages/second"]["dependencies"] == [
            "jsr:@scope/first-package@1.1.0"
        ]
        assert data["workspace"]["dependencies"] == ["jsr:@std/path@1"]

    def test_write_unknown_dependency_is_a_no_op(self) -> None:
        assert write_deno_lock(self.content, DENO_LOCK, Version.parse("1.1.0"), "other") == self.content

    def test_unsupported_lockfile_version(self) -> None:
        with pytest.raises(ValidationError, match="Unsupported lockfile version 4"):
            read_deno_lock('{"version": "4"}', DENO_LOCK, "a")

    def test_needs_a_dependency(self) -> None:
        with pytest.raises(ValidationError, match="need a dependency"):
            write_deno_lock(self.content, DENO_LOCK, Version.parse("1.1.0"))
