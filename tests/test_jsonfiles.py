"""Tests for bumpwright.jsonfiles."""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath

import pytest

from bumpwright.config import VersionedFileRef
from bumpwright.exceptions import ValidationError
from bumpwright.jsonfiles import (
    dump_json,
    package_json_dependency_names,
    read_package_json,
    read_package_lock,
    read_tauri_conf,
    split_range,
    write_package_json,
    write_package_lock,
    write_tauri_conf,
)
from bumpwright.versioned_files import FileBuffer, read_version, write_version
from bumpwright.versions import Version

PACKAGE_JSON = Path("package.json")
PACKAGE_LOCK = Path("package-lock.json")


class TestSplitRange:
    @pytest.mark.parametrize(
        ("spec", "expected"),
        [
            ("1.2.3", ("", "1.2.3")),
            ("^1.2.3", ("^", "1.2.3")),
            ("~0.1.0", ("~", "0.1.0")),
            (">=2.0.0", (">=", "2.0.0")),
            ("workspace:^1.0.0", ("workspace:^", "1.0.0")),
        ],
    )
    def test_split(self, spec: str, expected: tuple[str, str]) -> None:
        assert split_range(spec) == expected


class TestDumpJson:
    def test_keeps_indent_and_newline(self) -> None:
        original = '{\n    "a": 1\n}\n'
        assert dump_json({"a": 2}, original) == '{\n    "a": 2\n}\n'

    def test_no_trailing_newline(self) -> None:
        assert dump_json({"a": 1}, '{\n  "a": 0\n}') == '{\n  "a": 1\n}'

    def test_keeps_unicode(self) -> None:
        assert "Zoë" in dump_json({"author": "Zoë"}, "{}")


class TestPackageJson:
    content = '{\n  "name": "app",\n  "version": "1.0.0",\n  "dependencies": {\n    "aDependency": "^0.2.0"\n  }\n}\n'

    def test_read(self) -> None:
        assert read_package_json(self.content, PACKAGE_JSON) == Version.parse("1.0.0")

    def test_read_dependency(self) -> None:
        assert read_package_json(self.content, PACKAGE_JSON, "aDependency") == Version.parse("0.2.0")

    def test_write_keeps_key_order(self) -> None:
        result = write_package_json(self.content, PACKAGE_JSON, Version.parse("1.1.0"))
        assert list(json.loads(result)) == ["name", "version", "dependencies"]
        assert '"version": "1.1.0"' in result

    def test_write_dependency_keeps_range(self) -> None:
        result = write_package_json(self.content, PACKAGE_JSON, Version.parse("0.3.0"), "aDependency")
        assert json.loads(result)["dependencies"]["aDependency"] == "^0.3.0"
        assert json.loads(result)["version"] == "1.0.0"

    def test_missing_version(self) -> None:
        with pytest.raises(ValidationError, match="no version field"):
            read_package_json('{"name": "app"}', PACKAGE_JSON)

    def test_unknown_dependency(self) -> None:
        with pytest.raises(ValidationError, match="does not depend on other"):
            write_package_json(self.content, PACKAGE_JSON, Version.parse("1.0.0"), "other")

    def test_invalid_json(self) -> None:
        with pytest.raises(ValidationError, match="Invalid JSON"):
            read_package_json("{", PACKAGE_JSON)

    def test_not_an_object(self) -> None:
        with pytest.raises(ValidationError, match="JSON object"):
            read_package_json("[]", PACKAGE_JSON)

    def test_dependency_table_not_an_object(self) -> None:
        content = '{"version": "1.0.0", "dependencies": null, "devDependencies": {"a": "^1.0.0"}}'
        assert read_package_json(content, PACKAGE_JSON, "a") == Version.parse("1.0.0")
        with pytest.raises(ValidationError, match="does not depend on b"):
            read_package_json(content, PACKAGE_JSON, "b")

    def test_dependency_names(self) -> None:
        data = {"dependencies": {"a": "1"}, "devDependencies": {"b": "2"}, "peerDependencies": {"c": "3"}}
        assert package_json_dependency_names(data) == {"a", "b", "c"}


class TestRootVersionAndDependencyInOneFile:
    def test_both_updates_land(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(TestPackageJson.content)
        buffer = FileBuffer(tmp_path)
        own = VersionedFileRef(path=PurePosixPath("package.json"))
        dependency = VersionedFileRef(path=PurePosixPath("package.json"), dependency="aDependency")

        buffer.write_ref(own, Version.parse("2.0.0"))
        buffer.write_ref(dependency, Version.parse("0.5.0"))

        data = json.loads(buffer.contents[PurePosixPath("package.json")])
        assert data["version"] == "2.0.0"
        assert data["dependencies"]["aDependency"] == "^0.5.0"
        assert buffer.changed == [PurePosixPath("package.json")]
        # Nothing reaches disk until the plan is applied
        assert json.loads((tmp_path / "package.json").read_text())["version"] == "1.0.0"


class TestPackageLock:
    content = json.dumps(
        {
            "name": "root",
            "version": "1.0.0",
            "lockfileVersion": 3,
            "packages": {
                "": {"name": "root", "version": "1.0.0"},
                "packages/core": {"name": "core", "version": "0.1.0"},
                "packages/app": {"name": "app", "version": "0.4.0", "dependencies": {"core": "0.1.0"}},
            },
        },
        indent=2,
    ) + "\n"

    def test_read_root(self) -> None:
        assert read_package_lock(self.content, PACKAGE_LOCK) == Version.parse("1.0.0")

    def test_read_member(self) -> None:
        assert read_package_lock(self.content, PACKAGE_LOCK, "core") == Version.parse("0.1.0")

    def test_write_root(self) -> None:
        data = json.loads(write_package_lock(self.content, PACKAGE_LOCK, Version.parse("1.1.0")))
        assert data["version"] == "1.1.0"
        assert data["packages"][""]["version"] == "1.1.0"
        assert data["packages"]["packages/core"]["version"] == "0.1.0"

    def test_write_member_and_references(self) -> None:
        data = json.loads(write_package_lock(self.content, PACKAGE_LOCK, Version.parse("0.2.0"), "core"))
        assert data["packages"]["packages/core"]["version"] == "0.2.0"
        assert data["packages"]["packages/app"]["dependencies"]["core"] == "0.2.0"
        assert data["version"] == "1.0.0"

    def test_missing_member(self) -> None:
        with pytest.raises(ValidationError, match="no package named other"):
            read_package_lock(self.content, PACKAGE_LOCK, "other")

    def test_packages_not_an_object(self) -> None:
        with pytest.raises(ValidationError, match="no package named core"):
            read_package_lock('{"version": "1.0.0", "packages": []}', PACKAGE_LOCK, "core")

    def test_old_lockfile_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        write_package_lock('{"version": "1.0.0", "lockfileVersion": 1}', PACKAGE_LOCK, Version.parse("1.0.1"))
        assert "lockfileVersion is not 2 or 3" in caplog.text


class TestTauriConf:
    content = '{\n    "productName": "app",\n    "version": "0.4.0",\n    "identifier": "com.example.app"\n}\n'

    @pytest.mark.parametrize(
        "name",
        ["tauri.conf.json", "tauri.macos.conf.json", "tauri.windows.conf.json", "tauri.linux.conf.json"],
    )
    def test_platform_variants(self, name: str) -> None:
        ref = VersionedFileRef(path=PurePosixPath(name))
        written = write_version(self.content, ref, Version.parse("0.5.0"))
        assert read_version(written, ref) == Version.parse("0.5.0")

    def test_write_keeps_layout(self) -> None:
        result = write_tauri_conf(self.content, Path("tauri.conf.json"), Version.parse("1.0.0"))
        assert result == self.content.replace("0.4.0", "1.0.0")

    def test_missing_version(self) -> None:
        with pytest.raises(ValidationError, match="no version field"):
            read_tauri_conf('{"productName": "app"}', Path("tauri.conf.json"))
