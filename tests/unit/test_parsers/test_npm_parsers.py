"""Tests for the npm package-lock.json and package.json parsers."""

import json

import pytest

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Ecosystem
from depaudit.parsers import npm_lock, package_json


def _lock(packages: dict, version: int = 3) -> str:
    return json.dumps({"name": "demo", "lockfileVersion": version, "packages": packages})


class TestNpmLockParser:
    """Tests for npm_lock.parse."""

    def test_parse_flat_packages(self) -> None:
        """Test parsing a lockfileVersion 3 packages map."""
        text = _lock(
            {
                "": {"name": "demo", "version": "1.0.0"},
                "node_modules/lodash": {"version": "4.17.21"},
                "node_modules/@types/node": {"version": "20.1.0"},
            }
        )

        deps = npm_lock.parse(text)

        assert [(d.name, d.version) for d in deps] == [
            ("lodash", "4.17.21"),
            ("@types/node", "20.1.0"),
        ]
        assert all(d.ecosystem == Ecosystem.NPM for d in deps)

    def test_nested_install_keeps_both_versions(self) -> None:
        """Test that a nested install of another version is reported too."""
        text = _lock(
            {
                "node_modules/ms": {"version": "2.1.3"},
                "node_modules/debug/node_modules/ms": {"version": "2.0.0"},
                "node_modules/debug": {"version": "2.6.9"},
            }
        )

        deps = npm_lock.parse(text)

        assert ("ms", "2.1.3") in [d.key for d in deps]
        assert ("ms", "2.0.0") in [d.key for d in deps]

    def test_dev_packages_excluded_by_default(self) -> None:
        """Test that dev and devOptional entries are skipped unless requested."""
        text = _lock(
            {
                "node_modules/express": {"version": "4.18.2"},
                "node_modules/jest": {"version": "29.7.0", "dev": True},
                "node_modules/fsevents": {"version": "2.3.3", "devOptional": True},
            }
        )

        prod = npm_lock.parse(text)
        with_dev = npm_lock.parse(text, include_dev=True)

        assert [d.name for d in prod] == ["express"]
        assert [d.name for d in with_dev] == ["express", "jest", "fsevents"]

    def test_include_dev_is_superset(self) -> None:
        """Test that including dev dependencies never drops production ones."""
        text = _lock(
            {
                "node_modules/a": {"version": "1.0.0"},
                "node_modules/b": {"version": "2.0.0", "dev": True},
            }
        )

        prod = set(npm_lock.parse(text))
        with_dev = set(npm_lock.parse(text, include_dev=True))

        assert prod <= with_dev

    def test_skips_links_and_local_sources(self) -> None:
        """Test that workspace links, file: and git sources are skipped."""
        text = _lock(
            {
                "node_modules/local-lib": {"link": True, "resolved": "packages/local-lib"},
                "node_modules/vendored": {"version": "1.0.0", "resolved": "file:../vendored"},
                "node_modules/forked": {
                    "version": "1.0.0",
                    "resolved": "git+ssh://git@github.com/org/forked.git#abc",
                },
                "node_modules/real": {"version": "3.0.0"},
            }
        )

        deps = npm_lock.parse(text)

        assert [d.name for d in deps] == ["real"]

    def test_alias_reports_real_name(self) -> None:
        """Test that an npm alias is reported under the real package name."""
        text = _lock(
            {"node_modules/my-lodash": {"name": "lodash", "version": "4.17.21"}}
        )

        deps = npm_lock.parse(text)

        assert [d.key for d in deps] == [("lodash", "4.17.21")]

    def test_v1_dependency_tree(self) -> None:
        """Test parsing the nested dependencies tree of lockfileVersion 1."""
        text = json.dumps(
            {
                "lockfileVersion": 1,
                "dependencies": {
                    "debug": {
                        "version": "2.6.9",
                        "dependencies": {"ms": {"version": "2.0.0"}},
                    },
                    "ms": {"version": "2.1.3"},
                    "mocha": {"version": "10.0.0", "dev": True},
                },
            }
        )

        deps = npm_lock.parse(text)

        assert [d.key for d in deps] == [
            ("debug", "2.6.9"),
            ("ms", "2.0.0"),
            ("ms", "2.1.3"),
        ]

    def test_parse_is_idempotent(self) -> None:
        """Test that parsing the same text twice gives the same list."""
        text = _lock(
            {
                "node_modules/a": {"version": "1.0.0"},
                "node_modules/b": {"version": "2.0.0"},
            }
        )

        assert npm_lock.parse(text) == npm_lock.parse(text)

    def test_invalid_json_raises(self) -> None:
        """Test that malformed JSON raises DependencyParseError."""
        with pytest.raises(DependencyParseError) as exc_info:
            npm_lock.parse("{not json")

        assert "package-lock.json" in str(exc_info.value)

    def test_non_object_raises(self) -> None:
        """Test that a JSON array is rejected."""
        with pytest.raises(DependencyParseError):
            npm_lock.parse("[]")

    def test_package_name_from_path(self) -> None:
        """Test extracting package names from install paths."""
        assert npm_lock.package_name_from_path("node_modules/a") == "a"
        assert npm_lock.package_name_from_path("node_modules/a/node_modules/@s/b") == "@s/b"
        assert npm_lock.package_name_from_path("packages/app") is None


class TestPackageJsonParser:
    """Tests for package_json.parse."""

    def test_parse_production_dependencies(self) -> None:
        """Test that declared ranges are reported verbatim."""
        text = json.dumps(
            {
                "dependencies": {"express": "^4.18.0"},
                "optionalDependencies": {"fsevents": "~2.3.0"},
                "devDependencies": {"jest": "^29.0.0"},
            }
        )

        deps = package_json.parse(text)

        assert [d.key for d in deps] == [("express", "^4.18.0"), ("fsevents", "~2.3.0")]

    def test_include_dev(self) -> None:
        """Test that devDependencies are added when requested."""
        text = json.dumps(
            {"dependencies": {"a": "1.0.0"}, "devDependencies": {"b": "2.0.0"}}
        )

        deps = package_json.parse(text, include_dev=True)

        assert [d.name for d in deps] == ["a", "b"]

    def test_skips_local_and_vcs_specs(self) -> None:
        """Test that workspace, file and git specs are not reported."""
        text = json.dumps(
            {
                "dependencies": {
                    "local": "file:../local",
                    "ws": "workspace:*",
                    "fork": "github:org/fork",
                    "tarball": "https://example.com/pkg.tgz",
                    "real": "^1.0.0",
                }
            }
        )

        deps = package_json.parse(text)

        assert [d.name for d in deps] == ["real"]

    def test_npm_alias(self) -> None:
        """Test that npm: aliases resolve to the real package."""
        text = json.dumps({"dependencies": {"my-lodash": "npm:lodash@^4.17.0"}})

        deps = package_json.parse(text)

        assert [d.key for d in deps] == [("lodash", "^4.17.0")]

    def test_section_must_be_object(self) -> None:
        """Test that a non-object dependencies section is rejected."""
        with pytest.raises(DependencyParseError):
            package_json.parse(json.dumps({"dependencies": ["lodash"]}))

    def test_package_manager_field(self) -> None:
        """Test reading the packageManager field."""
        assert package_json.package_manager_field('{"packageManager": "pnpm@9.1.0"}') == "pnpm@9.1.0"
        assert package_json.package_manager_field("{}") is None
