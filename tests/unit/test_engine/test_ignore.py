"""Tests for ignore-list loading and filtering."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from depaudit.core.exceptions.errors import IgnoreFileError
from depaudit.engine.ignore import (
    IGNORE_FILE_NAME,
    IgnoreConfig,
    IgnoreRule,
    filter_advisories,
    find_ignore_file,
    load_ignore_config,
    should_ignore,
)
from depaudit.models.advisory import AdvisorySource, Severity, UnifiedAdvisory
from depaudit.models.dependency import Dependency, Ecosystem

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _advisory(advisory_id: str, cve_ids: list[str] | None = None) -> UnifiedAdvisory:
    return UnifiedAdvisory(
        id=advisory_id,
        sources={AdvisorySource.OSV},
        severity=Severity.HIGH,
        cve_ids=cve_ids or [],
    )


class TestIgnoreRule:
    """Tests for IgnoreRule matching."""

    def test_match_by_advisory_id(self) -> None:
        """Test matching the advisory id."""
        rule = IgnoreRule(id="GHSA-35jh-r3h4-6jhm")

        assert rule.matches(_advisory("GHSA-35jh-r3h4-6jhm"), "lodash", ["4.17.20"])
        assert not rule.matches(_advisory("GHSA-other"), "lodash", ["4.17.20"])

    def test_match_by_cve(self) -> None:
        """Test matching a CVE alias of the advisory."""
        rule = IgnoreRule(id="CVE-2021-23337")

        assert rule.matches(_advisory("GHSA-1", ["CVE-2021-23337"]), "lodash", ["4.17.20"])

    def test_match_by_name_at_version(self) -> None:
        """Test the name@version form, scoped names included."""
        rule = IgnoreRule(id="@babel/traverse@7.22.0")

        assert rule.matches(_advisory("GHSA-1"), "@babel/traverse", ["7.22.0"])
        assert not rule.matches(_advisory("GHSA-1"), "@babel/traverse", ["7.23.2"])

    def test_match_by_package(self) -> None:
        """Test package-wide and package-version rules."""
        any_version = IgnoreRule(package="minimist")
        one_version = IgnoreRule.model_validate({"package": "minimist", "packageVersion": "1.2.5"})

        assert any_version.matches(_advisory("X"), "minimist", ["0.0.8"])
        assert one_version.matches(_advisory("X"), "minimist", ["0.0.8", "1.2.5"])
        assert not one_version.matches(_advisory("X"), "minimist", ["0.0.8"])

    def test_empty_rule_matches_nothing(self) -> None:
        """Test that a rule without criteria suppresses nothing."""
        assert not IgnoreRule().matches(_advisory("X"), "pkg", ["1.0.0"])

    def test_expiry(self) -> None:
        """Test that rules stop applying after their expiry date."""
        expired = IgnoreRule(id="X", expires="2025-01-01")
        active = IgnoreRule(id="X", expires="2025-12-31T00:00:00Z")

        assert expired.is_expired(NOW)
        assert not active.is_expired(NOW)
        assert not should_ignore(_advisory("X"), "pkg", ["1.0.0"], [expired], NOW)
        assert should_ignore(_advisory("X"), "pkg", ["1.0.0"], [active], NOW)

    def test_invalid_expiry_rejected(self) -> None:
        """Test that an unparseable expiry date fails validation."""
        with pytest.raises(ValueError):
            IgnoreRule(id="X", expires="next tuesday")


class TestIgnoreFile:
    """Tests for finding and loading the ignore file."""

    def test_find_default(self, temp_dir: Path) -> None:
        """Test finding the ignore file in the project directory."""
        (temp_dir / IGNORE_FILE_NAME).write_text('{"ignores": []}')

        assert find_ignore_file(temp_dir) == temp_dir / IGNORE_FILE_NAME

    def test_find_none(self, temp_dir: Path) -> None:
        """Test that a project without an ignore file gives None."""
        assert find_ignore_file(temp_dir) is None

    def test_explicit_path_must_exist(self, temp_dir: Path) -> None:
        """Test that an explicit path that does not exist is an error."""
        with pytest.raises(IgnoreFileError):
            find_ignore_file(temp_dir, temp_dir / "missing.json")

    def test_load(self, temp_dir: Path) -> None:
        """Test loading a valid ignore file."""
        path = temp_dir / IGNORE_FILE_NAME
        path.write_text(
            json.dumps(
                {
                    "version": 1,
                    "ignores": [
                        {"id": "CVE-2021-23337", "reason": "not reachable"},
                        {"package": "minimist", "packageVersion": "1.2.5"},
                    ],
                }
            )
        )

        config = load_ignore_config(path)

        assert config.version == "1"
        assert len(config.ignores) == 2
        assert config.ignores[1].package_version == "1.2.5"

    def test_load_invalid_json(self, temp_dir: Path) -> None:
        """Test that malformed JSON raises IgnoreFileError."""
        path = temp_dir / IGNORE_FILE_NAME
        path.write_text("{nope")

        with pytest.raises(IgnoreFileError):
            load_ignore_config(path)

    def test_load_missing_ignores(self, temp_dir: Path) -> None:
        """Test that a file without an ignores array raises IgnoreFileError."""
        path = temp_dir / IGNORE_FILE_NAME
        path.write_text('{"version": "1"}')

        with pytest.raises(IgnoreFileError):
            load_ignore_config(path)


class TestFilterAdvisories:
    """Tests for filter_advisories."""

    def test_removes_fully_ignored_package(self) -> None:
        """Test that a package whose advisories are all ignored disappears."""
        advisories = {
            "lodash": [_advisory("GHSA-1")],
            "minimist": [_advisory("GHSA-2"), _advisory("GHSA-3")],
        }
        deps = [
            Dependency(name="lodash", version="4.17.20", ecosystem=Ecosystem.NPM),
            Dependency(name="minimist", version="1.2.5", ecosystem=Ecosystem.NPM),
        ]
        config = IgnoreConfig(ignores=[IgnoreRule(id="GHSA-1"), IgnoreRule(id="GHSA-3")])

        filtered, ignored = filter_advisories(advisories, deps, config, NOW)

        assert list(filtered) == ["minimist"]
        assert [a.id for a in filtered["minimist"]] == ["GHSA-2"]
        assert ignored == 2

    def test_package_version_uses_dependency_versions(self) -> None:
        """Test that package-version rules check the scanned versions."""
        advisories = {"minimist": [_advisory("GHSA-2")]}
        deps = [Dependency(name="minimist", version="0.0.8", ecosystem=Ecosystem.NPM)]
        config = IgnoreConfig(ignores=[IgnoreRule(package="minimist", package_version="1.2.5")])

        filtered, ignored = filter_advisories(advisories, deps, config, NOW)

        assert "minimist" in filtered
        assert ignored == 0

    def test_no_config(self) -> None:
        """Test that no ignore config leaves advisories unchanged."""
        advisories = {"a": [_advisory("X")]}

        assert filter_advisories(advisories, [], None) == (advisories, 0)
