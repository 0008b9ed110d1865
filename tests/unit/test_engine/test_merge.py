"""Tests for advisory merging and version range checks."""

from depaudit.engine.merge import merge_advisories, merge_package_maps, severity_rank
from depaudit.engine.version_range import normalize_range, version_in_range
from depaudit.models.advisory import AdvisorySource, RawAdvisory, Severity
from depaudit.models.dependency import Ecosystem


def _raw(advisory_id: str, source: AdvisorySource, severity: Severity, **kwargs) -> RawAdvisory:
    return RawAdvisory(id=advisory_id, source=source, severity=severity, **kwargs)


class TestSeverityRank:
    """Tests for severity_rank."""

    def test_order(self) -> None:
        """Test the fixed severity order."""
        assert severity_rank(Severity.CRITICAL) > severity_rank(Severity.HIGH)
        assert severity_rank(Severity.HIGH) > severity_rank(Severity.MEDIUM)
        assert severity_rank(Severity.MEDIUM) == severity_rank(Severity.MODERATE)
        assert severity_rank(Severity.MODERATE) > severity_rank(Severity.LOW)
        assert severity_rank(Severity.LOW) > severity_rank(Severity.UNKNOWN)

    def test_strings(self) -> None:
        """Test ranking raw labels from sources."""
        assert severity_rank("critical") == severity_rank(Severity.CRITICAL)
        assert severity_rank("bogus") == severity_rank(Severity.UNKNOWN)
        assert severity_rank(None) == severity_rank(Severity.UNKNOWN)


class TestMergeAdvisories:
    """Tests for merge_advisories."""

    def test_max_severity_wins(self) -> None:
        """Test that MEDIUM and CRITICAL for the same id merge to CRITICAL."""
        osv = _raw("GHSA-1", AdvisorySource.OSV, Severity.MEDIUM)
        ghsa = _raw("GHSA-1", AdvisorySource.GHSA, Severity.CRITICAL)

        merged = merge_advisories([osv], [ghsa])

        assert len(merged) == 1
        assert merged[0].severity == Severity.CRITICAL
        assert merged[0].sources == {AdvisorySource.OSV, AdvisorySource.GHSA}
        assert merged[0].source == "ghsa,osv"

    def test_lower_severity_does_not_downgrade(self) -> None:
        """Test that a later lower severity is ignored."""
        merged = merge_advisories(
            [_raw("A", AdvisorySource.OSV, Severity.HIGH)],
            [_raw("A", AdvisorySource.GHSA, Severity.LOW)],
        )

        assert merged[0].severity == Severity.HIGH

    def test_fills_empty_fields(self) -> None:
        """Test that later records fill fields the first left empty."""
        first = _raw("A", AdvisorySource.OSV, Severity.UNKNOWN, references=["https://a"])
        second = _raw(
            "A",
            AdvisorySource.GHSA,
            Severity.LOW,
            summary="Prototype pollution",
            details="Long description",
            first_patched_version="1.2.6",
            references=["https://a", "https://b"],
            cve_ids=["CVE-2021-44906"],
        )

        merged = merge_advisories([first], [second])[0]

        assert merged.summary == "Prototype pollution"
        assert merged.details == "Long description"
        assert merged.first_patched_version == "1.2.6"
        assert merged.references == ["https://a", "https://b"]
        assert merged.cve_ids == ["CVE-2021-44906"]

    def test_keeps_first_seen_order(self) -> None:
        """Test that distinct ids keep their first-seen order."""
        merged = merge_advisories(
            [_raw("B", AdvisorySource.OSV, Severity.LOW), _raw("A", AdvisorySource.OSV, Severity.LOW)],
            [_raw("C", AdvisorySource.GHSA, Severity.LOW), _raw("B", AdvisorySource.GHSA, Severity.LOW)],
        )

        assert [a.id for a in merged] == ["B", "A", "C"]

    def test_inputs_not_mutated(self) -> None:
        """Test that merging leaves the input records untouched."""
        osv = _raw("A", AdvisorySource.OSV, Severity.LOW)
        merge_advisories([osv], [_raw("A", AdvisorySource.GHSA, Severity.HIGH)])

        assert osv.severity == Severity.LOW


class TestMergePackageMaps:
    """Tests for merge_package_maps."""

    def test_union_of_packages(self) -> None:
        """Test merging per-package maps from two sources."""
        osv = {"lodash": [_raw("A", AdvisorySource.OSV, Severity.HIGH)]}
        ghsa = {
            "lodash": [_raw("A", AdvisorySource.GHSA, Severity.CRITICAL)],
            "minimist": [_raw("B", AdvisorySource.GHSA, Severity.LOW)],
        }

        merged = merge_package_maps(osv, ghsa)

        assert list(merged) == ["lodash", "minimist"]
        assert merged["lodash"][0].severity == Severity.CRITICAL

    def test_empty_packages_dropped(self) -> None:
        """Test that packages with no advisories are left out."""
        merged = merge_package_maps({"a": []}, {"b": []})

        assert merged == {}


class TestVersionInRange:
    """Tests for version_in_range."""

    def test_normalize_range(self) -> None:
        """Test rewriting GitHub ranges into npm syntax."""
        assert normalize_range(">= 1.0, < 2.0") == ">=1.0 <2.0"
        assert normalize_range("= 1.2.3") == "=1.2.3"
        assert normalize_range("< 0.2.1 || >= 1.0.0, < 1.2.6") == "<0.2.1 || >=1.0.0 <1.2.6"

    def test_upper_bound(self) -> None:
        """Test a single upper bound."""
        assert version_in_range("4.17.20", "< 4.17.21", Ecosystem.NPM)
        assert not version_in_range("4.17.21", "< 4.17.21", Ecosystem.NPM)

    def test_interval(self) -> None:
        """Test a bounded interval."""
        assert version_in_range("1.2.5", ">= 1.0.0, < 1.2.6", Ecosystem.NPM)
        assert not version_in_range("0.9.0", ">= 1.0.0, < 1.2.6", Ecosystem.NPM)

    def test_alternatives(self) -> None:
        """Test ranges joined with ||."""
        range_expr = "< 0.2.1 || >= 1.0.0, < 1.2.6"

        assert version_in_range("0.1.0", range_expr, Ecosystem.NPM)
        assert version_in_range("1.2.0", range_expr, Ecosystem.NPM)
        assert not version_in_range("0.5.0", range_expr, Ecosystem.NPM)

    def test_partial_version(self) -> None:
        """Test that partial versions are coerced."""
        assert version_in_range("1.2", "< 1.3.0", Ecosystem.NPM)

    def test_other_ecosystems_always_match(self) -> None:
        """Test that Go and PyPI ranges are not evaluated."""
        assert version_in_range("1.0.0", "< 0.1.0", Ecosystem.GO)
        assert version_in_range("2.31.0", "< 2.0", Ecosystem.PYPI)

    def test_missing_or_unparseable_range_matches(self) -> None:
        """Test that unknown ranges keep the advisory."""
        assert version_in_range("1.0.0", None, Ecosystem.NPM)
        assert version_in_range("1.0.0", "", Ecosystem.NPM)
        assert version_in_range("1.0.0", "not a range ???", Ecosystem.NPM)
        assert version_in_range("^4.17.0", "< 4.17.21", Ecosystem.NPM)
