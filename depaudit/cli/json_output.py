"""JSON rendering of scan results."""

import json
from datetime import datetime, timezone
from typing import Any

from depaudit.models.advisory import UnifiedAdvisory
from depaudit.models.scan import MaintenanceInfo, ScanResult


def _advisory_to_dict(advisory: UnifiedAdvisory) -> dict[str, Any]:
    return {
        "id": advisory.id,
        "source": advisory.source,
        "severity": advisory.severity.value,
        "title": advisory.title,
        "description": advisory.details,
        "cveIds": list(advisory.cve_ids),
        "patchedVersion": advisory.first_patched_version,
        "references": list(advisory.references),
    }


def _maintenance_to_dict(info: MaintenanceInfo) -> dict[str, Any]:
    return {
        "name": info.name,
        "ecosystem": info.ecosystem,
        "latestVersion": info.latest_version,
        "lastReleaseDate": info.last_release.isoformat() if info.last_release else None,
        "daysSinceLastRelease": info.days_since_release,
        "isUnmaintained": info.is_unmaintained,
        "weeklyDownloads": info.weekly_downloads,
        "deprecated": info.deprecated,
    }


def build_report(result: ScanResult, timestamp: datetime | None = None) -> dict[str, Any]:
    """Build the JSON report document.

    Args:
        result: Scan result.
        timestamp: Report time. Defaults to now (UTC).

    Returns:
        Report dictionary ready for ``json.dumps``.
    """
    timestamp = timestamp or datetime.now(timezone.utc)

    packages = []
    for name, advisories in result.advisories_by_package.items():
        versions = result.versions_of(name)
        packages.append(
            {
                "name": name,
                "version": ", ".join(versions) if versions else "unknown",
                "ecosystem": result.ecosystem_of(name) or "unknown",
                "vulnerabilities": [_advisory_to_dict(advisory) for advisory in advisories],
            }
        )

    report: dict[str, Any] = {
        "summary": {
            "scanned": len(result.deps),
            "vulnerable": result.vulnerable_count,
            "totalVulnerabilities": result.total_vulnerabilities,
            "scanDuration": f"{result.scan_duration_ms}ms",
            "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
        },
        "packages": packages,
    }
    if result.maintenance:
        report["maintenance"] = [_maintenance_to_dict(info) for info in result.maintenance.values()]
    return report


def render_json(result: ScanResult, timestamp: datetime | None = None) -> str:
    """Render a scan result as pretty-printed JSON."""
    return json.dumps(build_report(result, timestamp), indent=2, ensure_ascii=False)
