"""OSV (Open Source Vulnerabilities) API client.

API Documentation: https://google.github.io/osv.dev/api/
"""

import re
from typing import Any

from depaudit.core.exceptions.errors import ResponseFormatError, SourceError
from depaudit.core.logger.logger import get_logger
from depaudit.models.advisory import AdvisorySource, RawAdvisory, Severity
from depaudit.models.dependency import Dependency
from depaudit.sources.http_client import BaseClient, RetryPolicy

logger = get_logger(__name__)

_SCORE_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")


def severity_from_score(score: float) -> Severity:
    """Bucket a numeric CVSS score."""
    if score >= 9.0:
        return Severity.CRITICAL
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MEDIUM
    return Severity.LOW


def extract_severity(vuln: dict[str, Any]) -> Severity:
    """Severity label of an OSV record.

    ``database_specific.severity`` wins. Otherwise the first numeric entry
    in ``severity[].score`` is bucketed. CVSS vector strings carry no
    number and are skipped.
    """
    db_specific = vuln.get("database_specific")
    if isinstance(db_specific, dict):
        label = db_specific.get("severity")
        if isinstance(label, str) and label.strip():
            return Severity.parse(label)

    for entry in vuln.get("severity") or []:
        if not isinstance(entry, dict):
            continue
        score = str(entry.get("score", "")).strip()
        if _SCORE_PATTERN.match(score):
            return severity_from_score(float(score))

    return Severity.UNKNOWN


def extract_first_patched_version(vuln: dict[str, Any]) -> str | None:
    for affected in vuln.get("affected") or []:
        for version_range in affected.get("ranges") or []:
            for event in version_range.get("events") or []:
                if event.get("fixed"):
                    return str(event["fixed"])
    return None


def extract_cve_ids(vuln: dict[str, Any]) -> list[str]:
    """CVE ids among the record id and its aliases, without duplicates."""
    candidates = [vuln.get("id", ""), *(vuln.get("aliases") or [])]
    cve_ids: list[str] = []
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.startswith("CVE-") and candidate not in cve_ids:
            cve_ids.append(candidate)
    return cve_ids


def extract_affected_range(vuln: dict[str, Any]) -> str | None:
    """Render range events as ``>=a <b`` alternatives joined by ``||``."""
    alternatives: list[str] = []
    for affected in vuln.get("affected") or []:
        for version_range in affected.get("ranges") or []:
            # None until an "introduced" event opens an interval
            current: list[str] | None = None
            for event in version_range.get("events") or []:
                if "introduced" in event:
                    if current is not None:
                        alternatives.append(" ".join(current))
                    introduced = str(event["introduced"])
                    current = [] if introduced == "0" else [f">={introduced}"]
                elif "fixed" in event or "last_affected" in event:
                    if "fixed" in event:
                        bound = f"<{event['fixed']}"
                    else:
                        bound = f"<={event['last_affected']}"
                    alternatives.append(" ".join([*(current or []), bound]))
                    current = None
            if current is not None:
                alternatives.append(" ".join(current))
    rendered = [alt if alt else "*" for alt in alternatives]
    return " || ".join(rendered) if rendered else None


def parse_vulnerability(vuln: dict[str, Any]) -> RawAdvisory | None:
    """Convert one OSV record into a RawAdvisory.

    Records re-published from the GitHub Advisory Database keep their
    GHSA id and are labelled with the ghsa source.

    Args:
        vuln: OSV vulnerability record.

    Returns:
        RawAdvisory, or None when the record has no id.
    """
    if not isinstance(vuln, dict):
        return None
    vuln_id = vuln.get("id")
    if not vuln_id:
        return None

    source = AdvisorySource.GHSA if vuln_id.startswith("GHSA-") else AdvisorySource.OSV
    references = [
        ref["url"]
        for ref in vuln.get("references") or []
        if isinstance(ref, dict) and ref.get("url")
    ]
    return RawAdvisory(
        id=vuln_id,
        source=source,
        severity=extract_severity(vuln),
        summary=vuln.get("summary") or "",
        details=vuln.get("details") or "",
        references=references,
        first_patched_version=extract_first_patched_version(vuln),
        cve_ids=extract_cve_ids(vuln),
        affected_range=extract_affected_range(vuln),
    )


def _query_payload(dep: Dependency) -> dict[str, Any]:
    return {
        "package": {"name": dep.name, "ecosystem": dep.ecosystem.value},
        "version": dep.version,
    }


class OSVClient(BaseClient):
    """Client for the OSV vulnerability database.

    Supports single-package queries and the batch endpoint. Batch results
    only carry ids, so each is hydrated with a follow-up record lookup
    unless ``hydrate`` is off.
    """

    API_URL = "https://api.osv.dev/v1"
    MAX_BATCH_SIZE = 50

    def __init__(
        self,
        api_url: str | None = None,
        batch_size: int = MAX_BATCH_SIZE,
        hydrate: bool = True,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize OSV client.

        Args:
            api_url: API base URL.
            batch_size: Maximum queries per batch request.
            hydrate: Fetch full records for id-only batch results.
            retry_policy: Retry and timeout parameters.
        """
        super().__init__(
            base_url=api_url or self.API_URL,
            retry_policy=retry_policy,
            source_name="osv",
        )
        self.batch_size = batch_size
        self.hydrate = hydrate
        self._record_cache: dict[str, RawAdvisory | None] = {}

    def _parse_vulns(self, payload: Any) -> list[RawAdvisory]:
        if not isinstance(payload, dict):
            raise ResponseFormatError("OSV response is not a JSON object", source="osv")
        advisories = []
        for vuln in payload.get("vulns") or []:
            advisory = parse_vulnerability(vuln)
            if advisory is not None:
                advisories.append(advisory)
        return advisories

    async def query(self, dep: Dependency) -> list[RawAdvisory]:
        """Query vulnerabilities affecting one package version.

        Args:
            dep: Dependency to look up.

        Returns:
            Advisories reported by OSV.
        """
        data = await self.post("query", json_data=_query_payload(dep))
        return self._parse_vulns(data)

    async def get_vulnerability(self, vuln_id: str) -> RawAdvisory | None:
        """Fetch a full OSV record by id. Results are cached per client."""
        if vuln_id in self._record_cache:
            return self._record_cache[vuln_id]
        data = await self.get(f"vulns/{vuln_id}")
        advisory = parse_vulnerability(data) if isinstance(data, dict) else None
        self._record_cache[vuln_id] = advisory
        return advisory

    async def query_batch(self, deps: list[Dependency]) -> list[list[RawAdvisory]]:
        """Query many packages in one request.

        Results are mapped back to queries by position.

        Args:
            deps: At most ``batch_size`` dependencies.

        Returns:
            One advisory list per dependency, in input order.

        Raises:
            ValueError: If more than ``batch_size`` dependencies are passed.
            ResponseFormatError: If the response is malformed or its result
                count differs from the query count.
        """
        if not deps:
            return []
        if len(deps) > self.batch_size:
            raise ValueError(f"Batch size {len(deps)} exceeds maximum of {self.batch_size}")

        data = await self.post(
            "querybatch",
            json_data={"queries": [_query_payload(dep) for dep in deps]},
        )
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise ResponseFormatError("OSV batch response has no results list", source="osv")

        results = data["results"]
        if len(results) != len(deps):
            raise ResponseFormatError(
                f"OSV batch returned {len(results)} results for {len(deps)} queries",
                source="osv",
            )

        advisories_per_query: list[list[RawAdvisory]] = []
        for result in results:
            advisories = []
            for vuln in (result or {}).get("vulns") or []:
                advisory = await self._resolve_batch_entry(vuln)
                if advisory is not None:
                    advisories.append(advisory)
            advisories_per_query.append(advisories)
        return advisories_per_query

    async def _resolve_batch_entry(self, vuln: dict[str, Any]) -> RawAdvisory | None:
        if not isinstance(vuln, dict) or not vuln.get("id"):
            return None
        if not self.hydrate or vuln.get("summary") or vuln.get("details") or vuln.get("affected"):
            return parse_vulnerability(vuln)
        try:
            hydrated = await self.get_vulnerability(vuln["id"])
        except SourceError as e:
            logger.warning(f"Could not fetch OSV record {vuln['id']}: {e}")
            hydrated = None
        return hydrated or parse_vulnerability(vuln)
