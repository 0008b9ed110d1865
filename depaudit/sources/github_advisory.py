"""GitHub Advisory Database client.

Uses the GraphQL ``securityVulnerabilities`` connection, which has no batch
form, so callers query one package at a time.
"""

import re
from typing import Any

from depaudit.core.exceptions.errors import (
    AuthenticationError,
    RateLimitError,
    ResponseFormatError,
)
from depaudit.core.logger.logger import get_logger
from depaudit.models.advisory import AdvisorySource, RawAdvisory, Severity
from depaudit.models.dependency import Ecosystem
from depaudit.sources.http_client import BaseClient, RetryPolicy

logger = get_logger(__name__)

CVE_PATTERN = re.compile(r"CVE-\d{4}-\d{4,}")

VULNERABILITIES_QUERY = """
query($ecosystem: SecurityAdvisoryEcosystem!, $package: String!, $first: Int!) {
  securityVulnerabilities(first: $first, ecosystem: $ecosystem, package: $package) {
    nodes {
      advisory {
        ghsaId
        summary
        description
        severity
        identifiers { type value }
        references { url }
        cvss { score }
      }
      package { name ecosystem }
      vulnerableVersionRange
      firstPatchedVersion { identifier }
    }
  }
}
"""


def is_rate_limit_error(error: dict[str, Any]) -> bool:
    """Whether a GraphQL error entry reports rate limiting."""
    if not isinstance(error, dict):
        return False
    extensions = error.get("extensions") or {}
    if isinstance(extensions, dict) and extensions.get("code") == "RATE_LIMITED":
        return True
    if error.get("type") == "RATE_LIMIT" or error.get("type") == "RATE_LIMITED":
        return True
    return "rate limit" in str(error.get("message", "")).lower()


def extract_cve_ids(advisory: dict[str, Any]) -> list[str]:
    """CVE ids from identifiers, then from any CVE-like text in the record."""
    cve_ids: list[str] = []
    for identifier in advisory.get("identifiers") or []:
        if identifier.get("type") == "CVE" and identifier.get("value"):
            cve_ids.append(identifier["value"])

    texts = [advisory.get("summary") or "", advisory.get("description") or ""]
    texts.extend(ref.get("url", "") for ref in advisory.get("references") or [])
    for text in texts:
        for match in CVE_PATTERN.findall(text):
            if match not in cve_ids:
                cve_ids.append(match)
    return cve_ids


class GitHubAdvisoryClient(BaseClient):
    """Client for the GitHub Advisory Database GraphQL API."""

    GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        token: str | None,
        graphql_url: str | None = None,
        page_size: int = 100,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize GitHub Advisory client.

        Args:
            token: GitHub token. Required for every query.
            graphql_url: GraphQL endpoint.
            page_size: Vulnerability nodes requested per package.
            retry_policy: Retry and timeout parameters.
        """
        super().__init__(retry_policy=retry_policy, source_name="ghsa")
        self.token = token
        self.graphql_url = graphql_url or self.GRAPHQL_URL
        self.page_size = page_size

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def query_package(self, ecosystem: Ecosystem, name: str) -> list[RawAdvisory]:
        """Fetch advisories for a package name.

        Only the first page of vulnerability nodes is read. Nodes of the same
        advisory are folded into one record whose ``affected_range`` joins
        the vulnerable ranges with ``||``.

        Args:
            ecosystem: Package ecosystem.
            name: Package name.

        Returns:
            One RawAdvisory per GHSA id, in first-seen order.

        Raises:
            AuthenticationError: If no token is configured or it is rejected.
            RateLimitError: If GitHub reports rate limiting.
            ResponseFormatError: On other GraphQL errors or a malformed payload.
        """
        if not self.token:
            raise AuthenticationError(
                "GitHub token required for GHSA queries "
                "(set GITHUB_TOKEN or run `gh auth login`)",
                source="ghsa",
            )

        data = await self.post(
            self.graphql_url,
            json_data={
                "query": VULNERABILITIES_QUERY,
                "variables": {
                    "ecosystem": ecosystem.github_name,
                    "package": name,
                    "first": self.page_size,
                },
            },
        )
        if not isinstance(data, dict):
            raise ResponseFormatError("GHSA response is not a JSON object", source="ghsa")

        errors = data.get("errors")
        if errors:
            if any(is_rate_limit_error(error) for error in errors):
                raise RateLimitError("GHSA API rate limit exceeded", source="ghsa")
            raise ResponseFormatError(f"GHSA GraphQL errors: {errors}", source="ghsa")

        try:
            nodes = data["data"]["securityVulnerabilities"]["nodes"] or []
        except (KeyError, TypeError) as e:
            raise ResponseFormatError("GHSA response is missing vulnerability nodes", source="ghsa") from e

        return self._group_nodes(nodes)

    def _group_nodes(self, nodes: list[dict[str, Any]]) -> list[RawAdvisory]:
        grouped: dict[str, dict[str, Any]] = {}
        for node in nodes:
            if not isinstance(node, dict):
                continue
            advisory = node.get("advisory") or {}
            ghsa_id = advisory.get("ghsaId")
            if not ghsa_id:
                continue
            entry = grouped.setdefault(
                ghsa_id,
                {"advisory": advisory, "ranges": [], "patched": None},
            )
            version_range = node.get("vulnerableVersionRange")
            if version_range:
                entry["ranges"].append(version_range)
            patched = (node.get("firstPatchedVersion") or {}).get("identifier")
            if entry["patched"] is None and patched:
                entry["patched"] = patched

        results = []
        for ghsa_id, entry in grouped.items():
            advisory = entry["advisory"]
            results.append(
                RawAdvisory(
                    id=ghsa_id,
                    source=AdvisorySource.GHSA,
                    severity=Severity.parse(advisory.get("severity")),
                    summary=advisory.get("summary") or "",
                    details=advisory.get("description") or "",
                    references=[
                        ref["url"] for ref in advisory.get("references") or [] if ref.get("url")
                    ],
                    first_patched_version=entry["patched"],
                    cve_ids=extract_cve_ids(advisory),
                    affected_range=" || ".join(entry["ranges"]) or None,
                )
            )
        logger.debug(f"GHSA returned {len(results)} advisories from {len(nodes)} nodes")
        return results
