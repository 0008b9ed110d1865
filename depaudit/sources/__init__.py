"""Vulnerability and registry data sources."""

from depaudit.sources.github_advisory import GitHubAdvisoryClient
from depaudit.sources.http_client import BaseClient, HTTPResponse, RetryPolicy, parse_retry_after
from depaudit.sources.osv_client import OSVClient, parse_vulnerability

__all__ = [
    "BaseClient",
    "GitHubAdvisoryClient",
    "HTTPResponse",
    "OSVClient",
    "RetryPolicy",
    "parse_retry_after",
    "parse_vulnerability",
]
