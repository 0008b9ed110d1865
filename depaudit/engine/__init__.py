"""Scan pipeline: orchestration, merging, filtering, and maintenance checks."""

from depaudit.engine.ignore import (
    IgnoreConfig,
    IgnoreRule,
    filter_advisories,
    find_ignore_file,
    load_ignore_config,
    should_ignore,
)
from depaudit.engine.maintenance import MaintenanceChecker
from depaudit.engine.merge import merge_advisories, merge_package_maps, severity_rank
from depaudit.engine.orchestrator import VulnerabilityOrchestrator
from depaudit.engine.progress import (
    ProgressCallback,
    ProgressEvent,
    ProgressReporter,
    ProgressStage,
)
from depaudit.engine.scan import scan_path
from depaudit.engine.version_range import version_in_range

__all__ = [
    "IgnoreConfig",
    "IgnoreRule",
    "MaintenanceChecker",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressReporter",
    "ProgressStage",
    "VulnerabilityOrchestrator",
    "filter_advisories",
    "find_ignore_file",
    "load_ignore_config",
    "merge_advisories",
    "merge_package_maps",
    "scan_path",
    "severity_rank",
    "should_ignore",
    "version_in_range",
]
