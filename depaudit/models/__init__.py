"""Data models shared across the pipeline."""

from depaudit.models.advisory import (
    AdvisorySource,
    RawAdvisory,
    Severity,
    UnifiedAdvisory,
)
from depaudit.models.dependency import (
    Dependency,
    DetectionConfidence,
    Ecosystem,
    EcosystemDetection,
    GatherOptions,
    LockfileMode,
    LockfileOptions,
    dedupe_dependencies,
)
from depaudit.models.scan import MaintenanceInfo, ScanOptions, ScanResult

__all__ = [
    "AdvisorySource",
    "Dependency",
    "DetectionConfidence",
    "Ecosystem",
    "EcosystemDetection",
    "GatherOptions",
    "LockfileMode",
    "LockfileOptions",
    "MaintenanceInfo",
    "RawAdvisory",
    "ScanOptions",
    "ScanResult",
    "Severity",
    "UnifiedAdvisory",
    "dedupe_dependencies",
]
