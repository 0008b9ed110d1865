"""Scan progress events."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from depaudit.core.logger.logger import get_logger

logger = get_logger(__name__)


class ProgressStage(str, Enum):
    """Pipeline stages reported while scanning."""

    DETECTING_ECOSYSTEM = "detecting-ecosystem"
    GATHERING_DEPENDENCIES = "gathering-dependencies"
    SCANNING_PACKAGES = "scanning-packages"
    FILTERING_ADVISORIES = "filtering-advisories"
    CHECKING_MAINTENANCE = "checking-maintenance"
    FINALIZING = "finalizing"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update."""

    stage: ProgressStage
    percent: int
    message: str
    deps_scanned: int | None = None
    total_deps: int | None = None
    timestamp: float = field(default_factory=time.time)


ProgressCallback = Callable[[ProgressEvent], None]

SCAN_START_PERCENT = 30
SCAN_END_PERCENT = 70


class ProgressReporter:
    """Forwards progress events to an optional callback.

    Each scan gets its own reporter; nothing is shared between scans.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback
        self.last_event: ProgressEvent | None = None

    def emit(
        self,
        stage: ProgressStage,
        percent: int,
        message: str,
        deps_scanned: int | None = None,
        total_deps: int | None = None,
    ) -> None:
        event = ProgressEvent(
            stage=stage,
            percent=max(0, min(100, percent)),
            message=message,
            deps_scanned=deps_scanned,
            total_deps=total_deps,
        )
        self.last_event = event
        if self.callback is None:
            return
        try:
            self.callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    def scanning(self, done: int, total: int, message: str | None = None) -> None:
        """Report package-scan progress, mapped onto 30..70 percent."""
        span = SCAN_END_PERCENT - SCAN_START_PERCENT
        percent = SCAN_START_PERCENT + (span * done // total if total else span)
        self.emit(
            ProgressStage.SCANNING_PACKAGES,
            percent,
            message or f"Scanned {done}/{total} packages",
            deps_scanned=done,
            total_deps=total,
        )
