"""Package maintenance checks against the npm registry and PyPI."""

import asyncio
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from depaudit.core.exceptions.errors import SourceError
from depaudit.core.logger.logger import get_logger
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.models.scan import MaintenanceInfo
from depaudit.sources.http_client import BaseClient, RetryPolicy

logger = get_logger(__name__)

UNMAINTAINED_AFTER_DAYS = 365

_NPM_TIME_META_KEYS = {"created", "modified"}


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_info(
    name: str,
    ecosystem: Ecosystem,
    release_dates: list[datetime],
    now: datetime,
    **extra: Any,
) -> MaintenanceInfo:
    if not release_dates:
        return MaintenanceInfo(name=name, ecosystem=ecosystem.value, is_unmaintained=True, **extra)
    last_release = max(release_dates)
    days = (now - last_release).days
    return MaintenanceInfo(
        name=name,
        ecosystem=ecosystem.value,
        last_release=last_release,
        days_since_release=days,
        is_unmaintained=days >= UNMAINTAINED_AFTER_DAYS,
        **extra,
    )


class MaintenanceChecker(BaseClient):
    """Flags packages with no release in the last year.

    npm and PyPI packages are checked. Go modules have no registry with
    release metadata and are skipped.
    """

    NPM_REGISTRY_URL = "https://registry.npmjs.org"
    NPM_DOWNLOADS_URL = "https://api.npmjs.org/downloads/point/last-week"
    PYPI_URL = "https://pypi.org/pypi"

    def __init__(
        self,
        concurrency: int = 5,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        super().__init__(
            retry_policy=retry_policy or RetryPolicy(retries=2, max_delay=10.0, timeout=10.0),
            source_name="registry",
        )
        self.concurrency = max(1, concurrency)

    async def check_npm(self, name: str, now: datetime) -> MaintenanceInfo:
        data = await self.get(f"{self.NPM_REGISTRY_URL}/{quote(name, safe='@')}")
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected npm registry payload for {name}", source="registry")

        release_dates = []
        for key, value in (data.get("time") or {}).items():
            if key in _NPM_TIME_META_KEYS or key.startswith("unpublished"):
                continue
            parsed = _parse_timestamp(value)
            if parsed is not None:
                release_dates.append(parsed)
        latest = (data.get("dist-tags") or {}).get("latest")
        latest_manifest = (data.get("versions") or {}).get(latest) or {}
        deprecated = latest_manifest.get("deprecated")

        weekly_downloads = None
        try:
            downloads = await self.get(f"{self.NPM_DOWNLOADS_URL}/{quote(name, safe='@')}")
            if isinstance(downloads, dict):
                weekly_downloads = downloads.get("downloads")
        except SourceError as e:
            logger.debug(f"Download stats unavailable for {name}: {e}")

        return _build_info(
            name,
            Ecosystem.NPM,
            release_dates,
            now,
            latest_version=latest,
            weekly_downloads=weekly_downloads,
            deprecated=deprecated if isinstance(deprecated, str) else None,
        )

    async def check_pypi(self, name: str, now: datetime) -> MaintenanceInfo:
        data = await self.get(f"{self.PYPI_URL}/{quote(name)}/json")
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected PyPI payload for {name}", source="registry")

        release_dates = []
        for files in (data.get("releases") or {}).values():
            for release_file in files or []:
                if not isinstance(release_file, dict):
                    continue
                parsed = _parse_timestamp(release_file.get("upload_time_iso_8601", ""))
                if parsed is not None:
                    release_dates.append(parsed)
        return _build_info(
            name,
            Ecosystem.PYPI,
            release_dates,
            now,
            latest_version=(data.get("info") or {}).get("version"),
        )

    async def check(self, dep: Dependency, now: datetime | None = None) -> MaintenanceInfo | None:
        """Check one package.

        Returns:
            MaintenanceInfo, or None for unsupported ecosystems.

        Raises:
            SourceError: If the registry lookup fails.
        """
        now = now or datetime.now(timezone.utc)
        if dep.ecosystem is Ecosystem.NPM:
            return await self.check_npm(dep.name, now)
        if dep.ecosystem is Ecosystem.PYPI:
            return await self.check_pypi(dep.name, now)
        return None

    async def check_all(
        self,
        deps: list[Dependency],
        now: datetime | None = None,
    ) -> dict[str, MaintenanceInfo]:
        """Check every distinct package name.

        Failed lookups are logged and left out of the result.

        Args:
            deps: Scanned dependencies.
            now: Reference time.

        Returns:
            Maintenance info keyed by package name, in dependency order.
        """
        now = now or datetime.now(timezone.utc)
        unique: dict[str, Dependency] = {}
        for dep in deps:
            unique.setdefault(dep.name, dep)

        semaphore = asyncio.Semaphore(self.concurrency)
        results: dict[str, MaintenanceInfo] = {}

        async def check_one(dep: Dependency) -> None:
            async with semaphore:
                try:
                    info = await self.check(dep, now)
                except SourceError as e:
                    logger.debug(f"Maintenance check failed for {dep.name}: {e}")
                    return
            if info is not None:
                results[dep.name] = info

        await asyncio.gather(*(check_one(dep) for dep in unique.values()))

        unmaintained = sum(1 for info in results.values() if info.is_unmaintained)
        if unmaintained:
            logger.info(f"Found {unmaintained} unmaintained package(s)")
        return {name: results[name] for name in unique if name in results}
