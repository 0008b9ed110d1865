"""End-to-end scan of a project path."""

import time
from pathlib import Path

from depaudit.core.config import get_github_token
from depaudit.core.config.settings import Settings, get_settings
from depaudit.core.logger.logger import get_logger
from depaudit.engine.ignore import filter_advisories, find_ignore_file, load_ignore_config
from depaudit.engine.maintenance import MaintenanceChecker
from depaudit.engine.orchestrator import VulnerabilityOrchestrator
from depaudit.engine.progress import ProgressCallback, ProgressReporter, ProgressStage
from depaudit.models.dependency import GatherOptions, LockfileOptions, dedupe_dependencies
from depaudit.models.scan import ScanOptions, ScanResult
from depaudit.providers.base import EcosystemProvider
from depaudit.providers.registry import default_providers, detect_provider, resolve_input
from depaudit.sources.github_advisory import GitHubAdvisoryClient
from depaudit.sources.http_client import RetryPolicy
from depaudit.sources.osv_client import OSVClient

logger = get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _build_ghsa_client(settings: Settings, retry_policy: RetryPolicy) -> GitHubAdvisoryClient | None:
    token = get_github_token(settings)
    if not token:
        logger.warning(
            "No GitHub token found (set GITHUB_TOKEN or run `gh auth login`); "
            "skipping GitHub Advisory Database, results use OSV only"
        )
        return None
    return GitHubAdvisoryClient(
        token,
        graphql_url=settings.github.graphql_url,
        page_size=settings.github.page_size,
        retry_policy=retry_policy,
    )


async def scan_path(
    path: str | Path,
    options: ScanOptions | None = None,
    *,
    settings: Settings | None = None,
    progress: ProgressCallback | None = None,
    osv_client: OSVClient | None = None,
    ghsa_client: GitHubAdvisoryClient | None = None,
    maintenance_checker: MaintenanceChecker | None = None,
    providers: tuple[EcosystemProvider, ...] | None = None,
) -> ScanResult:
    """Scan a project directory, manifest, or lock file for vulnerabilities.

    Args:
        path: Directory, manifest, or standalone lock file.
        options: Scan options.
        settings: Settings. Uses global settings if not provided.
        progress: Callback receiving progress events for this scan.
        osv_client: OSV client to use instead of one built from settings.
        ghsa_client: GitHub advisory client to use instead of one built
            from settings and the discovered token.
        maintenance_checker: Registry client for the maintenance check.
        providers: Ecosystem providers in precedence order.

    Returns:
        The scan result.

    Raises:
        ScanTargetNotFoundError: If the path does not exist.
        UnsupportedFileError: If a file path is not a supported file.
        EcosystemNotDetectedError: If no provider recognizes the directory.
        ManifestNotFoundError: If a lock-file operation needs a missing manifest.
        LockfileCommandError: If a package-manager command fails.
        DependencyParseError: If a standalone lock file cannot be parsed.
        IgnoreFileError: If the ignore file is missing or invalid.
    """
    start = time.monotonic()
    options = options or ScanOptions()
    settings = settings or get_settings()
    reporter = ProgressReporter(progress)
    providers = providers or default_providers(settings.scan.command_timeout)

    resolved = resolve_input(Path(path), providers)
    directory = resolved.directory
    provider, detection = detect_provider(directory, resolved.standalone_lockfile, providers)
    ignore_path = find_ignore_file(
        directory, options.ignore_file, settings.scan.ignore_file_name
    )
    ignore_config = load_ignore_config(ignore_path) if ignore_path is not None else None
    reporter.emit(
        ProgressStage.DETECTING_ECOSYSTEM,
        10,
        f"Detected {detection.label} ecosystem",
    )

    lock_options = LockfileOptions.from_mode(options.lockfile_mode)
    if resolved.standalone_lockfile is None:
        await provider.ensure_lockfile(directory, lock_options)
    elif lock_options.any:
        logger.warning("Lockfile options are ignored when scanning a standalone lock file")

    reporter.emit(
        ProgressStage.GATHERING_DEPENDENCIES,
        20,
        "Gathering dependencies from lockfile...",
    )
    deps = dedupe_dependencies(
        provider.gather_dependencies(
            directory,
            GatherOptions(
                include_dev=options.include_dev,
                standalone_lockfile=resolved.standalone_lockfile,
            ),
        )
    )
    logger.info(f"Found {len(deps)} dependencies via {detection.label}")

    if not deps:
        reporter.emit(ProgressStage.SCANNING_PACKAGES, 100, "No dependencies found")
        return ScanResult(deps=deps, detection=detection, scan_duration_ms=_elapsed_ms(start))

    reporter.emit(
        ProgressStage.SCANNING_PACKAGES,
        30,
        f"Found {len(deps)} dependencies, scanning for vulnerabilities...",
        deps_scanned=0,
        total_deps=len(deps),
    )

    retry_policy = RetryPolicy.from_settings(settings.retry)
    owned_clients = []
    if osv_client is None:
        osv_client = OSVClient(
            api_url=settings.osv.api_url,
            batch_size=settings.osv.batch_size,
            hydrate=settings.osv.hydrate,
            retry_policy=retry_policy,
        )
        owned_clients.append(osv_client)
    if ghsa_client is None:
        ghsa_client = _build_ghsa_client(settings, retry_policy)
        if ghsa_client is not None:
            owned_clients.append(ghsa_client)

    try:
        orchestrator = VulnerabilityOrchestrator(
            osv_client,
            ghsa_client,
            concurrency=options.concurrency,
            batch_size=osv_client.batch_size,
            progress=reporter,
        )
        advisories = await orchestrator.scan(deps)
    finally:
        for client in owned_clients:
            await client.close()

    reporter.emit(ProgressStage.FILTERING_ADVISORIES, 75, "Filtering advisories...")
    advisories, ignored_count = filter_advisories(advisories, deps, ignore_config)

    maintenance = {}
    if options.check_maintenance:
        reporter.emit(
            ProgressStage.CHECKING_MAINTENANCE,
            85,
            "Checking package maintenance status...",
        )
        checker = maintenance_checker or MaintenanceChecker(
            concurrency=settings.scan.maintenance_concurrency
        )
        try:
            maintenance = await checker.check_all(deps)
        finally:
            if maintenance_checker is None:
                await checker.close()

    reporter.emit(ProgressStage.FINALIZING, 100, "Scan complete")
    return ScanResult(
        deps=deps,
        advisories_by_package=advisories,
        detection=detection,
        scan_duration_ms=_elapsed_ms(start),
        maintenance=maintenance,
        ignored_count=ignored_count,
    )
