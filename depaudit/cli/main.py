"""Main CLI entry point for depaudit."""

import asyncio
import sys
from pathlib import Path

import click

from depaudit import __version__
from depaudit.cli.display import (
    console,
    create_progress,
    print_ecosystems,
    print_scan_report,
    show_error,
)
from depaudit.cli.json_output import render_json
from depaudit.core.config.settings import Settings, get_settings
from depaudit.core.exceptions.errors import DepAuditError
from depaudit.core.logger.logger import get_logger, setup_logging
from depaudit.engine.merge import severity_rank
from depaudit.engine.progress import ProgressEvent
from depaudit.engine.scan import scan_path
from depaudit.models.advisory import Severity
from depaudit.models.dependency import LockfileMode
from depaudit.models.scan import ScanOptions, ScanResult
from depaudit.providers.registry import PROVIDERS

logger = get_logger(__name__)

EXIT_VULNERABLE = 1
EXIT_ERROR = 2

FAIL_ON_CHOICES = ["critical", "high", "medium", "low"]


def _lockfile_mode(validate: bool, refresh: bool, enforce: bool) -> LockfileMode | None:
    chosen = [
        mode
        for flag, mode in (
            (validate, LockfileMode.CHECK),
            (refresh, LockfileMode.REFRESH),
            (enforce, LockfileMode.ENFORCE),
        )
        if flag
    ]
    if len(chosen) > 1:
        raise click.UsageError(
            "--validate-lock, --refresh-lock and --enforce-lock are mutually exclusive"
        )
    return chosen[0] if chosen else None


def _exceeds_threshold(result: ScanResult, fail_on: str | None) -> bool:
    if not fail_on:
        return False
    threshold = severity_rank(Severity.parse(fail_on))
    return any(
        severity_rank(advisory.severity) >= threshold
        for advisories in result.advisories_by_package.values()
        for advisory in advisories
    )


def run_scan(
    path: Path,
    options: ScanOptions,
    settings: Settings,
    show_progress: bool,
) -> ScanResult:
    """Run a scan, with a progress bar on stderr when requested.

    Args:
        path: Scan target.
        options: Scan options.
        settings: Settings.
        show_progress: Render progress events.

    Returns:
        The scan result.
    """
    if not show_progress:
        return asyncio.run(scan_path(path, options, settings=settings))

    with create_progress() as progress:
        task = progress.add_task("[cyan]Detecting ecosystem...", total=100)

        def on_progress(event: ProgressEvent) -> None:
            progress.update(task, completed=event.percent, description=f"[cyan]{event.message}")

        return asyncio.run(scan_path(path, options, settings=settings, progress=on_progress))


@click.group()
@click.version_option(__version__, "--version", prog_name="depaudit")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML settings file (default: ./depaudit.yaml if present)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """depaudit - dependency vulnerability audit for npm, Go and Python projects."""
    try:
        settings = Settings.from_yaml(config_path) if config_path else get_settings()
    except DepAuditError as e:
        show_error("Configuration Error", str(e))
        ctx.exit(EXIT_ERROR)
    setup_logging(settings.logging, verbose=verbose)
    ctx.obj = settings


@main.command()
@click.argument("path", default=".", type=click.Path(path_type=Path))
@click.option("--dev", is_flag=True, help="Include development dependencies")
@click.option("--validate-lock", is_flag=True, help="Validate the lock file with the package manager")
@click.option("--refresh-lock", is_flag=True, help="Regenerate the lock file before scanning")
@click.option(
    "--enforce-lock",
    is_flag=True,
    help="Create the lock file if missing, validate it if present",
)
@click.option("--concurrency", "-c", type=click.IntRange(1, 100), help="Max concurrent GitHub advisory queries")
@click.option(
    "--output",
    "-o",
    "output_format",
    type=click.Choice(["console", "json"]),
    default="console",
    help="Output format",
)
@click.option(
    "--ignore-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Ignore-list file (default: .vuln-ignore.json in the project)",
)
@click.option("--check-maintenance", is_flag=True, help="Flag packages with no release in 12+ months")
@click.option(
    "--fail-on",
    type=click.Choice(FAIL_ON_CHOICES, case_sensitive=False),
    help="Exit with status 1 when an advisory at or above this severity is found",
)
@click.pass_obj
def scan(
    settings: Settings,
    path: Path,
    dev: bool,
    validate_lock: bool,
    refresh_lock: bool,
    enforce_lock: bool,
    concurrency: int | None,
    output_format: str,
    ignore_file: Path | None,
    check_maintenance: bool,
    fail_on: str | None,
) -> None:
    """Scan a project directory, manifest, or lock file for vulnerabilities.

    Example:
        depaudit scan .
        depaudit scan path/to/pnpm-lock.yaml --output json
        depaudit scan --dev --fail-on high
    """
    options = ScanOptions(
        include_dev=dev or settings.scan.include_dev,
        lockfile_mode=_lockfile_mode(validate_lock, refresh_lock, enforce_lock),
        concurrency=concurrency or settings.scan.concurrency,
        ignore_file=ignore_file,
        check_maintenance=check_maintenance,
    )

    try:
        result = run_scan(
            path,
            options,
            settings,
            show_progress=output_format == "console" and sys.stderr.isatty(),
        )
    except DepAuditError as e:
        logger.debug(f"Scan failed: {e!r}")
        show_error("Scan Failed", str(e))
        sys.exit(EXIT_ERROR)

    if output_format == "json":
        click.echo(render_json(result))
    else:
        print_scan_report(result, console)

    if _exceeds_threshold(result, fail_on):
        sys.exit(EXIT_VULNERABLE)


@main.command()
def ecosystems() -> None:
    """List supported ecosystems and the files each one reads."""
    rows = [
        (provider.provider_id, provider.display_name, provider.get_supported_manifests())
        for provider in PROVIDERS
    ]
    print_ecosystems(rows, console)


if __name__ == "__main__":
    main()
