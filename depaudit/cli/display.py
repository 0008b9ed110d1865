"""Display components for CLI using Rich."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.text import Text

from depaudit.engine.merge import severity_rank
from depaudit.models.advisory import Severity, UnifiedAdvisory
from depaudit.models.scan import ScanResult

console = Console()
err_console = Console(stderr=True)

DESCRIPTION_LIMIT = 200


def get_severity_badge(severity: Severity) -> str:
    """Get colored badge for severity.

    Args:
        severity: Severity level.

    Returns:
        Colored badge string.
    """
    badges = {
        Severity.CRITICAL: "[bold red]CRITICAL[/]",
        Severity.HIGH: "[bold orange1]HIGH[/]",
        Severity.MEDIUM: "[bold yellow]MEDIUM[/]",
        Severity.MODERATE: "[bold yellow]MODERATE[/]",
        Severity.LOW: "[bold green]LOW[/]",
    }
    return badges.get(severity, f"[dim]{severity.value}[/]")


def show_error(title: str, message: str, target: Console | None = None) -> None:
    """Display an error message."""
    target = target or err_console
    target.print()
    target.print(
        Panel(
            f"[bold red]{escape(message)}[/]",
            title=f"[bold]{escape(title)}[/]",
            border_style="red",
        )
    )


def create_progress() -> Progress:
    """Create a progress bar instance on stderr."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    )


def _sorted_advisories(advisories: list[UnifiedAdvisory]) -> list[UnifiedAdvisory]:
    return sorted(advisories, key=lambda adv: severity_rank(adv.severity), reverse=True)


def _package_rank(advisories: list[UnifiedAdvisory]) -> int:
    return max(severity_rank(adv.severity) for adv in advisories)


def _summary_panel(result: ScanResult) -> Panel:
    has_issues = result.total_vulnerabilities > 0
    text = Text()
    text.append(f"{len(result.deps)}", style="bold cyan")
    text.append(f" packages scanned via {result.detection.label}\n")
    text.append(
        f"{result.total_vulnerabilities}",
        style="bold red" if has_issues else "bold green",
    )
    text.append(f" vulnerabilities in {result.vulnerable_count} packages")
    if result.ignored_count:
        text.append(f"\n{result.ignored_count} ignored by rules", style="dim")
    text.append(f"\nScan took {result.scan_duration_ms}ms", style="dim")
    return Panel(
        text,
        title="[bold]Dependency Audit[/]",
        border_style="red" if has_issues else "green",
    )


def _advisory_table(name: str, versions: list[str], advisories: list[UnifiedAdvisory]) -> Table:
    version_text = ", ".join(versions) if versions else "unknown"
    table = Table(
        title=f"[bold cyan]{escape(name)}@{escape(version_text)}[/]",
        title_justify="left",
        show_lines=True,
    )
    table.add_column("Severity", width=10)
    table.add_column("Advisory", style="white", no_wrap=True)
    table.add_column("Details")
    table.add_column("Fix", style="green")

    for advisory in _sorted_advisories(advisories):
        details = Text(advisory.title.strip(), style="bold")
        if advisory.cve_ids:
            details.append(f"\nCVE IDs: {', '.join(advisory.cve_ids)}", style="dim")
        if advisory.details:
            description = advisory.details.strip()
            if len(description) > DESCRIPTION_LIMIT:
                description = description[:DESCRIPTION_LIMIT] + "..."
            details.append(f"\n{description}", style="dim")
        if advisory.references:
            details.append(f"\n{advisory.references[0]}", style="dim underline")

        table.add_row(
            get_severity_badge(advisory.severity),
            f"{escape(advisory.id)}\n[dim]{advisory.source.upper()}[/]",
            details,
            escape(advisory.first_patched_version or "-"),
        )
    return table


def _maintenance_table(result: ScanResult) -> Table | None:
    unmaintained = [info for info in result.maintenance.values() if info.is_unmaintained]
    if not unmaintained:
        return None
    table = Table(title=f"[bold yellow]Unmaintained Packages ({len(unmaintained)})[/]")
    table.add_column("Package", style="cyan")
    table.add_column("Last Release")
    table.add_column("Weekly Downloads", justify="right")
    table.add_column("Note", style="dim")
    for info in unmaintained:
        last_release = (
            f"{info.days_since_release} days ago"
            if info.days_since_release is not None
            else "unknown"
        )
        downloads = f"{info.weekly_downloads:,}" if info.weekly_downloads else "-"
        table.add_row(escape(info.name), last_release, downloads, escape(info.deprecated or ""))
    return table


def print_scan_report(result: ScanResult, target: Console | None = None) -> None:
    """Print a scan result as a human-readable report.

    Packages are listed most severe first; advisories within a package
    likewise.

    Args:
        result: Scan result.
        target: Console to print to. Defaults to stdout.
    """
    target = target or console
    target.print()
    target.print(_summary_panel(result))

    if result.total_vulnerabilities == 0:
        target.print(f"[bold green]No vulnerabilities found in {len(result.deps)} packages[/]")
    else:
        packages = sorted(
            result.advisories_by_package.items(),
            key=lambda item: _package_rank(item[1]),
            reverse=True,
        )
        for name, advisories in packages:
            target.print()
            target.print(_advisory_table(name, result.versions_of(name), advisories))

    maintenance = _maintenance_table(result)
    if maintenance is not None:
        target.print()
        target.print(maintenance)
    target.print()


def print_ecosystems(rows: list[tuple[str, str, list[str]]], target: Console | None = None) -> None:
    """Print the supported ecosystems table.

    Args:
        rows: (provider id, display name, supported files) per provider.
        target: Console to print to.
    """
    target = target or console
    table = Table(title="[bold]Supported Ecosystems[/]")
    table.add_column("Provider", style="cyan")
    table.add_column("Package Manager")
    table.add_column("Files", style="dim")
    for provider_id, name, files in rows:
        table.add_row(provider_id, name, ", ".join(files))
    target.print(table)
