"""Vulnerability query orchestration across OSV and the GitHub Advisory Database."""

import asyncio

from depaudit.core.exceptions.errors import RateLimitError, SourceError
from depaudit.core.logger.logger import get_logger
from depaudit.engine.merge import merge_package_maps
from depaudit.engine.progress import ProgressReporter
from depaudit.engine.version_range import version_in_range
from depaudit.models.advisory import RawAdvisory, UnifiedAdvisory
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.sources.github_advisory import GitHubAdvisoryClient
from depaudit.sources.osv_client import OSVClient

logger = get_logger(__name__)


class VulnerabilityOrchestrator:
    """Looks up advisories for a dependency list.

    OSV is queried in sequential batches, one (name, version) pair per
    query. The GitHub Advisory Database is queried once per distinct package
    name under a semaphore, and its advisories are kept only when one of the
    installed versions falls inside the vulnerable range. Both result sets
    are merged per package name.
    """

    def __init__(
        self,
        osv: OSVClient,
        ghsa: GitHubAdvisoryClient | None = None,
        concurrency: int = 10,
        batch_size: int = 50,
        progress: ProgressReporter | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            osv: OSV client.
            ghsa: GitHub advisory client. GHSA is skipped when None.
            concurrency: Maximum in-flight GHSA requests.
            batch_size: Dependencies per OSV batch request.
            progress: Progress reporter for the scanning stage.
        """
        self.osv = osv
        self.ghsa = ghsa
        self.concurrency = max(1, concurrency)
        self.batch_size = max(1, batch_size)
        self.progress = progress or ProgressReporter()

    async def scan(self, deps: list[Dependency]) -> dict[str, list[UnifiedAdvisory]]:
        """Query both sources and merge their findings.

        Args:
            deps: Dependencies, unique by (name, version).

        Returns:
            Advisories keyed by package name. Packages without advisories
            are absent.
        """
        if not deps:
            return {}

        names = _distinct_names(deps)
        batch_count = (len(deps) + self.batch_size - 1) // self.batch_size
        ghsa_count = len(names) if self.ghsa else 0
        self._total_units = batch_count + ghsa_count
        self._done_units = 0

        osv_results = await self._query_osv(deps)
        ghsa_results = await self._query_ghsa(names) if self.ghsa else {}

        merged = merge_package_maps(osv_results, ghsa_results)
        logger.info(
            f"Found {sum(len(a) for a in merged.values())} advisories "
            f"across {len(merged)} packages"
        )
        return merged

    def _advance(self, message: str) -> None:
        self._done_units += 1
        self.progress.scanning(self._done_units, self._total_units, message)

    async def _query_osv(self, deps: list[Dependency]) -> dict[str, list[RawAdvisory]]:
        results: dict[str, list[RawAdvisory]] = {}
        total_batches = (len(deps) + self.batch_size - 1) // self.batch_size

        for index, start in enumerate(range(0, len(deps), self.batch_size), start=1):
            batch = deps[start : start + self.batch_size]
            try:
                per_dep = await self.osv.query_batch(batch)
            except SourceError as e:
                logger.warning(
                    f"OSV batch {index}/{total_batches} failed, querying {len(batch)} packages individually: {e}"
                )
                per_dep = await self._query_osv_individually(batch)

            for dep, advisories in zip(batch, per_dep):
                if advisories:
                    results.setdefault(dep.name, []).extend(advisories)

            self._advance(f"Scanned OSV batch {index}/{total_batches}")
        return results

    async def _query_osv_individually(self, batch: list[Dependency]) -> list[list[RawAdvisory]]:
        per_dep: list[list[RawAdvisory]] = []
        for dep in batch:
            try:
                per_dep.append(await self.osv.query(dep))
            except SourceError as e:
                logger.warning(f"OSV query failed for {dep}: {e}")
                per_dep.append([])
        return per_dep

    async def _query_ghsa(
        self,
        names: dict[str, tuple[Ecosystem, list[str]]],
    ) -> dict[str, list[RawAdvisory]]:
        results: dict[str, list[RawAdvisory]] = {}
        semaphore = asyncio.Semaphore(self.concurrency)
        rate_limited: list[str] = []
        failed: list[str] = []

        async def query_one(name: str, ecosystem: Ecosystem, versions: list[str]) -> None:
            async with semaphore:
                try:
                    advisories = await self.ghsa.query_package(ecosystem, name)
                except RateLimitError as e:
                    rate_limited.append(name)
                    logger.debug(f"GHSA rate limited for {name}: {e}")
                    return
                except SourceError as e:
                    failed.append(name)
                    logger.debug(f"GHSA query failed for {name}: {e}")
                    return
                finally:
                    self._advance(f"Checked {name} against GitHub advisories")

            kept = [
                advisory
                for advisory in advisories
                if any(
                    version_in_range(version, advisory.affected_range, ecosystem)
                    for version in versions
                )
            ]
            if kept:
                results[name] = kept

        await asyncio.gather(
            *(query_one(name, eco, versions) for name, (eco, versions) in names.items())
        )

        if rate_limited:
            logger.warning(
                f"GHSA rate limit hit for {len(rate_limited)} package(s); "
                "results for those include OSV data only. Retry later or use a "
                "GitHub token with a higher rate limit."
            )
        if failed:
            logger.warning(
                f"GHSA lookup failed for {len(failed)} package(s); using OSV data only for them"
            )

        # Keep the dependency order regardless of task completion order
        return {name: results[name] for name in names if name in results}


def _distinct_names(deps: list[Dependency]) -> dict[str, tuple[Ecosystem, list[str]]]:
    names: dict[str, tuple[Ecosystem, list[str]]] = {}
    for dep in deps:
        ecosystem, versions = names.setdefault(dep.name, (dep.ecosystem, []))
        if dep.version not in versions:
            versions.append(dep.version)
    return names
