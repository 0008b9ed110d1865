"""Merging of advisories reported by several sources."""

from collections.abc import Iterable

from depaudit.models.advisory import RawAdvisory, Severity, UnifiedAdvisory


def severity_rank(severity: Severity | str | None) -> int:
    """Rank on CRITICAL > HIGH > MEDIUM = MODERATE > LOW > anything else."""
    if not isinstance(severity, Severity):
        severity = Severity.parse(severity)
    return severity.rank


def _absorb(existing: UnifiedAdvisory, incoming: RawAdvisory | UnifiedAdvisory) -> None:
    if isinstance(incoming, RawAdvisory):
        existing.sources.add(incoming.source)
    else:
        existing.sources.update(incoming.sources)

    if severity_rank(incoming.severity) > severity_rank(existing.severity):
        existing.severity = incoming.severity
    if not existing.details and incoming.details:
        existing.details = incoming.details
    if not existing.summary and incoming.summary:
        existing.summary = incoming.summary
    if not existing.first_patched_version and incoming.first_patched_version:
        existing.first_patched_version = incoming.first_patched_version
    if not existing.affected_range and incoming.affected_range:
        existing.affected_range = incoming.affected_range
    for ref in incoming.references:
        if ref not in existing.references:
            existing.references.append(ref)
    for cve_id in incoming.cve_ids:
        if cve_id not in existing.cve_ids:
            existing.cve_ids.append(cve_id)


def merge_advisories(
    *advisory_lists: Iterable[RawAdvisory | UnifiedAdvisory],
) -> list[UnifiedAdvisory]:
    """Deduplicate advisories by id.

    The first record seen for an id keeps its position. Later records for
    the same id add their source, raise the severity if theirs ranks
    higher, and fill fields the first record left empty.

    Args:
        *advisory_lists: Advisory sequences, earlier ones first.

    Returns:
        One UnifiedAdvisory per distinct id, in first-seen order.
    """
    by_id: dict[str, UnifiedAdvisory] = {}
    for advisories in advisory_lists:
        for advisory in advisories:
            existing = by_id.get(advisory.id)
            if existing is None:
                if isinstance(advisory, RawAdvisory):
                    by_id[advisory.id] = UnifiedAdvisory.from_raw(advisory)
                else:
                    by_id[advisory.id] = advisory.model_copy(deep=True)
            else:
                _absorb(existing, advisory)
    return list(by_id.values())


def merge_package_maps(
    *maps: dict[str, list[RawAdvisory | UnifiedAdvisory]],
) -> dict[str, list[UnifiedAdvisory]]:
    """Merge per-package advisory maps, dropping packages left empty."""
    names: list[str] = []
    for package_map in maps:
        for name in package_map:
            if name not in names:
                names.append(name)

    merged: dict[str, list[UnifiedAdvisory]] = {}
    for name in names:
        advisories = merge_advisories(*(package_map.get(name, []) for package_map in maps))
        if advisories:
            merged[name] = advisories
    return merged
