"""Node.js provider covering npm, pnpm and yarn (classic and berry)."""

from dataclasses import dataclass
from pathlib import Path

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import (
    Dependency,
    DetectionConfidence,
    Ecosystem,
    EcosystemDetection,
    LockfileOptions,
)
from depaudit.parsers import npm_lock, package_json, pnpm_lock, yarn_lock
from depaudit.providers.base import EcosystemProvider, match_file_name, read_text

NPM_LOCKFILES = ("package-lock.json", "npm-shrinkwrap.json")
PNPM_LOCKFILE = "pnpm-lock.yaml"
PNPM_WORKSPACE = "pnpm-workspace.yaml"
YARN_LOCKFILE = "yarn.lock"
MANIFEST = "package.json"


@dataclass(frozen=True)
class PackageManager:
    """A detected Node package manager."""

    name: str
    variant: str | None = None
    confidence: DetectionConfidence = DetectionConfidence.DEFAULT


# (create, validate) argument vectors per package manager / variant
LOCK_COMMANDS: dict[tuple[str, str | None], tuple[list[str], list[str]]] = {
    ("npm", None): (
        ["npm", "install", "--package-lock-only"],
        ["npm", "ci", "--dry-run"],
    ),
    ("pnpm", None): (
        ["pnpm", "install", "--lockfile-only"],
        ["pnpm", "install", "--frozen-lockfile"],
    ),
    ("yarn", "berry"): (
        ["yarn", "install", "--mode=update-lockfile"],
        ["yarn", "install", "--immutable"],
    ),
    ("yarn", "classic"): (
        ["yarn", "install"],
        ["yarn", "install", "--frozen-lockfile"],
    ),
}


def yarn_variant_from_field(package_manager: str) -> str:
    """``yarn@1.22.19`` is classic, ``yarn@2`` and later are berry."""
    version = package_manager.split("@", 1)[1] if "@" in package_manager else ""
    major = version.split(".", 1)[0]
    return "berry" if major.isdigit() and int(major) >= 2 else "classic"


class NodeProvider(EcosystemProvider):
    """Provider for JavaScript projects managed by npm, pnpm or yarn."""

    provider_id = "node"
    display_name = "Node.js"
    ecosystem = Ecosystem.NPM
    supported_manifests = (
        MANIFEST,
        *NPM_LOCKFILES,
        PNPM_LOCKFILE,
        PNPM_WORKSPACE,
        YARN_LOCKFILE,
    )

    def detect_package_manager(self, directory: Path) -> PackageManager:
        """Work out which package manager owns the project.

        Order: lock files, then the ``packageManager`` field of package.json,
        then a pnpm workspace file, then npm as the default.
        """
        if (directory / PNPM_LOCKFILE).is_file():
            return PackageManager("pnpm", confidence=DetectionConfidence.LOCKFILE)
        if (directory / YARN_LOCKFILE).is_file():
            return PackageManager(
                "yarn",
                self._yarn_variant_from_lock(directory / YARN_LOCKFILE),
                DetectionConfidence.LOCKFILE,
            )
        if any((directory / name).is_file() for name in NPM_LOCKFILES):
            return PackageManager("npm", confidence=DetectionConfidence.LOCKFILE)

        declared = self._package_manager_field(directory)
        if declared:
            if declared.startswith("pnpm@"):
                return PackageManager("pnpm", confidence=DetectionConfidence.PACKAGE_MANAGER_FIELD)
            if declared.startswith("yarn@"):
                return PackageManager(
                    "yarn",
                    yarn_variant_from_field(declared),
                    DetectionConfidence.PACKAGE_MANAGER_FIELD,
                )
            if declared.startswith("npm@"):
                return PackageManager("npm", confidence=DetectionConfidence.PACKAGE_MANAGER_FIELD)

        if (directory / PNPM_WORKSPACE).is_file():
            return PackageManager("pnpm", confidence=DetectionConfidence.WORKSPACE)

        return PackageManager("npm", confidence=DetectionConfidence.DEFAULT)

    def _package_manager_field(self, directory: Path) -> str | None:
        manifest = directory / MANIFEST
        if not manifest.is_file():
            return None
        try:
            return package_json.package_manager_field(read_text(manifest))
        except DependencyParseError:
            return None

    def _yarn_variant_from_lock(self, lockfile: Path) -> str:
        try:
            return "berry" if yarn_lock.is_berry(read_text(lockfile)) else "classic"
        except DependencyParseError:
            return "classic"

    def detect(self, directory: Path) -> EcosystemDetection | None:
        if not (directory / MANIFEST).is_file():
            return None
        pm = self.detect_package_manager(directory)
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=pm.name,
            variant=pm.variant,
            confidence=pm.confidence,
        )

    def _lockfile_for(self, directory: Path, pm: PackageManager) -> Path | None:
        if pm.name == "pnpm":
            candidates: tuple[str, ...] = (PNPM_LOCKFILE,)
        elif pm.name == "yarn":
            candidates = (YARN_LOCKFILE,)
        else:
            candidates = NPM_LOCKFILES
        for name in candidates:
            if (directory / name).is_file():
                return directory / name
        return None

    async def ensure_lockfile(self, directory: Path, options: LockfileOptions) -> None:
        if not options.any:
            return
        pm = self.detect_package_manager(directory)
        key = (pm.name, pm.variant or "classic") if pm.name == "yarn" else (pm.name, None)
        create_cmd, validate_cmd = LOCK_COMMANDS[key]
        has_lock = self._lockfile_for(directory, pm) is not None
        await self.apply_lock_policy(directory, options, has_lock, create_cmd, validate_cmd)

    def find_lockfile(self, directory: Path) -> Path | None:
        return self._lockfile_for(directory, self.detect_package_manager(directory))

    def parse_lockfile(self, path: Path, directory: Path, include_dev: bool) -> list[Dependency]:
        text = read_text(path)
        kind = match_file_name(path.name, (*NPM_LOCKFILES, PNPM_LOCKFILE, YARN_LOCKFILE))
        if kind == PNPM_LOCKFILE:
            return pnpm_lock.parse(text, include_dev)
        if kind == YARN_LOCKFILE:
            return yarn_lock.parse(text, include_dev)
        return npm_lock.parse(text, include_dev)

    def parse_manifest(self, directory: Path, include_dev: bool) -> list[Dependency]:
        return package_json.parse(read_text(directory / MANIFEST), include_dev)

    def parse_standalone(self, path: Path, include_dev: bool) -> list[Dependency]:
        kind = match_file_name(path.name, self.supported_manifests)
        if kind == MANIFEST:
            raise DependencyParseError(
                "package.json requires a lockfile for accurate dependency resolution. "
                "Provide package-lock.json, pnpm-lock.yaml or yarn.lock instead, "
                "or scan the directory containing both files.",
                file_name=path.name,
            )
        if kind == PNPM_WORKSPACE:
            raise DependencyParseError(
                "pnpm-workspace.yaml only defines workspace structure, not dependencies. "
                "Provide pnpm-lock.yaml from the workspace root instead.",
                file_name=path.name,
            )
        text = read_text(path)
        if kind == PNPM_LOCKFILE:
            return pnpm_lock.parse(text, include_dev)
        if kind == YARN_LOCKFILE:
            return yarn_lock.parse(text, include_dev)
        return npm_lock.parse(text, include_dev)

    def standalone_detection(self, path: Path) -> EcosystemDetection:
        kind = match_file_name(path.name, self.supported_manifests)
        variant = None
        if kind in (PNPM_LOCKFILE, PNPM_WORKSPACE):
            name = "pnpm"
        elif kind == YARN_LOCKFILE:
            name = "yarn"
            variant = self._yarn_variant_from_lock(path)
        else:
            name = "npm"
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=name,
            variant=variant,
            confidence=DetectionConfidence.LOCKFILE,
        )
