"""pip provider (requirements.txt)."""

from pathlib import Path

from depaudit.core.exceptions.errors import ManifestNotFoundError
from depaudit.models.dependency import (
    Dependency,
    DetectionConfidence,
    Ecosystem,
    EcosystemDetection,
    LockfileOptions,
)
from depaudit.parsers import requirements_txt
from depaudit.providers.base import EcosystemProvider, read_text

REQUIREMENTS = "requirements.txt"


class PipProvider(EcosystemProvider):
    """Provider for plain requirements.txt projects.

    requirements.txt is both manifest and lock file; pip has no command that
    creates or validates it.
    """

    provider_id = "pip"
    display_name = "pip"
    ecosystem = Ecosystem.PYPI
    supported_manifests = (REQUIREMENTS,)

    def detect(self, directory: Path) -> EcosystemDetection | None:
        if not (directory / REQUIREMENTS).is_file():
            return None
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=self.display_name,
            confidence=DetectionConfidence.MANIFEST,
        )

    async def ensure_lockfile(self, directory: Path, options: LockfileOptions) -> None:
        if not options.any:
            return
        if not (directory / REQUIREMENTS).is_file():
            raise ManifestNotFoundError(REQUIREMENTS, str(directory))
        if options.force_validate or options.validate_if_present:
            self.logger.warning("Lockfile validation is not supported for requirements.txt")

    def find_lockfile(self, directory: Path) -> Path | None:
        return None

    def parse_lockfile(self, path: Path, directory: Path, include_dev: bool) -> list[Dependency]:
        return requirements_txt.parse(read_text(path), include_dev)

    def parse_manifest(self, directory: Path, include_dev: bool) -> list[Dependency]:
        path = directory / REQUIREMENTS
        if not path.is_file():
            raise ManifestNotFoundError(REQUIREMENTS, str(directory))
        return requirements_txt.parse(read_text(path), include_dev)

    def parse_standalone(self, path: Path, include_dev: bool) -> list[Dependency]:
        return requirements_txt.parse(read_text(path), include_dev)

    def standalone_detection(self, path: Path) -> EcosystemDetection:
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=self.display_name,
            confidence=DetectionConfidence.LOCKFILE,
        )
