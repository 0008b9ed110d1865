"""Poetry provider (pyproject.toml + poetry.lock)."""

from pathlib import Path

from depaudit.core.exceptions.errors import DependencyParseError, ManifestNotFoundError
from depaudit.models.dependency import (
    Dependency,
    DetectionConfidence,
    Ecosystem,
    EcosystemDetection,
    LockfileOptions,
)
from depaudit.parsers import poetry_lock, pyproject
from depaudit.providers.base import EcosystemProvider, match_file_name, read_text

PYPROJECT = "pyproject.toml"
POETRY_LOCK = "poetry.lock"


class PoetryProvider(EcosystemProvider):
    """Provider for Python projects managed by Poetry."""

    provider_id = "poetry"
    display_name = "Poetry"
    ecosystem = Ecosystem.PYPI
    supported_manifests = (PYPROJECT, POETRY_LOCK)

    create_command = ["poetry", "lock", "--no-update"]
    validate_command = ["poetry", "check", "--lock"]

    def detect(self, directory: Path) -> EcosystemDetection | None:
        """A poetry.lock, or a pyproject.toml with a ``[tool.poetry]`` table."""
        if (directory / POETRY_LOCK).is_file():
            confidence = DetectionConfidence.LOCKFILE
        elif self._is_poetry_manifest(directory / PYPROJECT):
            confidence = DetectionConfidence.MANIFEST
        else:
            return None
        return EcosystemDetection(
            provider_id=self.provider_id,
            name="poetry",
            confidence=confidence,
        )

    def _is_poetry_manifest(self, manifest: Path) -> bool:
        if not manifest.is_file():
            return False
        try:
            return pyproject.is_poetry_project(read_text(manifest))
        except DependencyParseError:
            return False

    async def ensure_lockfile(self, directory: Path, options: LockfileOptions) -> None:
        if not options.any:
            return
        if not (directory / PYPROJECT).is_file():
            raise ManifestNotFoundError(PYPROJECT, str(directory))
        await self.apply_lock_policy(
            directory,
            options,
            has_lock=(directory / POETRY_LOCK).is_file(),
            create_cmd=self.create_command,
            validate_cmd=self.validate_command,
        )

    def find_lockfile(self, directory: Path) -> Path | None:
        path = directory / POETRY_LOCK
        return path if path.is_file() else None

    def parse_lockfile(self, path: Path, directory: Path, include_dev: bool) -> list[Dependency]:
        return poetry_lock.parse(read_text(path), include_dev)

    def parse_manifest(self, directory: Path, include_dev: bool) -> list[Dependency]:
        return pyproject.parse(read_text(directory / PYPROJECT), include_dev)

    def parse_standalone(self, path: Path, include_dev: bool) -> list[Dependency]:
        text = read_text(path)
        if match_file_name(path.name, self.supported_manifests) == POETRY_LOCK:
            return poetry_lock.parse(text, include_dev)
        return pyproject.parse(text, include_dev)

    def standalone_detection(self, path: Path) -> EcosystemDetection:
        return EcosystemDetection(
            provider_id=self.provider_id,
            name="poetry",
            confidence=DetectionConfidence.LOCKFILE,
        )
