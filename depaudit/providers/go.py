"""Go modules provider."""

from pathlib import Path

from depaudit.core.exceptions.errors import ManifestNotFoundError
from depaudit.models.dependency import (
    Dependency,
    DetectionConfidence,
    Ecosystem,
    EcosystemDetection,
    LockfileOptions,
)
from depaudit.parsers import go_mod, go_sum
from depaudit.providers.base import EcosystemProvider, match_file_name, read_text

GO_MOD = "go.mod"
GO_SUM = "go.sum"


class GoProvider(EcosystemProvider):
    """Provider for Go module projects.

    go.sum plays the lock-file role: it lists every module version the
    build resolved. go.mod is the manifest and distinguishes direct from
    indirect requirements.
    """

    provider_id = "go"
    display_name = "Go modules"
    ecosystem = Ecosystem.GO
    supported_manifests = (GO_MOD, GO_SUM)

    create_command = ["go", "mod", "tidy"]
    validate_command = ["go", "mod", "verify"]

    def detect(self, directory: Path) -> EcosystemDetection | None:
        if not (directory / GO_MOD).is_file():
            return None
        has_sum = (directory / GO_SUM).is_file()
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=self.display_name,
            confidence=DetectionConfidence.LOCKFILE if has_sum else DetectionConfidence.MANIFEST,
        )

    async def ensure_lockfile(self, directory: Path, options: LockfileOptions) -> None:
        if not options.any:
            return
        if not (directory / GO_MOD).is_file():
            raise ManifestNotFoundError(GO_MOD, str(directory))

        has_sum = (directory / GO_SUM).is_file()
        if options.force_validate and not has_sum:
            self.logger.warning('go.sum not found; run "go mod download" to generate it')
            return
        await self.apply_lock_policy(
            directory,
            options,
            has_sum,
            create_cmd=self.create_command,
            validate_cmd=self.validate_command,
        )

    def find_lockfile(self, directory: Path) -> Path | None:
        path = directory / GO_SUM
        return path if path.is_file() else None

    def parse_lockfile(self, path: Path, directory: Path, include_dev: bool) -> list[Dependency]:
        return go_sum.parse(read_text(path), include_dev)

    def parse_manifest(self, directory: Path, include_dev: bool) -> list[Dependency]:
        path = directory / GO_MOD
        if not path.is_file():
            raise ManifestNotFoundError(GO_MOD, str(directory))
        return go_mod.parse(read_text(path), include_dev)

    def parse_standalone(self, path: Path, include_dev: bool) -> list[Dependency]:
        text = read_text(path)
        if match_file_name(path.name, self.supported_manifests) == GO_SUM:
            return go_sum.parse(text, include_dev)
        return go_mod.parse(text, include_dev)

    def standalone_detection(self, path: Path) -> EcosystemDetection:
        return EcosystemDetection(
            provider_id=self.provider_id,
            name=self.display_name,
            confidence=DetectionConfidence.LOCKFILE,
        )
