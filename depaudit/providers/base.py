"""Base ecosystem provider."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from pathlib import Path

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.core.logger.logger import get_logger
from depaudit.models.dependency import (
    Dependency,
    Ecosystem,
    EcosystemDetection,
    GatherOptions,
    LockfileOptions,
)
from depaudit.providers.commands import DEFAULT_TIMEOUT, run_command

CommandRunner = Callable[..., Awaitable[str]]


def match_file_name(file_name: str, candidates: tuple[str, ...] | list[str]) -> str | None:
    """Map a file name to a known name by exact or suffix match.

    Suffix matching accepts uploads saved under random-prefixed temporary
    names such as ``tmp8f2a-package-lock.json``.
    """
    if file_name in candidates:
        return file_name
    # Longest first so "package-lock.json" wins over a shorter overlapping name
    for candidate in sorted(candidates, key=len, reverse=True):
        if file_name.endswith(candidate):
            return candidate
    return None


def read_text(path: Path) -> str:
    """Read a manifest or lock file as UTF-8."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DependencyParseError(f"Cannot read {path.name}: {e}", file_name=path.name) from e


class EcosystemProvider(ABC):
    """Detection, lock-file policy and parsing for one ecosystem."""

    provider_id: str
    display_name: str
    ecosystem: Ecosystem
    # Every file name this provider understands, manifests and lock files
    supported_manifests: tuple[str, ...] = ()

    def __init__(
        self,
        runner: CommandRunner | None = None,
        command_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the provider.

        Args:
            runner: Coroutine used to run package-manager commands.
            command_timeout: Seconds allowed per package-manager command.
        """
        self.logger = get_logger(self.__class__.__name__)
        self._runner = runner or run_command
        self.command_timeout = command_timeout

    def get_supported_manifests(self) -> list[str]:
        return list(self.supported_manifests)

    def owns_file(self, file_name: str) -> bool:
        return match_file_name(file_name, self.supported_manifests) is not None

    @abstractmethod
    def detect(self, directory: Path) -> EcosystemDetection | None:
        """Check whether this provider handles the directory.

        Must not raise; missing or unreadable markers mean no match.
        """

    @abstractmethod
    async def ensure_lockfile(self, directory: Path, options: LockfileOptions) -> None:
        """Create, refresh or validate the lock file according to options."""

    @abstractmethod
    def find_lockfile(self, directory: Path) -> Path | None:
        """Return the lock file this provider would parse, if one exists."""

    @abstractmethod
    def parse_lockfile(self, path: Path, directory: Path, include_dev: bool) -> list[Dependency]:
        """Parse a lock file found in the project directory."""

    @abstractmethod
    def parse_manifest(self, directory: Path, include_dev: bool) -> list[Dependency]:
        """Parse direct dependencies from the manifest alone."""

    @abstractmethod
    def parse_standalone(self, path: Path, include_dev: bool) -> list[Dependency]:
        """Parse a single file passed on its own, without manifest context."""

    @abstractmethod
    def standalone_detection(self, path: Path) -> EcosystemDetection:
        """Describe the package manager behind a file passed on its own.

        Only called with a file name this provider owns.
        """

    def gather_dependencies(self, directory: Path, options: GatherOptions) -> list[Dependency]:
        """Collect dependencies from the richest available source.

        A lock file gives the full resolved closure; without one, or when it
        cannot be parsed, the manifest's direct dependencies are used. A
        standalone lock file has no manifest to fall back to, so its parse
        errors propagate.

        Args:
            directory: Project directory.
            options: Dev inclusion and standalone lock file.

        Returns:
            Ordered dependency list.
        """
        if options.standalone_lockfile is not None:
            return self.parse_standalone(options.standalone_lockfile, options.include_dev)

        lockfile = self.find_lockfile(directory)
        if lockfile is not None:
            try:
                deps = self.parse_lockfile(lockfile, directory, options.include_dev)
                self.logger.debug(f"Parsed {len(deps)} dependencies from {lockfile.name}")
                return deps
            except DependencyParseError as e:
                self.logger.warning(
                    f"Failed to parse {lockfile.name}, falling back to manifest: {e}"
                )

        return self.parse_manifest(directory, options.include_dev)

    async def run(self, cmd: list[str], directory: Path) -> None:
        await self._runner(cmd, directory, timeout=self.command_timeout)

    async def apply_lock_policy(
        self,
        directory: Path,
        options: LockfileOptions,
        has_lock: bool,
        create_cmd: list[str],
        validate_cmd: list[str],
        refresh_cmd: list[str] | None = None,
    ) -> None:
        """Run at most one package-manager command chosen by the lock policy.

        Forced refresh wins over forced validation, which wins over the
        conditional create-if-missing / validate-if-present pair.
        """
        if options.force_refresh:
            await self.run(refresh_cmd or create_cmd, directory)
        elif options.force_validate:
            await self.run(validate_cmd, directory)
        elif not has_lock and options.create_if_missing:
            await self.run(create_cmd, directory)
        elif has_lock and options.validate_if_present:
            await self.run(validate_cmd, directory)
