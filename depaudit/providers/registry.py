"""Provider registry and ecosystem detection."""

from dataclasses import dataclass
from pathlib import Path

from depaudit.core.exceptions.errors import (
    EcosystemNotDetectedError,
    ScanTargetNotFoundError,
    UnsupportedFileError,
)
from depaudit.core.logger.logger import get_logger
from depaudit.models.dependency import EcosystemDetection
from depaudit.providers.base import EcosystemProvider, match_file_name
from depaudit.providers.go import GoProvider
from depaudit.providers.node import NodeProvider
from depaudit.providers.python_pip import PipProvider
from depaudit.providers.python_poetry import PoetryProvider

logger = get_logger(__name__)

# Files that describe a project directory rather than standing on their own
MANIFEST_FILES = ("package.json", "pyproject.toml", "requirements.txt", "go.mod")

SUPPORTED_ECOSYSTEMS = ("Node.js (npm/pnpm/yarn)", "Go (modules)", "Python (Poetry, pip)")


@dataclass(frozen=True)
class ResolvedInput:
    """A scan target split into its directory and optional standalone lock file."""

    directory: Path
    standalone_lockfile: Path | None = None


def default_providers(command_timeout: float | None = None) -> tuple[EcosystemProvider, ...]:
    """Build the providers in detection precedence order."""
    kwargs = {} if command_timeout is None else {"command_timeout": command_timeout}
    return (
        NodeProvider(**kwargs),
        GoProvider(**kwargs),
        PoetryProvider(**kwargs),
        PipProvider(**kwargs),
    )


PROVIDERS: tuple[EcosystemProvider, ...] = default_providers()


def get_supported_filenames(
    providers: tuple[EcosystemProvider, ...] = PROVIDERS,
) -> list[str]:
    """All file names accepted as scan input, in provider order."""
    names: list[str] = []
    for provider in providers:
        for name in provider.get_supported_manifests():
            if name not in names:
                names.append(name)
    return names


def get_provider(
    provider_id: str,
    providers: tuple[EcosystemProvider, ...] = PROVIDERS,
) -> EcosystemProvider:
    for provider in providers:
        if provider.provider_id == provider_id:
            return provider
    raise KeyError(f"Unknown provider: {provider_id}")


def resolve_input(
    path: Path,
    providers: tuple[EcosystemProvider, ...] = PROVIDERS,
) -> ResolvedInput:
    """Classify a scan target.

    Directories are scanned as-is. A manifest file stands for its directory.
    Any other supported file (lock files, or names carrying a temporary
    prefix) is kept as a standalone lock file to parse directly.

    Raises:
        UnsupportedFileError: If a file name matches no supported name.
    """
    path = Path(path)
    if not path.exists():
        raise ScanTargetNotFoundError(str(path))
    if not path.is_file():
        return ResolvedInput(directory=path)

    supported = get_supported_filenames(providers)
    if match_file_name(path.name, supported) is None:
        raise UnsupportedFileError(path.name, supported)

    if path.name in MANIFEST_FILES:
        return ResolvedInput(directory=path.parent)
    return ResolvedInput(directory=path.parent, standalone_lockfile=path)


def detect_provider(
    directory: Path,
    standalone_lockfile: Path | None = None,
    providers: tuple[EcosystemProvider, ...] = PROVIDERS,
) -> tuple[EcosystemProvider, EcosystemDetection]:
    """Select exactly one provider for a scan.

    A standalone lock file goes to the provider that owns its file name.
    Otherwise providers are asked in precedence order and the first match
    wins.

    Raises:
        EcosystemNotDetectedError: If no provider recognizes the directory.
    """
    if standalone_lockfile is not None:
        for provider in providers:
            if provider.owns_file(standalone_lockfile.name):
                detection = provider.standalone_detection(standalone_lockfile)
                logger.debug(f"Standalone {standalone_lockfile.name} handled by {provider.provider_id}")
                return provider, detection

    for provider in providers:
        detection = provider.detect(directory)
        if detection is not None:
            logger.debug(f"Detected {detection.label} via {detection.confidence.value}")
            return provider, detection

    raise EcosystemNotDetectedError(str(directory), list(SUPPORTED_ECOSYSTEMS))
