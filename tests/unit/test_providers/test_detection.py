"""Tests for input resolution and ecosystem detection."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from depaudit.core.exceptions.errors import (
    EcosystemNotDetectedError,
    ScanTargetNotFoundError,
    UnsupportedFileError,
)
from depaudit.models.dependency import DetectionConfidence, EcosystemDetection
from depaudit.providers.registry import (
    MANIFEST_FILES,
    detect_provider,
    get_provider,
    get_supported_filenames,
    resolve_input,
)

POETRY_PYPROJECT = '[tool.poetry]\nname = "demo"\n\n[tool.poetry.dependencies]\npython = "^3.11"\n'


def _write(directory: Path, name: str, content: str = "") -> Path:
    path = directory / name
    path.write_text(content)
    return path


class TestResolveInput:
    """Tests for resolve_input."""

    def test_directory(self, temp_dir: Path) -> None:
        """Test that a directory is scanned as-is."""
        resolved = resolve_input(temp_dir)

        assert resolved.directory == temp_dir
        assert resolved.standalone_lockfile is None

    def test_manifest_stands_for_directory(self, temp_dir: Path) -> None:
        """Test that manifest files resolve to their directory."""
        for name in MANIFEST_FILES:
            path = _write(temp_dir, name)
            resolved = resolve_input(path)
            assert resolved.directory == temp_dir
            assert resolved.standalone_lockfile is None

    def test_lockfile_is_standalone(self, temp_dir: Path) -> None:
        """Test that a lock file path is parsed on its own."""
        path = _write(temp_dir, "pnpm-lock.yaml")

        resolved = resolve_input(path)

        assert resolved.standalone_lockfile == path

    def test_prefixed_temp_name(self, temp_dir: Path) -> None:
        """Test that uploads with a random prefix are still recognized."""
        path = _write(temp_dir, "tmp8f2a-package-lock.json")

        resolved = resolve_input(path)

        assert resolved.standalone_lockfile == path

    def test_unsupported_file(self, temp_dir: Path) -> None:
        """Test that unknown file names are rejected with the supported list."""
        path = _write(temp_dir, "Gemfile.lock")

        with pytest.raises(UnsupportedFileError) as exc_info:
            resolve_input(path)

        assert "package-lock.json" in exc_info.value.supported
        assert "Gemfile.lock" in str(exc_info.value)

    def test_missing_path(self, temp_dir: Path) -> None:
        """Test that a missing path raises ScanTargetNotFoundError."""
        with pytest.raises(ScanTargetNotFoundError):
            resolve_input(temp_dir / "nope")


class TestDetectProvider:
    """Tests for detect_provider precedence."""

    def test_npm_default(self, temp_dir: Path) -> None:
        """Test that a bare package.json defaults to npm."""
        _write(temp_dir, "package.json", "{}")

        provider, detection = detect_provider(temp_dir)

        assert provider.provider_id == "node"
        assert detection.name == "npm"
        assert detection.confidence == DetectionConfidence.DEFAULT

    def test_pnpm_lockfile(self, temp_dir: Path) -> None:
        """Test that pnpm-lock.yaml selects pnpm."""
        _write(temp_dir, "package.json", "{}")
        _write(temp_dir, "pnpm-lock.yaml", "lockfileVersion: '9.0'\n")

        _, detection = detect_provider(temp_dir)

        assert detection.name == "pnpm"
        assert detection.confidence == DetectionConfidence.LOCKFILE

    def test_yarn_berry_lockfile(self, temp_dir: Path) -> None:
        """Test that a berry yarn.lock is labelled with its variant."""
        _write(temp_dir, "package.json", "{}")
        _write(temp_dir, "yarn.lock", "__metadata:\n  version: 6\n")

        _, detection = detect_provider(temp_dir)

        assert detection.label == "yarn (berry)"

    def test_package_manager_field(self, temp_dir: Path) -> None:
        """Test that the packageManager field is used without a lock file."""
        _write(temp_dir, "package.json", json.dumps({"packageManager": "yarn@1.22.19"}))

        _, detection = detect_provider(temp_dir)

        assert detection.name == "yarn"
        assert detection.variant == "classic"
        assert detection.confidence == DetectionConfidence.PACKAGE_MANAGER_FIELD

    def test_pnpm_workspace(self, temp_dir: Path) -> None:
        """Test that a pnpm workspace file selects pnpm."""
        _write(temp_dir, "package.json", "{}")
        _write(temp_dir, "pnpm-workspace.yaml", "packages:\n  - 'packages/*'\n")

        _, detection = detect_provider(temp_dir)

        assert detection.name == "pnpm"
        assert detection.confidence == DetectionConfidence.WORKSPACE

    def test_go(self, temp_dir: Path) -> None:
        """Test Go module detection."""
        _write(temp_dir, "go.mod", "module example.com/app\n")

        provider, detection = detect_provider(temp_dir)

        assert provider.provider_id == "go"
        assert detection.confidence == DetectionConfidence.MANIFEST

    def test_poetry_wins_over_pip(self, temp_dir: Path) -> None:
        """Test that Poetry is chosen when requirements.txt also exists."""
        _write(temp_dir, "pyproject.toml", POETRY_PYPROJECT)
        _write(temp_dir, "requirements.txt", "requests==2.31.0\n")

        provider, _ = detect_provider(temp_dir)

        assert provider.provider_id == "poetry"

    def test_pip_when_pyproject_is_not_poetry(self, temp_dir: Path) -> None:
        """Test that a PEP 621 pyproject.toml does not claim the project."""
        _write(temp_dir, "pyproject.toml", '[project]\nname = "demo"\n')
        _write(temp_dir, "requirements.txt", "requests==2.31.0\n")

        provider, _ = detect_provider(temp_dir)

        assert provider.provider_id == "pip"

    def test_poetry_lock_with_pep621_pyproject(self, temp_dir: Path) -> None:
        """Test that a poetry.lock claims the project even without [tool.poetry]."""
        _write(temp_dir, "pyproject.toml", '[project]\nname = "demo"\n')
        _write(temp_dir, "poetry.lock", '[[package]]\nname = "requests"\nversion = "2.31.0"\n')
        _write(temp_dir, "requirements.txt", "requests==2.31.0\n")

        provider, detection = detect_provider(temp_dir)

        assert provider.provider_id == "poetry"
        assert detection.confidence == DetectionConfidence.LOCKFILE

    def test_poetry_lock_without_pyproject(self, temp_dir: Path) -> None:
        """Test that a poetry.lock alone is enough to select Poetry."""
        _write(temp_dir, "poetry.lock", "")

        provider, _ = detect_provider(temp_dir)

        assert provider.provider_id == "poetry"

    @pytest.mark.parametrize("name", ["requirements.txt", "pyproject.toml"])
    def test_manifest_path_in_poetry_project(self, temp_dir: Path, name: str) -> None:
        """Test that a manifest path is detected through its whole directory."""
        _write(temp_dir, "pyproject.toml", POETRY_PYPROJECT)
        _write(temp_dir, "requirements.txt", "requests==2.31.0\n")

        resolved = resolve_input(temp_dir / name)
        provider, detection = detect_provider(resolved.directory, resolved.standalone_lockfile)

        assert provider.provider_id == "poetry"
        assert detection.name == "poetry"

    def test_node_wins_over_python(self, temp_dir: Path) -> None:
        """Test the provider precedence order."""
        _write(temp_dir, "package.json", "{}")
        _write(temp_dir, "requirements.txt", "requests==2.31.0\n")

        provider, _ = detect_provider(temp_dir)

        assert provider.provider_id == "node"

    def test_nothing_detected(self, temp_dir: Path) -> None:
        """Test that an empty directory raises EcosystemNotDetectedError."""
        with pytest.raises(EcosystemNotDetectedError) as exc_info:
            detect_provider(temp_dir)

        assert str(temp_dir) in str(exc_info.value)

    def test_standalone_lockfile_owner(self, temp_dir: Path) -> None:
        """Test that a standalone lock file goes to the provider owning its name."""
        lockfile = _write(temp_dir, "poetry.lock")

        provider, detection = detect_provider(temp_dir, lockfile)

        assert provider.provider_id == "poetry"
        assert detection.name == "poetry"
        assert detection.confidence == DetectionConfidence.LOCKFILE

    def test_standalone_yarn_variant(self, temp_dir: Path) -> None:
        """Test that a standalone yarn.lock reports its variant."""
        lockfile = _write(temp_dir, "yarn.lock", "# yarn lockfile v1\n")

        _, detection = detect_provider(temp_dir, lockfile)

        assert detection.label == "yarn (classic)"


class TestStandaloneDetection:
    """Tests for EcosystemProvider.standalone_detection."""

    @pytest.mark.parametrize(
        ("provider_id", "file_name", "content", "label"),
        [
            ("node", "package-lock.json", "{}", "npm"),
            ("node", "npm-shrinkwrap.json", "{}", "npm"),
            ("node", "pnpm-lock.yaml", "lockfileVersion: '9.0'\n", "pnpm"),
            ("node", "yarn.lock", "__metadata:\n  version: 6\n", "yarn (berry)"),
            ("go", "go.sum", "", "Go modules"),
            ("poetry", "poetry.lock", "", "poetry"),
        ],
    )
    def test_labels(
        self, temp_dir: Path, provider_id: str, file_name: str, content: str, label: str
    ) -> None:
        """Test the detection each provider reports for its own files."""
        path = _write(temp_dir, file_name, content)

        detection = get_provider(provider_id).standalone_detection(path)

        assert detection.provider_id == provider_id
        assert detection.label == label
        assert detection.confidence == DetectionConfidence.LOCKFILE

    def test_unreadable_yarn_lock_is_classic(self, temp_dir: Path) -> None:
        """Test that a yarn.lock that cannot be read defaults to classic."""
        detection = get_provider("node").standalone_detection(temp_dir / "yarn.lock")

        assert detection.label == "yarn (classic)"

    def test_detect_provider_delegates(self, temp_dir: Path) -> None:
        """Test that detect_provider asks the owning provider for its detection."""
        lockfile = _write(temp_dir, "pnpm-lock.yaml")
        provider = MagicMock()
        provider.owns_file.return_value = True
        provider.standalone_detection.return_value = EcosystemDetection(
            provider_id="custom", name="custom", confidence=DetectionConfidence.LOCKFILE
        )

        chosen, detection = detect_provider(temp_dir, lockfile, providers=(provider,))

        assert chosen is provider
        assert detection.name == "custom"
        provider.standalone_detection.assert_called_once_with(lockfile)


class TestRegistryHelpers:
    """Tests for registry lookup helpers."""

    def test_supported_filenames_unique(self) -> None:
        """Test that every supported name appears once."""
        names = get_supported_filenames()

        assert len(names) == len(set(names))
        assert {"go.sum", "poetry.lock", "requirements.txt", "yarn.lock"} <= set(names)

    def test_get_provider(self) -> None:
        """Test looking a provider up by id."""
        assert get_provider("go").provider_id == "go"
        with pytest.raises(KeyError):
            get_provider("cargo")
