"""Ecosystem providers and the detector that selects one per scan."""

from depaudit.providers.base import EcosystemProvider
from depaudit.providers.go import GoProvider
from depaudit.providers.node import NodeProvider
from depaudit.providers.python_pip import PipProvider
from depaudit.providers.python_poetry import PoetryProvider
from depaudit.providers.registry import (
    MANIFEST_FILES,
    PROVIDERS,
    ResolvedInput,
    default_providers,
    detect_provider,
    get_provider,
    get_supported_filenames,
    resolve_input,
)

__all__ = [
    "EcosystemProvider",
    "GoProvider",
    "MANIFEST_FILES",
    "NodeProvider",
    "PROVIDERS",
    "PipProvider",
    "PoetryProvider",
    "ResolvedInput",
    "default_providers",
    "detect_provider",
    "get_provider",
    "get_supported_filenames",
    "resolve_input",
]
