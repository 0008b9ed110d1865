"""Exception definitions module."""

from depaudit.core.exceptions.errors import (
    AuthenticationError,
    ConfigurationError,
    DepAuditError,
    DependencyParseError,
    EcosystemNotDetectedError,
    HTTPStatusError,
    IgnoreFileError,
    LockfileCommandError,
    ManifestNotFoundError,
    NetworkError,
    RateLimitError,
    ResponseFormatError,
    ScanTargetNotFoundError,
    SourceError,
    UnsupportedFileError,
)

__all__ = [
    "DepAuditError",
    "ScanTargetNotFoundError",
    "UnsupportedFileError",
    "EcosystemNotDetectedError",
    "ManifestNotFoundError",
    "LockfileCommandError",
    "DependencyParseError",
    "SourceError",
    "NetworkError",
    "HTTPStatusError",
    "RateLimitError",
    "AuthenticationError",
    "ResponseFormatError",
    "ConfigurationError",
    "IgnoreFileError",
]
