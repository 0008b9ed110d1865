"""Custom exception definitions for depaudit."""

from typing import Any


class DepAuditError(Exception):
    """Base exception for all depaudit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Input errors


class ScanTargetNotFoundError(DepAuditError):
    """Raised when the path to scan does not exist."""

    def __init__(self, path: str, details: dict[str, Any] | None = None) -> None:
        self.path = path
        super().__init__(f"Path not found: {path}", details)


class UnsupportedFileError(DepAuditError):
    """Raised when a file path does not name a recognized manifest or lock file."""

    def __init__(
        self,
        file_name: str,
        supported: list[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unsupported file error.

        Args:
            file_name: The rejected file name.
            supported: All recognized file names.
            details: Additional error details.
        """
        self.file_name = file_name
        self.supported = list(supported)
        super().__init__(
            f"Unsupported file: {file_name}. Supported files: {', '.join(supported)}",
            details,
        )


class EcosystemNotDetectedError(DepAuditError):
    """Raised when no provider recognizes a directory."""

    def __init__(
        self,
        directory: str,
        supported: list[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        self.directory = directory
        self.supported = list(supported)
        super().__init__(
            f"No supported ecosystem detected in {directory}. "
            f"Supported: {', '.join(supported)}",
            details,
        )


class ManifestNotFoundError(DepAuditError):
    """Raised when a lock-file operation needs a manifest that is missing."""

    def __init__(
        self,
        file_name: str,
        directory: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.file_name = file_name
        self.directory = directory
        super().__init__(f"{file_name} not found in {directory}", details)


# External tool errors


class LockfileCommandError(DepAuditError):
    """Raised when a package-manager binary fails to create or validate a lock file."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize lockfile command error.

        Args:
            message: Error message.
            command: Command and arguments that were run.
            exit_code: Process exit code, if the process ran.
            stderr: Captured standard error, kept verbatim.
            details: Additional error details.
        """
        details = details or {}
        if command:
            details["command"] = " ".join(command)
        if exit_code is not None:
            details["exit_code"] = exit_code
        self.command = command or []
        self.exit_code = exit_code
        self.stderr = stderr or ""
        super().__init__(message, details)

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr.strip():
            return f"{base}\n{self.stderr.strip()}"
        return base


# Parse errors


class DependencyParseError(DepAuditError):
    """Raised when a manifest or lock file cannot be parsed."""

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if file_name:
            details["file"] = file_name
        self.file_name = file_name
        super().__init__(message, details)


# Network errors


class SourceError(DepAuditError):
    """Base class for failures talking to a vulnerability or registry source."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if source:
            details["source"] = source
        self.source = source
        super().__init__(message, details)


class NetworkError(SourceError):
    """Connection failure or request timeout."""


class HTTPStatusError(SourceError):
    """Raised for an HTTP error status."""

    def __init__(
        self,
        message: str,
        status: int,
        retry_after: float | None = None,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize HTTP status error.

        Args:
            message: Error message.
            status: HTTP status code.
            retry_after: Parsed Retry-After delay in seconds, if sent.
            source: Source name.
            details: Additional error details.
        """
        details = details or {}
        details["status"] = status
        self.status = status
        self.retry_after = retry_after
        super().__init__(message, source, details)


class RateLimitError(HTTPStatusError):
    """The source refused the request because of rate limiting."""

    def __init__(
        self,
        message: str,
        status: int = 429,
        retry_after: float | None = None,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status, retry_after, source, details)


class AuthenticationError(SourceError):
    """Missing or rejected credentials."""


class ResponseFormatError(SourceError):
    """The source answered with a payload of unexpected shape."""


# Configuration errors


class ConfigurationError(DepAuditError):
    """Exception raised for configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message.
            config_key: Configuration key that caused the error.
            details: Additional error details.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)


class IgnoreFileError(ConfigurationError):
    """Raised when the ignore-list file is unreadable or invalid."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = path
        super().__init__(message, details=details)
