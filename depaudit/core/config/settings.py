"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from depaudit.core.config.loader import ConfigLoader
from depaudit.core.exceptions.errors import ConfigurationError

DEFAULT_CONFIG_FILE = "depaudit.yaml"


class ScanSettings(BaseSettings):
    """Scan pipeline settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_SCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    concurrency: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Concurrent per-package advisory lookups",
    )
    maintenance_concurrency: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Concurrent registry lookups for the maintenance check",
    )
    include_dev: bool = Field(
        default=False,
        description="Include development dependencies",
    )
    ignore_file_name: str = Field(
        default=".vuln-ignore.json",
        description="Ignore-list file looked up in the scanned directory",
    )
    command_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Timeout in seconds for package-manager commands",
    )


class OSVSettings(BaseSettings):
    """OSV bulk source settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_OSV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = Field(
        default="https://api.osv.dev/v1",
        description="OSV API base URL",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Queries per querybatch request",
    )
    hydrate: bool = Field(
        default=True,
        description="Fetch full records for batch results that only carry ids",
    )


class GitHubSettings(BaseSettings):
    """GitHub Advisory Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    token: str | None = Field(
        default=None,
        description="GitHub token used for the GraphQL API",
    )
    graphql_url: str = Field(
        default="https://api.github.com/graphql",
        description="GitHub GraphQL endpoint",
    )
    page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Advisories requested per package",
    )


class RetrySettings(BaseSettings):
    """HTTP retry and timeout settings shared by all sources."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts after the first request",
    )
    min_delay: float = Field(
        default=1.0,
        ge=0,
        description="Initial backoff delay in seconds",
    )
    max_delay: float = Field(
        default=30.0,
        ge=0,
        description="Backoff delay cap in seconds",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="WARNING",
        description="Log level",
    )
    format: str = Field(
        default="[%(name)s] %(message)s",
        description="Log format string",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    use_rich: bool = Field(
        default=True,
        description="Use Rich console for output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = str(v).upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v: str | None) -> Path | None:
        """Validate and convert file to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPAUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    scan: ScanSettings = Field(default_factory=ScanSettings)
    osv: OSVSettings = Field(default_factory=OSVSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Settings instance with values from YAML.

        Raises:
            ConfigurationError: If the file is unreadable or holds invalid values.
        """
        loader = ConfigLoader(path)
        loader.load()

        try:
            return cls(
                scan=ScanSettings(**loader.get_section("scan")),
                osv=OSVSettings(**loader.get_section("osv")),
                github=GitHubSettings(**loader.get_section("github")),
                retry=RetrySettings(**loader.get_section("retry")),
                logging=LoggingSettings(**loader.get_section("logging")),
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid settings in {path}",
                config_key=str(path),
                details={"errors": e.error_count()},
            ) from e

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from default locations.

        Priority: Environment variables > .env > depaudit.yaml > defaults

        Returns:
            Settings instance.
        """
        default_path = Path.cwd() / DEFAULT_CONFIG_FILE
        if default_path.exists():
            return cls.from_yaml(default_path)

        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings singleton.
    """
    return Settings.load()
