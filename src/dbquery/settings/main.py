import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_test_mode() -> bool:
    """Check if the application is running in test mode.

    Test mode is controlled by the DBQUERY_TEST_MODE environment variable.
    In test mode the ``.env`` file is ignored so test runs never pick up
    a developer's local configuration.

    Returns:
        bool: True if DBQUERY_TEST_MODE="true" (case-insensitive), False otherwise
    """
    return os.getenv("DBQUERY_TEST_MODE", "").lower() == "true"


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DBQUERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    project_dir: Path = Field(
        default=Path("dbcube"),
        description="Root directory for computed field and trigger registries, "
                    "trigger handler modules and trigger logs. Relative paths are "
                    "resolved against the current working directory."
    )
    engine_command: str = Field(
        default="query_engine",
        min_length=1,
        description="Executable launched by the subprocess engine client"
    )
    engine_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=3600,
        description="Maximum time a single engine invocation may take"
    )
    primary_key: str = Field(
        default="id",
        min_length=1,
        description="Column used by find() and to narrow per-row update/delete requests"
    )
    trigger_handler_name: str = Field(
        default="handle",
        min_length=1,
        description="Callable looked up in each trigger handler module"
    )
    pretty_errors: bool = Field(
        default=True,
        description="Write a colored, source-located rendition of engine failures to stderr"
    )
    log_level: str = Field(
        default="INFO",
        description="Base log level used by setup_logging"
    )
    connect_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts for Database.connect() when the engine is unreachable"
    )
    connect_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Initial backoff delay between connect attempts"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level '{v}'")
        return level

    @property
    def project_path(self) -> Path:
        """Absolute project directory."""
        return self.project_dir if self.project_dir.is_absolute() else Path.cwd() / self.project_dir

    @property
    def computes_dir(self) -> Path:
        return self.project_path / "computes"

    @property
    def triggers_dir(self) -> Path:
        return self.project_path / "triggers"

    @property
    def trigger_logs_dir(self) -> Path:
        return self.project_path / "logs" / "triggers"


_settings: Optional[_Settings] = None


def get_settings(force_reload: bool = False) -> _Settings:
    """Get the settings singleton.

    Args:
        force_reload: Build a fresh instance from the environment

    Returns:
        _Settings: Shared settings instance

    Example:
        >>> settings = get_settings()
        >>> settings.engine_command
        'query_engine'
    """
    global _settings

    if _settings is None or force_reload:
        if is_test_mode():
            _settings = _Settings(_env_file=None)
        else:
            _settings = _Settings()

    return _settings


def _reload_settings() -> _Settings:
    """Force reload settings from the environment."""
    global _settings
    _settings = None
    return get_settings(force_reload=True)
