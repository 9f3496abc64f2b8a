"""
Application Configuration Module.

Manages application settings and environment variables using Pydantic for validation.
Provides centralized configuration management with type safety and validation.

Features:
- Environment variable loading and validation
- Secure credential management
- GitHub server base URL normalization
- Custom CA bundle discovery
- Immutable run configuration merged from environment and CLI flags
"""

import os
from typing import FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logger import LogManager

DEFAULT_SERVER_BASE = "https://api.github.com"
ENTERPRISE_API_SUFFIX = "/api/v3"

OutputFormat = Literal["table", "json", "csv"]


class LogSettings(BaseSettings):
    """
    Logging settings, loaded at import time.

    Attributes:
        app_name (str): Name of the application, used as logger name
        dev (bool): Development mode, also logs to a rotating file
        log_dir (str): Directory for log files
        log_level (int): Logging level (default: info)
    """

    app_name: str = Field(default="repo-inventory", description="Application name")
    dev: bool = Field(default=False, description="Development mode")
    log_dir: str = Field(default="logs", description="Logging directory")
    log_level: int = Field(default=20, description="Logging level, default info")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )


class Settings(BaseSettings):
    """
    GitHub connection settings with validation.

    Attributes:
        github_token (SecretStr): GitHub API authentication token
        github_server_base (str): GitHub server or API base URL
        github_ssl_cert (Optional[str]): Path to a custom CA bundle
        github_ssl_cert_name (str): Bundle name searched under ``ssl/`` when
            no explicit path is given
        github_excluded_users (str): Comma-separated logins hidden from the
            collaborator column
    """

    github_token: SecretStr = Field(..., description="GitHub token")
    github_server_base: str = Field(
        default=DEFAULT_SERVER_BASE, description="GitHub server base URL"
    )
    github_ssl_cert: Optional[str] = Field(
        default=None, description="Path to a custom CA bundle"
    )
    github_ssl_cert_name: str = Field(
        default="ca-bundle", description="CA bundle name looked up under ssl/"
    )
    github_excluded_users: str = Field(
        default="", description="Comma-separated logins to exclude"
    )

    @property
    def api_base_url(self) -> str:
        """
        Get the REST API base URL for the configured server.

        GitHub Enterprise servers serve the REST API under ``/api/v3``.

        Returns:
            str: API base URL
        """
        return resolve_base_url(self.github_server_base)

    @property
    def excluded_users(self) -> List[str]:
        """
        Get excluded user logins from configuration.

        Returns:
            List[str]: Cleaned, non-empty logins
        """
        return [
            login.strip()
            for login in self.github_excluded_users.split(",")
            if login.strip()
        ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )


class InventoryConfig(BaseModel):
    """Immutable configuration for one inventory run."""

    model_config = ConfigDict(frozen=True)

    token: SecretStr
    base_url: str = DEFAULT_SERVER_BASE
    ssl_cert_path: Optional[str] = None
    output_format: OutputFormat = "table"
    output_file: Optional[str] = None
    fetch_all: bool = False
    all_orgs: bool = False
    # Accepted on the command line but not used by the pipeline
    search_repos: bool = False
    max_count: Optional[int] = None
    excluded_users: FrozenSet[str] = frozenset()

    @field_validator("max_count")
    def ensure_positive_count(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("max_count must be a positive integer")
        return v


def resolve_base_url(server_base: str) -> str:
    """
    Normalize a GitHub server base into a REST API base URL.

    Args:
        server_base (str): Value of GITHUB_SERVER_BASE

    Returns:
        str: ``https://api.github.com`` unchanged, otherwise the server base
            with ``/api/v3`` appended unless already present
    """
    if server_base == DEFAULT_SERVER_BASE:
        return server_base
    if server_base.endswith(ENTERPRISE_API_SUFFIX):
        return server_base
    return server_base.rstrip("/") + ENTERPRISE_API_SUFFIX


def find_ssl_cert(settings: Settings) -> Optional[str]:
    """
    Locate the CA bundle to verify the GitHub server certificate with.

    An explicit GITHUB_SSL_CERT is used when the file exists. Otherwise
    ``ssl/<name>.pem`` is looked up in the working directory, then next to
    the application sources.

    Args:
        settings (Settings): Loaded settings

    Returns:
        Optional[str]: Path to the bundle, or None to use the system store
    """
    if settings.github_ssl_cert:
        if os.path.isfile(settings.github_ssl_cert):
            return settings.github_ssl_cert
        logger.warning(
            {
                "message": "SSL certificate not found, using system store",
                "path": settings.github_ssl_cert,
            }
        )
        return None

    cert_file = f"{settings.github_ssl_cert_name}.pem"
    for base_dir in (os.getcwd(), os.path.dirname(os.path.abspath(__file__))):
        candidate = os.path.join(base_dir, "ssl", cert_file)
        if os.path.isfile(candidate):
            return candidate
    return None


log_settings = LogSettings()

# Initialize logging configuration
logger = LogManager(
    app_name=log_settings.app_name,
    log_dir=log_settings.log_dir,
    development=log_settings.dev,
    level=log_settings.log_level,
).logger
