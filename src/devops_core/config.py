"""Server settings and Azure DevOps connection configuration.

Two layers:
- Settings: process-wide tuning (thresholds, batch sizes, API version),
  read from DEVOPS_MCP_* environment variables or a .env file.
- AzureDevOpsConfig: organization, project and PAT, read from a
  .azure-devops.json file next to (or above) the working directory.
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("devops-mcp.config")

CONFIG_FILE_NAME = ".azure-devops.json"


class Settings(BaseSettings):
    """Server settings. Every field can be overridden as DEVOPS_MCP_<NAME>."""

    model_config = SettingsConfigDict(
        env_prefix="DEVOPS_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Explicit path to a .azure-devops.json file (skips directory discovery)
    config_path: Optional[str] = None

    # Backend
    api_version: str = "7.1"
    request_timeout: float = 30.0
    fetch_batch_size: int = 200  # /wit/workitems accepts at most 200 IDs per call
    default_wiql_top: int = 200  # keeps WIQL below the 20,000 item limit (VS402337)
    default_page_size: int = 50

    # Response shaping, in UTF-8 bytes of the serialized result
    token_limit_bytes: int = 200_000
    size_warning_bytes: int = 150_000
    summary_threshold_items: int = 20

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


def is_azure_devops_hostname(hostname: str) -> bool:
    """Check that a hostname belongs to Azure DevOps."""
    return (
        hostname == "dev.azure.com"
        or hostname.endswith(".dev.azure.com")
        or hostname.endswith(".visualstudio.com")
    )


def validate_organization_url(organization_url: str) -> str:
    """Validate an organization URL before a PAT is ever sent to it.

    Raises:
        ValueError: If the URL is malformed, not HTTPS, or not an Azure DevOps host
    """
    parsed = urlparse(organization_url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid organization URL format: '{organization_url}' is not a valid URL")

    if parsed.scheme != "https":
        raise ValueError(
            f"Security error: organizationUrl must use HTTPS (got '{parsed.scheme}:'). "
            f"PAT tokens must not be transmitted over unencrypted connections."
        )

    if not is_azure_devops_hostname(parsed.hostname):
        raise ValueError(
            f"Security error: organizationUrl hostname '{parsed.hostname}' is not a recognized "
            f"Azure DevOps domain. Expected: dev.azure.com, *.visualstudio.com, or *.dev.azure.com."
        )

    return organization_url.rstrip("/")


class AzureDevOpsConfig(BaseModel):
    """Connection details for one Azure DevOps project."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    organization_url: str = Field(..., alias="organizationUrl", min_length=1)
    project: str = Field(..., min_length=1)
    pat: SecretStr
    description: Optional[str] = None

    @field_validator("organization_url")
    @classmethod
    def check_organization_url(cls, value: str) -> str:
        return validate_organization_url(value)

    @field_validator("pat")
    @classmethod
    def check_pat(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("pat must not be empty")
        return value


def load_config_from_path(config_path) -> Optional[AzureDevOpsConfig]:
    """Load a configuration file, returning None (and logging why) on failure."""
    path = Path(config_path).expanduser().resolve()
    if not path.is_file():
        logger.info(f"No Azure DevOps config found at {path}")
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = AzureDevOpsConfig.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to load Azure DevOps config from {path}: {e}")
        return None

    logger.info(f"Loaded Azure DevOps config from {path} (project: {config.project})")
    return config


def find_local_config(start_directory=None) -> Optional[AzureDevOpsConfig]:
    """Search the start directory and its parents for .azure-devops.json."""
    start = Path(start_directory or Path.cwd()).resolve()

    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            config = load_config_from_path(candidate)
            if config:
                return config

    logger.warning(f"No {CONFIG_FILE_NAME} found in {start} or its parent directories")
    return None


def load_config(settings: Settings, start_directory=None) -> Optional[AzureDevOpsConfig]:
    """Resolve the connection config: explicit path first, then discovery."""
    if settings.config_path:
        config = load_config_from_path(settings.config_path)
        if config:
            return config
        logger.warning(f"Could not load config from {settings.config_path}, falling back to discovery")

    return find_local_config(start_directory)
