"""Settings for the engine client and the MCP server.

Provides centralized configuration using Pydantic BaseSettings
with environment variable (and ``.env`` file) support.
"""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_DOCKER_SOCKET
from .exceptions import ConfigurationError


class EngineSettings(BaseSettings):
    """Container engine connection configuration."""

    docker_socket: str = Field(
        DEFAULT_DOCKER_SOCKET,
        alias="DOCKER_SOCKET",
        description="Path of the engine's Unix control socket",
    )

    docker_api_version: str = Field(
        "auto",
        alias="DOCKER_API_VERSION",
        description="Engine API version, or 'auto' to negotiate on first use",
    )

    docker_client_timeout: int = Field(
        30, gt=0, alias="DOCKER_CLIENT_TIMEOUT", description="Transport timeout in seconds"
    )

    docker_stop_timeout: int = Field(
        10,
        ge=0,
        alias="DOCKER_STOP_TIMEOUT",
        description="Seconds the engine waits before killing a container on stop/restart",
    )

    telemetry_buffer_size: int = Field(
        500, gt=0, alias="TELEMETRY_BUFFER_SIZE", description="In-memory telemetry events kept"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def base_url(self) -> str:
        """Docker SDK base URL for the configured socket."""
        return f"unix://{self.docker_socket}"


class ServerSettings(BaseSettings):
    """MCP server configuration."""

    host: str = Field(
        default="127.0.0.1", alias="FASTMCP_HOST"
    )  # Use 0.0.0.0 for container deployment
    port: int = Field(default=8000, ge=1, le=65535, alias="FASTMCP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str | None = Field(default=None, alias="LOG_DIR")
    log_file_size_mb: int = Field(default=10, ge=1, le=100, alias="LOG_FILE_SIZE_MB")
    slow_request_threshold_ms: float = Field(
        default=5000.0, gt=0, alias="SLOW_REQUEST_THRESHOLD_MS"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


def load_engine_settings(**overrides) -> EngineSettings:
    """Load engine settings from the environment, raising ConfigurationError on bad values."""
    try:
        return EngineSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid engine settings: {e}") from e


def load_server_settings(**overrides) -> ServerSettings:
    """Load server settings from the environment, raising ConfigurationError on bad values."""
    try:
        return ServerSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid server settings: {e}") from e
