"""Centralized constants for fleet-stacks to eliminate duplicate strings."""

# Docker Labels
DOCKER_COMPOSE_PROJECT = "com.docker.compose.project"
DOCKER_COMPOSE_SERVICE = "com.docker.compose.service"
DOCKER_COMPOSE_CONFIG_FILES = "com.docker.compose.project.config_files"
DOCKER_COMPOSE_WORKING_DIR = "com.docker.compose.project.working_dir"

# Engine defaults
DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"
DEFAULT_IMAGE_TAG = "latest"
SHORT_ID_LENGTH = 12

# Owning-group identifier for containers without a compose project label
STANDALONE_PROJECT = "standalone"

# Telemetry
TELEMETRY_SOURCE = "orchestration"
TELEMETRY_METRIC_STACK_ACTION = "stack.action"
TELEMETRY_UNIT_CONTAINERS = "containers"
DEFAULT_TELEMETRY_LIMIT = 50

# Environment Variables
ENV_FASTMCP_HOST = "FASTMCP_HOST"
ENV_FASTMCP_PORT = "FASTMCP_PORT"
ENV_LOG_LEVEL = "LOG_LEVEL"

# Logging
LOG_INIT_MESSAGE = "Logging system initialized"
SERVER_LOG_FILE = "fleet_stacks.log"
MIDDLEWARE_LOG_FILE = "middleware.log"

# Security-related field names for filtering
SECURITY_FIELDS = [
    "password",
    "passwd",
    "pwd",
    "token",
    "access_token",
    "refresh_token",
    "api_token",
    "key",
    "api_key",
    "private_key",
    "secret_key",
    "secret",
    "client_secret",
    "auth_secret",
    "credential",
    "auth",
    "authorization",
    "certificate",
]
