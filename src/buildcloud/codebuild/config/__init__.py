"""
Configuration module for build-service launches.
Loads the cloud definition from YAML and service endpoints from the environment.
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from buildcloud.codebuild.errors import ConfigError

DEFAULT_AGENT_TIMEOUT = 120
DEFAULT_ENVIRONMENT_TYPE = "LINUX_CONTAINER"
DEFAULT_COMPUTE_TYPE = "BUILD_GENERAL1_SMALL"

# camelCase spellings accepted in cloud files
_KEY_ALIASES = {
    "projectName": "project_name",
    "codeBuildProjectName": "project_name",
    "dockerImage": "docker_image",
    "environmentType": "environment_type",
    "computeType": "compute_type",
    "buildSpec": "build_spec",
    "controllerIdentity": "controller_identity",
    "proxyCredentials": "proxy_credentials",
    "noKeepAlive": "no_keep_alive",
    "disableHttpsCertValidation": "disable_https_cert_validation",
    "webSocket": "web_socket",
    "noReconnect": "no_reconnect",
    "agentTimeout": "agent_timeout",
}


@dataclass(frozen=True)
class CloudConfig:
    """Immutable definition of one build-service cloud, shared by all launches."""

    project_name: str
    docker_image: str
    url: str
    build_spec: str = ""
    environment_type: str = DEFAULT_ENVIRONMENT_TYPE
    compute_type: str = DEFAULT_COMPUTE_TYPE
    direct: str = ""
    controller_identity: str = ""
    protocols: str = ""
    proxy_credentials: str = ""
    no_keep_alive: bool = False
    disable_https_cert_validation: bool = False
    tunnel: str = ""
    web_socket: bool = False
    no_reconnect: bool = False
    agent_timeout: int = DEFAULT_AGENT_TIMEOUT

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            # YAML "false" is a string and would read as true
            if f.type in ("bool", bool) and not isinstance(value, bool):
                raise ConfigError(f"{f.name} must be true or false, got {value!r}")
            if f.type in ("str", str) and not isinstance(value, str):
                raise ConfigError(f"{f.name} must be a string, got {value!r}")
        if not self.project_name:
            raise ConfigError("project_name must be a non-empty string")
        if not self.docker_image:
            raise ConfigError("docker_image must be a non-empty string")
        timeout = self.agent_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError("agent_timeout must be a positive integer")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudConfig":
        """
        Build a CloudConfig from a mapping of settings.

        Args:
            data: Settings keyed by snake_case or camelCase names.

        Returns:
            CloudConfig instance.

        Raises:
            ConfigError: If keys are unknown or required values are missing.
        """
        if not isinstance(data, dict):
            raise ConfigError("cloud configuration must be a mapping")

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown cloud configuration key: {key}")
            if value is None:
                continue
            values[name] = value

        missing = [name for name in ("project_name", "docker_image", "url") if name not in values]
        if missing:
            raise ConfigError(f"Missing required cloud configuration keys: {', '.join(missing)}")

        return cls(**values)


def load_cloud_config(config_path: Path) -> CloudConfig:
    """
    Load a cloud definition from a YAML file.

    Args:
        config_path: Path to the YAML file. Required.

    Returns:
        CloudConfig instance.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Cloud configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    return CloudConfig.from_dict(data or {})


class ServiceConfig:
    """Load and validate build-service and controller endpoints from environment."""

    def __init__(self, env_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            env_file: Path to .env file. If None, looks for .env in the working directory.

        Raises:
            ConfigError: If BUILD_SERVICE_URL or BUILD_SERVICE_TOKEN is not set.
        """
        self._load_env_file(env_file)
        self.build_service_url = self._get_required_env("BUILD_SERVICE_URL")
        self.build_service_token = self._get_required_env("BUILD_SERVICE_TOKEN")
        try:
            self.timeout = int(os.getenv("BUILD_SERVICE_TIMEOUT", "30"))
        except ValueError as exc:
            raise ConfigError("BUILD_SERVICE_TIMEOUT must be an integer") from exc
        self.controller_url = os.getenv("CONTROLLER_URL")
        self.controller_user = os.getenv("CONTROLLER_USER")
        self.controller_token = os.getenv("CONTROLLER_TOKEN")

    @staticmethod
    def _load_env_file(env_file: Optional[Path]) -> None:
        """Load service settings from a .env file; exported variables take precedence."""
        env_path = Path(env_file) if env_file is not None else Path.cwd() / ".env"
        if env_path.is_file():
            load_dotenv(env_path, override=False)

    @staticmethod
    def _get_required_env(key: str) -> str:
        value = os.getenv(key)
        if not value or not value.strip():
            raise ConfigError(
                f"Required environment variable '{key}' is not set. "
                f"Add it to the .env file or export it."
            )
        return value.strip()


def get_service_config(env_file: Optional[Path] = None) -> ServiceConfig:
    """Get build-service endpoint configuration."""
    return ServiceConfig(env_file)
