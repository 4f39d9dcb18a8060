"""Client configuration management.

Reads connection settings from ``config/client.yaml`` with hard-coded
defaults, and lets the usual ``C8Y_*`` environment variables override the
credentials and base URL.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "client.yaml"

ENVIRONMENT_OVERRIDES: dict[str, tuple[str, ...]] = {
    "C8Y_BASEURL": ("connection", "base_url"),
    "C8Y_TENANT": ("auth", "tenant"),
    "C8Y_USER": ("auth", "username"),
    "C8Y_PASSWORD": ("auth", "password"),
    "C8Y_TOKEN": ("auth", "token"),
}


class ClientConfig:
    """Connection, authentication and serialization settings for the client."""

    DEFAULTS: dict[tuple[str, ...], Any] = {
        ("connection", "base_url"): "",
        ("connection", "timeout"): 30.0,
        ("connection", "verify_ssl"): True,
        ("auth", "tenant"): "",
        ("auth", "username"): "",
        ("auth", "password"): "",
        ("auth", "token"): "",
        ("requests", "processing_mode"): None,
        ("requests", "readonly_properties"): "config/readonly_properties.yaml",
    }

    def __init__(
        self,
        config_path: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        """Initialize configuration from YAML file and environment.

        Args:
            config_path: Path to client.yaml. Defaults to config/client.yaml
                        relative to project root.
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.environ = os.environ if environ is None else environ
        self.config: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            with self.config_path.open() as f:
                self.config = yaml.safe_load(f) or {}
                logger.info("Loaded client configuration from %s", self.config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s. Using defaults.", self.config_path)
            self.config = {}
        except yaml.YAMLError:
            logger.exception("Error parsing client configuration")
            self.config = {}

        if not isinstance(self.config, dict):
            logger.warning("Ignoring non-mapping client configuration in %s", self.config_path)
            self.config = {}

    def get(self, *keys: str) -> Any:
        """Get a value using nested keys, e.g. ``get("auth", "tenant")``.

        Environment overrides win over the file, the file over the defaults.
        """
        for variable, target in ENVIRONMENT_OVERRIDES.items():
            if target == keys and self.environ.get(variable):
                return self.environ[variable]

        value: Any = self.config
        for key in keys:
            if not isinstance(value, dict) or key not in value:
                return self.DEFAULTS.get(tuple(keys))
            value = value[key]

        if value is None:
            return self.DEFAULTS.get(tuple(keys))
        return value

    @property
    def base_url(self) -> str:
        """Tenant base URL without trailing slash."""
        return str(self.get("connection", "base_url")).rstrip("/")

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return float(self.get("connection", "timeout"))

    @property
    def verify_ssl(self) -> bool:
        """Whether TLS certificates are verified."""
        return bool(self.get("connection", "verify_ssl"))

    @property
    def tenant(self) -> str:
        """Tenant ID used as basic-auth username prefix."""
        return str(self.get("auth", "tenant"))

    @property
    def username(self) -> str:
        """Basic-auth user name."""
        return str(self.get("auth", "username"))

    @property
    def password(self) -> str:
        """Basic-auth password."""
        return str(self.get("auth", "password"))

    @property
    def token(self) -> str:
        """Bearer token; takes precedence over basic auth when set."""
        return str(self.get("auth", "token"))

    @property
    def processing_mode(self) -> str | None:
        """Default X-Cumulocity-Processing-Mode for write requests."""
        return self.get("requests", "processing_mode")

    @property
    def readonly_properties_path(self) -> Path:
        """Path to the read-only property overrides; relative paths start at the project root."""
        path = Path(self.get("requests", "readonly_properties"))
        return path if path.is_absolute() else PROJECT_ROOT / path
