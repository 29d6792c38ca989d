"""Email client configuration.

A ClientConfig names exactly one auth mode and the fields that mode needs.
It can be built three ways:

- programmatically, usually through EmailClientBuilder
- from environment variables (optionally after loading a .env file)
- from a YAML file with an ``email:`` section

Environment variables ARE supported in YAML files using ${VAR_NAME} and
${VAR_NAME:-default} syntax.

Example config.yaml:

    email:
      endpoint: https://contoso.communication.azure.com
      api_version: "2023-03-31"
      auth:
        mode: service_principal
        tenant_id: ${AZURE_TENANT_ID}
        client_id: ${AZURE_CLIENT_ID}
        client_secret: ${AZURE_CLIENT_SECRET}
      token_refresh_buffer_seconds: 300
      timeout_seconds: 30
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from ecs_email.auth.connection_string import normalize_endpoint, parse_connection_string
from ecs_email.auth.token_cache import DEFAULT_REFRESH_BUFFER_SECONDS
from ecs_email.errors.exceptions import ConfigError
from ecs_email.transport.http_client import DEFAULT_TIMEOUT_SECONDS
from ecs_email.types import AuthMode

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2023-03-31"

_TRUE_VALUES = ("true", "1", "yes")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    with open(path, "r") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _is_set(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def select_auth_mode(
    connection_string: bool,
    service_principal: bool,
    managed_identity: bool,
) -> AuthMode:
    """
    Pick the single configured auth mode.

    Raises:
        ConfigError: If zero or more than one mode is configured
    """
    chosen = [
        mode
        for mode, enabled in (
            (AuthMode.SHARED_KEY, connection_string),
            (AuthMode.SERVICE_PRINCIPAL, service_principal),
            (AuthMode.MANAGED_IDENTITY, managed_identity),
        )
        if enabled
    ]
    if not chosen:
        raise ConfigError(
            "No credential configured. "
            "Configure one of: connection_string, service_principal, managed_identity"
        )
    if len(chosen) > 1:
        raise ConfigError(
            "Multiple credentials configured "
            f"({', '.join(mode.value for mode in chosen)}); configure exactly one"
        )
    return chosen[0]


@dataclass
class ClientConfig:
    """Email client configuration.

    Attributes:
        auth_mode: Credential variant, set exactly once
        endpoint: Service endpoint, e.g. https://<resource>.communication.azure.com.
            Required for AAD modes; for shared key it overrides the
            connection string endpoint when set.
        connection_string: "endpoint=...;accesskey=..." (shared key)
        tenant_id / client_id / client_secret: Service principal identity
        managed_identity_client_id: User-assigned identity (None = system-assigned)
        api_version: api-version query parameter
        token_refresh_buffer_seconds: Margin before expiry at which a cached
            token is considered stale
        timeout_seconds: Per-request timeout enforced by the transport
    """

    auth_mode: AuthMode
    endpoint: str = ""
    connection_string: Optional[str] = field(default=None, repr=False)
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = field(default=None, repr=False)
    managed_identity_client_id: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    token_refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def validate(self) -> None:
        """
        Validate the fields required by auth_mode.

        Raises:
            ConfigError: On the first missing or invalid field
        """
        if not isinstance(self.auth_mode, AuthMode):
            raise ConfigError(f"Invalid auth_mode: {self.auth_mode!r}")

        if self.auth_mode is AuthMode.SHARED_KEY:
            if not _is_set(self.connection_string):
                raise ConfigError("connection_string is required for shared key auth")
            parse_connection_string(self.connection_string)
        elif self.auth_mode.uses_bearer_token:
            if not _is_set(self.endpoint):
                raise ConfigError(
                    f"endpoint (host) is required for {self.auth_mode.value} auth"
                )

        if self.auth_mode is AuthMode.SERVICE_PRINCIPAL:
            missing = [
                name
                for name in ("tenant_id", "client_id", "client_secret")
                if not _is_set(getattr(self, name))
            ]
            if missing:
                raise ConfigError(
                    f"Service principal auth is missing: {', '.join(missing)}"
                )

        if _is_set(self.endpoint):
            normalize_endpoint(self.endpoint)
        if not _is_set(self.api_version):
            raise ConfigError("api_version cannot be empty")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be positive")
        if self.token_refresh_buffer_seconds < 0:
            raise ConfigError("token_refresh_buffer_seconds must be >= 0")

    def resolved_endpoint(self) -> str:
        """Endpoint requests go to: explicit endpoint, else the connection string's."""
        if _is_set(self.endpoint):
            return normalize_endpoint(self.endpoint)
        if self.auth_mode is AuthMode.SHARED_KEY and _is_set(self.connection_string):
            return parse_connection_string(self.connection_string).endpoint
        raise ConfigError("No endpoint configured")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """
        Build from the ``email:`` section of a config file.

        ``auth.mode`` may be omitted when exactly one credential is present.

        Raises:
            ConfigError: If the section is malformed or fails validation
        """
        if not isinstance(data, dict):
            raise ConfigError("email config section must be a mapping")
        auth = data.get("auth") or {}
        if not isinstance(auth, dict):
            raise ConfigError("email.auth must be a mapping")

        mode_name = auth.get("mode")
        if mode_name:
            try:
                auth_mode = AuthMode(str(mode_name).lower())
            except ValueError as e:
                valid = ", ".join(mode.value for mode in AuthMode)
                raise ConfigError(
                    f"Unknown auth mode {mode_name!r}; expected one of: {valid}", cause=e
                ) from e
        else:
            auth_mode = select_auth_mode(
                connection_string=_is_set(auth.get("connection_string")),
                service_principal=_is_set(auth.get("tenant_id"))
                or _is_set(auth.get("client_secret")),
                managed_identity=str(auth.get("managed_identity", "")).lower() in _TRUE_VALUES,
            )

        try:
            config = cls(
                auth_mode=auth_mode,
                endpoint=data.get("endpoint") or "",
                connection_string=auth.get("connection_string") or None,
                tenant_id=auth.get("tenant_id") or None,
                client_id=auth.get("client_id") or None,
                client_secret=auth.get("client_secret") or None,
                managed_identity_client_id=auth.get("managed_identity_client_id") or None,
                api_version=str(data.get("api_version") or DEFAULT_API_VERSION),
                token_refresh_buffer_seconds=float(
                    data.get("token_refresh_buffer_seconds", DEFAULT_REFRESH_BUFFER_SECONDS)
                ),
                timeout_seconds=float(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid email config value: {e}", cause=e) from e

        config.validate()
        return config

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "ClientConfig":
        """
        Build from environment variables.

        Environment Variables:
            ACS_CONNECTION_STRING: Shared key connection string
            ACS_ENDPOINT: Service endpoint (required for AAD modes)
            AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: Service principal
            ACS_USE_MANAGED_IDENTITY: Set to "true" to use managed identity
            ACS_MANAGED_IDENTITY_CLIENT_ID: User-assigned identity client id
            ACS_API_VERSION: api-version override
            ACS_TOKEN_REFRESH_BUFFER_SECONDS: Token refresh margin
            ACS_TIMEOUT_SECONDS: Per-request timeout

        Args:
            dotenv_path: Optional .env file loaded first (existing variables win)
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path)

        connection_string = os.getenv("ACS_CONNECTION_STRING")
        tenant_id = os.getenv("AZURE_TENANT_ID")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")
        use_mi = os.getenv("ACS_USE_MANAGED_IDENTITY", "").lower() in _TRUE_VALUES

        auth_mode = select_auth_mode(
            connection_string=_is_set(connection_string),
            service_principal=_is_set(tenant_id) or _is_set(client_secret),
            managed_identity=use_mi,
        )

        try:
            config = cls(
                auth_mode=auth_mode,
                endpoint=os.getenv("ACS_ENDPOINT", ""),
                connection_string=connection_string or None,
                tenant_id=tenant_id or None,
                client_id=os.getenv("AZURE_CLIENT_ID") or None,
                client_secret=client_secret or None,
                managed_identity_client_id=os.getenv("ACS_MANAGED_IDENTITY_CLIENT_ID") or None,
                api_version=os.getenv("ACS_API_VERSION") or DEFAULT_API_VERSION,
                token_refresh_buffer_seconds=float(
                    os.getenv("ACS_TOKEN_REFRESH_BUFFER_SECONDS", DEFAULT_REFRESH_BUFFER_SECONDS)
                ),
                timeout_seconds=float(os.getenv("ACS_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid numeric environment value: {e}", cause=e) from e

        config.validate()
        logger.debug(
            "Loaded email client config from environment",
            extra={"auth_mode": auth_mode.value, "endpoint": config.endpoint},
        )
        return config


def load_config(path: Path) -> ClientConfig:
    """
    Load ClientConfig from the ``email:`` section of a YAML file.

    Raises:
        ConfigError: If the file is missing, malformed or fails validation
    """
    data = _expand_env_vars(load_yaml(Path(path)))
    if "email" not in data:
        raise ConfigError(f"No 'email' section in {path}")
    config = ClientConfig.from_dict(data["email"])
    logger.debug(
        "Loaded email client config",
        extra={"config_path": str(path), "auth_mode": config.auth_mode.value},
    )
    return config


__all__ = [
    "ClientConfig",
    "DEFAULT_API_VERSION",
    "load_config",
    "select_auth_mode",
]
