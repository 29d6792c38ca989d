"""
Parse Communication Services connection strings.

Format (keys case-insensitive, order free)::

    endpoint=https://<resource>.communication.azure.com/;accesskey=<base64 key>
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

from ecs_email.errors.exceptions import ConfigError


@dataclass(frozen=True)
class ConnectionString:
    """Endpoint and access key extracted from a connection string."""

    endpoint: str
    access_key: str

    @property
    def host(self) -> str:
        return urlsplit(self.endpoint).netloc

    def __repr__(self) -> str:
        # Keep the key out of reprs and logs
        return f"ConnectionString(endpoint={self.endpoint!r}, access_key='***')"


def normalize_endpoint(value: str) -> str:
    """
    Normalize a host or endpoint to 'https://<host>' without trailing slash.

    Accepts bare host names ("res.communication.azure.com") as well as URLs.

    Raises:
        ConfigError: If no host can be extracted
    """
    value = (value or "").strip()
    if not value:
        raise ConfigError("Endpoint is empty")
    if "://" not in value:
        value = f"https://{value}"
    parts = urlsplit(value)
    if not parts.netloc:
        raise ConfigError(f"Endpoint has no host: {value!r}")
    return f"{parts.scheme}://{parts.netloc}"


def parse_connection_string(connection_string: str) -> ConnectionString:
    """
    Parse 'endpoint=...;accesskey=...' into a ConnectionString.

    Raises:
        ConfigError: If the string is malformed or missing endpoint/accesskey
    """
    if not connection_string or not connection_string.strip():
        raise ConfigError("Connection string is empty")

    values: dict[str, str] = {}
    for segment in connection_string.split(";"):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, value = segment.partition("=")
        if not sep:
            raise ConfigError(
                f"Malformed connection string segment (expected key=value): {key!r}"
            )
        # Base64 keys end in '=', so only the first '=' separates key and value
        values[key.strip().lower()] = value.strip()

    missing = [name for name in ("endpoint", "accesskey") if not values.get(name)]
    if missing:
        raise ConfigError(
            f"Connection string is missing required field(s): {', '.join(missing)}"
        )

    return ConnectionString(
        endpoint=normalize_endpoint(values["endpoint"]),
        access_key=values["accesskey"],
    )


__all__ = ["ConnectionString", "parse_connection_string", "normalize_endpoint"]
