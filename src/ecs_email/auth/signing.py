"""
Shared-key request signing (HMAC-SHA256).

Every request made with an access key carries three headers:

    x-ms-date:            RFC1123 UTC timestamp
    x-ms-content-sha256:  base64(SHA256(body))
    Authorization:        HMAC-SHA256 SignedHeaders=x-ms-date;host;x-ms-content-sha256&Signature=<sig>

where ``<sig>`` is base64(HMAC-SHA256(base64_decode(key), string_to_sign)) and
the string to sign is::

    METHOD\\nPATH_AND_QUERY\\nDATE;HOST;CONTENT_HASH

Signing is pure given its inputs and the timestamp. Two signatures of the
same request at different instants differ and are both valid within the
service's accepted clock skew.

Example:
    >>> headers = sign("POST", "/emails:send?api-version=2023-03-31",
    ...                b'{"senderAddress": "..."}', "res.communication.azure.com",
    ...                account_key)
    >>> headers.as_dict()["Authorization"]
    'HMAC-SHA256 SignedHeaders=x-ms-date;host;x-ms-content-sha256&Signature=...'
"""

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime

from ecs_email.errors.exceptions import EncodingError, InvalidKeyError
from ecs_email.transport.http_client import HttpRequest

DATE_HEADER = "x-ms-date"
CONTENT_HASH_HEADER = "x-ms-content-sha256"
AUTHORIZATION_HEADER = "Authorization"
SIGNED_HEADERS = "x-ms-date;host;x-ms-content-sha256"
AUTH_SCHEME = "HMAC-SHA256"


@dataclass(frozen=True)
class SignedHeaders:
    """Authentication headers for one outgoing request."""

    date: str
    content_hash: str
    authorization: str

    def as_dict(self) -> dict[str, str]:
        return {
            DATE_HEADER: self.date,
            CONTENT_HASH_HEADER: self.content_hash,
            AUTHORIZATION_HEADER: self.authorization,
        }


def _body_bytes(body: bytes | str) -> bytes:
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, str):
        try:
            return body.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError("Request body is not encodable as UTF-8", cause=e) from e
    raise EncodingError(
        f"Request body must be bytes or str, got {type(body).__name__}"
    )


def decode_account_key(account_key: str) -> bytes:
    """
    Decode a base64 access key.

    Raises:
        InvalidKeyError: If key is empty or not strict base64
    """
    if not account_key or not account_key.strip():
        raise InvalidKeyError("Access key is empty")
    try:
        return base64.b64decode(account_key.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        # Never include the key itself in the message
        raise InvalidKeyError("Access key is not valid base64", cause=e) from e


def compute_content_hash(body: bytes | str) -> str:
    """Return base64(SHA256(body))."""
    digest = hashlib.sha256(_body_bytes(body)).digest()
    return base64.b64encode(digest).decode("ascii")


def format_http_date(timestamp: datetime | None = None) -> str:
    """Format timestamp (default: now) as RFC1123, e.g. 'Mon, 01 Jan 2024 00:00:00 GMT'."""
    timestamp = timestamp or datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return format_datetime(timestamp.astimezone(UTC), usegmt=True)


def build_string_to_sign(
    method: str,
    path_and_query: str,
    date: str,
    host: str,
    content_hash: str,
) -> str:
    return f"{method.upper()}\n{path_and_query}\n{date};{host};{content_hash}"


def compute_signature(string_to_sign: str, key: bytes) -> str:
    """Return base64(HMAC-SHA256(key, string_to_sign))."""
    mac = hmac.new(key, string_to_sign.encode("utf-8"), hashlib.sha256)
    return base64.b64encode(mac.digest()).decode("ascii")


def sign(
    method: str,
    path_and_query: str,
    body: bytes | str,
    host: str,
    account_key: str,
    timestamp: datetime | None = None,
) -> SignedHeaders:
    """
    Produce the shared-key authentication headers for one request.

    Args:
        method: HTTP method (case-insensitive)
        path_and_query: Request path including query string, e.g.
            "/emails:send?api-version=2023-03-31"
        body: Request body exactly as it will be sent
        host: Host header value (host[:port], no scheme)
        account_key: Base64 access key
        timestamp: Signing instant (default: now, UTC)

    Returns:
        SignedHeaders with x-ms-date, x-ms-content-sha256 and Authorization

    Raises:
        InvalidKeyError: If account_key is not valid base64
        EncodingError: If body cannot be hashed
    """
    key = decode_account_key(account_key)
    content_hash = compute_content_hash(body)
    date = format_http_date(timestamp)

    string_to_sign = build_string_to_sign(method, path_and_query, date, host, content_hash)
    signature = compute_signature(string_to_sign, key)

    return SignedHeaders(
        date=date,
        content_hash=content_hash,
        authorization=f"{AUTH_SCHEME} SignedHeaders={SIGNED_HEADERS}&Signature={signature}",
    )


def sign_request(
    request: HttpRequest,
    account_key: str,
    timestamp: datetime | None = None,
) -> SignedHeaders:
    """Sign an HttpRequest in place, deriving host and path+query from its URL."""
    headers = sign(
        request.method,
        request.path_and_query,
        request.body,
        request.host,
        account_key,
        timestamp=timestamp,
    )
    request.headers.update(headers.as_dict())
    return headers


__all__ = [
    "SignedHeaders",
    "sign",
    "sign_request",
    "compute_content_hash",
    "compute_signature",
    "build_string_to_sign",
    "format_http_date",
    "decode_account_key",
    "DATE_HEADER",
    "CONTENT_HASH_HEADER",
    "AUTHORIZATION_HEADER",
]
