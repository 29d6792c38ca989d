"""
Email API client.

Two operations, one HTTP round trip each (plus, for AAD credentials, at most
one identity-provider round trip when the cached token is stale):

    send_email(message)           POST /emails:send?api-version=...
    get_email_status(message_id)  GET  /emails/{message_id}/status?api-version=...

The client has no polling loop and no retry policy. Callers that want to wait
for a terminal status call get_email_status() on their own schedule.

Example:
    >>> async with EmailClientBuilder().connection_string(conn_str).build() as client:
    ...     message_id = await client.send_email(message)
    ...     status = await client.get_email_status(message_id)
"""

import json
import logging
import uuid
from urllib.parse import quote, urlsplit

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from ecs_email.auth.credentials import (
    Credential,
    ManagedIdentityCredential,
    ServicePrincipalCredential,
    SharedKeyCredential,
)
from ecs_email.config import ClientConfig
from ecs_email.errors.exceptions import ApiError, EmailClientError, ValidationError
from ecs_email.logging.context import operation_context
from ecs_email.logging.utilities import log_exception, log_with_context
from ecs_email.models.email import EmailMessage
from ecs_email.models.status import EmailSendStatus, ErrorResponse, SendEmailResult
from ecs_email.transport.http_client import HttpRequest, HttpResponse, HttpTransport
from ecs_email.types import AuthMode

logger = logging.getLogger(__name__)

SEND_PATH = "/emails:send"
STATUS_PATH_TEMPLATE = "/emails/{message_id}/status"
OPERATION_LOCATION_HEADER = "operation-location"
CLIENT_REQUEST_ID_HEADER = "x-ms-client-request-id"


def create_credential(config: ClientConfig) -> Credential:
    """Resolve the credential strategy named by config.auth_mode."""
    if config.auth_mode is AuthMode.SHARED_KEY:
        return SharedKeyCredential.from_connection_string(config.connection_string)
    if config.auth_mode is AuthMode.SERVICE_PRINCIPAL:
        return ServicePrincipalCredential(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            client_secret=config.client_secret,
            refresh_buffer_seconds=config.token_refresh_buffer_seconds,
        )
    return ManagedIdentityCredential(
        client_id=config.managed_identity_client_id,
        refresh_buffer_seconds=config.token_refresh_buffer_seconds,
    )


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _message_id_from_operation_location(value: str | None) -> str | None:
    """Last path segment of the operation-location URL."""
    if not value:
        return None
    segments = [s for s in urlsplit(value).path.split("/") if s]
    return segments[-1] if segments else None


class EmailClient:
    """
    Async client for the email service.

    Owns its credential (and therefore its token cache) for its lifetime.
    Safe to share across coroutines: the only shared mutable state is the
    credential's token cell, whose refresh is coalesced.

    Attributes:
        endpoint: Base URL, e.g. https://contoso.communication.azure.com
        api_version: api-version sent on every request
    """

    def __init__(
        self,
        endpoint: str,
        credential: Credential,
        api_version: str,
        transport: HttpTransport | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self._credential = credential
        self._transport = transport or HttpTransport()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        session: aiohttp.ClientSession | None = None,
        credential: Credential | None = None,
    ) -> "EmailClient":
        """
        Build a client from a validated config.

        Args:
            config: Client configuration (validated here)
            session: Optional aiohttp session to borrow
            credential: Optional pre-built credential (overrides config auth fields)
        """
        config.validate()
        transport = HttpTransport(session=session, timeout_seconds=config.timeout_seconds)
        client = cls(
            endpoint=config.resolved_endpoint(),
            credential=credential or create_credential(config),
            api_version=config.api_version,
            transport=transport,
        )
        logger.info(
            "Email client configured",
            extra={"auth_mode": config.auth_mode.value, "endpoint": client.endpoint},
        )
        return client

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def auth_mode(self) -> AuthMode:
        return self._credential.auth_mode

    def _url(self, path: str) -> str:
        return f"{self.endpoint}{path}?api-version={quote(self.api_version, safe='')}"

    async def _execute(self, request: HttpRequest, operation: str) -> HttpResponse:
        request.headers.setdefault(CLIENT_REQUEST_ID_HEADER, str(uuid.uuid4()))
        with operation_context(
            operation=operation,
            client_request_id=request.headers[CLIENT_REQUEST_ID_HEADER],
        ):
            await self._credential.apply_auth(request)
            response = await self._transport.request(request)
            if not response.ok:
                raise self._api_error(response, operation)
            return response

    @staticmethod
    def _api_error(response: HttpResponse, operation: str) -> ApiError:
        code = None
        message = None
        try:
            detail = ErrorResponse.model_validate(response.json() or {}).error
        except (ValueError, PydanticValidationError):
            detail = None
        if detail is not None:
            code = detail.code
            message = detail.message

        error = ApiError(
            status=response.status,
            code=code,
            message=message,
            retry_after=_parse_retry_after(response.header("retry-after")),
            context={"operation": operation},
        )
        logger.warning(
            "Email service returned an error",
            extra={
                "operation": operation,
                "http_status": response.status,
                "error_code": code,
                "error_category": error.category.value,
            },
        )
        return error

    @staticmethod
    def _parse_result(response: HttpResponse, operation: str) -> SendEmailResult | None:
        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError(
                response.status,
                code="InvalidResponse",
                message="Response body is not valid JSON",
                cause=e,
                context={"operation": operation},
            ) from e
        if payload is None:
            return None
        try:
            return SendEmailResult.model_validate(payload)
        except PydanticValidationError as e:
            raise ApiError(
                response.status,
                code="InvalidResponse",
                message=f"Unexpected response shape: {e.error_count()} error(s)",
                cause=e,
                context={"operation": operation},
            ) from e

    async def send_email(self, message: EmailMessage) -> str:
        """
        Send an email.

        The message is validated locally before any network call.

        Args:
            message: Email to send

        Returns:
            Service-assigned message id, used for get_email_status()

        Raises:
            ValidationError: If the message violates an invariant
            InvalidKeyError / EncodingError: Shared-key signing failed
            AuthError: Bearer token could not be acquired
            ApiError: Non-2xx response, or no message id in the response
            TransportError: Network failure or timeout
        """
        message.ensure_valid()

        body = json.dumps(message.to_wire(), ensure_ascii=False).encode("utf-8")
        request = HttpRequest(
            method="POST",
            url=self._url(SEND_PATH),
            headers={"Content-Type": "application/json"},
            body=body,
        )

        try:
            response = await self._execute(request, "send_email")
        except EmailClientError as e:
            log_exception(logger, e, "Failed to send email", include_traceback=False)
            raise

        location_id = _message_id_from_operation_location(
            response.header(OPERATION_LOCATION_HEADER)
        )
        try:
            result = self._parse_result(response, "send_email")
        except ApiError as e:
            if not location_id:
                log_exception(logger, e, "Failed to send email", include_traceback=False)
                raise
            # Accepted: operation-location still identifies the message
            logger.warning(
                "Unreadable send response body, using operation-location",
                extra={"http_status": response.status, "error_code": e.code},
            )
            result = None

        message_id = (result.id if result else None) or location_id
        if not message_id:
            raise ApiError(
                response.status,
                code="MissingMessageId",
                message="Response carried neither an id nor an operation-location header",
                context={"operation": "send_email"},
            )

        log_with_context(
            logger,
            logging.INFO,
            "Email accepted",
            message_id=message_id,
            http_status=response.status,
            email_status=result.status.value if result else None,
        )
        return message_id

    async def get_send_result(self, message_id: str) -> SendEmailResult:
        """
        Fetch the full status body (id, status, error) for a message.

        Raises:
            ValidationError: If message_id is empty
            AuthError / ApiError / TransportError: As for send_email
        """
        if not message_id or not message_id.strip():
            raise ValidationError("message_id cannot be empty")

        path = STATUS_PATH_TEMPLATE.format(message_id=quote(message_id, safe=""))
        request = HttpRequest(method="GET", url=self._url(path))

        try:
            response = await self._execute(request, "get_email_status")
            result = self._parse_result(response, "get_email_status")
        except EmailClientError as e:
            log_exception(
                logger, e, "Failed to get email status",
                include_traceback=False, message_id=message_id,
            )
            raise

        if result is None:
            result = SendEmailResult(id=message_id)

        logger.debug(
            "Fetched email status",
            extra={"message_id": message_id, "email_status": result.status.value},
        )
        return result

    async def get_email_status(self, message_id: str) -> EmailSendStatus:
        """
        Get the delivery status of a sent email.

        Unknown status strings map to EmailSendStatus.UNKNOWN.

        Raises:
            AuthError / ApiError / TransportError: As for send_email
        """
        result = await self.get_send_result(message_id)
        return result.status

    async def close(self) -> None:
        """Close the transport session (if owned) and release the credential."""
        await self._transport.close()
        await self._credential.close()

    async def __aenter__(self) -> "EmailClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["EmailClient", "create_credential"]
