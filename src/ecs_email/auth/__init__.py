"""
Request authentication.

Components:
    - Canonical signer: HMAC-SHA256 shared-key signing of each request
    - Connection-string parsing (endpoint + access key)
    - TokenCell: guarded bearer-token cache with coalesced refresh
    - Identity providers: azure-identity service principal / managed identity
    - Credential strategies exposing a single apply_auth(request)
"""

from ecs_email.auth.connection_string import (
    ConnectionString,
    normalize_endpoint,
    parse_connection_string,
)
from ecs_email.auth.credentials import (
    BearerTokenCredential,
    Credential,
    ManagedIdentityCredential,
    ServicePrincipalCredential,
    SharedKeyCredential,
)
from ecs_email.auth.models import AuthToken
from ecs_email.auth.providers import (
    COMMUNICATION_SCOPE,
    AzureIdentityTokenProvider,
    BaseTokenProvider,
)
from ecs_email.auth.signing import SignedHeaders, sign, sign_request
from ecs_email.auth.token_cache import DEFAULT_REFRESH_BUFFER_SECONDS, TokenCell

__all__ = [
    # Signing
    "SignedHeaders",
    "sign",
    "sign_request",
    # Connection strings
    "ConnectionString",
    "parse_connection_string",
    "normalize_endpoint",
    # Tokens
    "AuthToken",
    "TokenCell",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
    # Providers
    "BaseTokenProvider",
    "AzureIdentityTokenProvider",
    "COMMUNICATION_SCOPE",
    # Credentials
    "Credential",
    "SharedKeyCredential",
    "BearerTokenCredential",
    "ServicePrincipalCredential",
    "ManagedIdentityCredential",
]
