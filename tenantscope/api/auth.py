"""Identity resolution and request context dependencies.

Tokens resolve to an identity in one of two ways:
- Tokens configured in ``Settings.api_tokens`` map to "<tenant_id>:<user_id>"
- With ``Settings.allow_dev_tokens``, a token of the literal form
  "<tenant_id>:<user_id>" resolves to itself (local development only)
"""

import hmac
import logging
from collections.abc import Mapping
from typing import Annotated, Protocol

from fastapi import Depends, Header, HTTPException, Request, status

from tenantscope.db.builder import ContextBuilder
from tenantscope.db.context import Identity, RequestContext
from tenantscope.errors import AuthError

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    """Turns a credential into the acting identity."""

    def resolve(self, credential: str) -> Identity:
        """Resolve a credential.

        Raises:
            AuthError: If the credential is missing or invalid
        """
        ...


def parse_identity(value: str) -> Identity:
    """Parse "<tenant_id>:<user_id>" into an Identity.

    Only the shape is checked here; the context builder validates the values.

    Raises:
        AuthError: If the value has no ":" separator
    """
    tenant_id, sep, user_id = value.partition(":")
    if not sep:
        raise AuthError("Invalid token format (expected tenant_id:user_id)")
    return Identity(user_id=user_id, tenant_id=tenant_id)


class TokenIdentityResolver:
    """Resolves bearer tokens from configuration."""

    def __init__(self, api_tokens: Mapping[str, str], *, allow_dev_tokens: bool = False) -> None:
        self._api_tokens = dict(api_tokens)
        self._allow_dev_tokens = allow_dev_tokens

    def resolve(self, credential: str) -> Identity:
        """Resolve a bearer token to an identity."""
        if not credential:
            raise AuthError("Missing credential")

        for token, identity in self._api_tokens.items():
            if hmac.compare_digest(token.encode(), credential.encode()):
                return parse_identity(identity)

        if self._allow_dev_tokens:
            return parse_identity(credential)

        raise AuthError("Unknown API token")


def get_context_builder(request: Request) -> ContextBuilder:
    """Get the application's context builder."""
    return request.app.state.context_builder


def get_identity_resolver(request: Request) -> IdentityResolver:
    """Get the application's identity resolver."""
    return request.app.state.identity_resolver


def get_identity(
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Resolve the acting identity from the Authorization header.

    Args:
        resolver: Identity resolver
        authorization: Authorization header (e.g., "Bearer <token>")

    Returns:
        Identity of the caller

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "

    try:
        return resolver.resolve(token)
    except AuthError as e:
        logger.info(f"Rejected credential: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_request_context(
    identity: Annotated[Identity, Depends(get_identity)],
    builder: Annotated[ContextBuilder, Depends(get_context_builder)],
) -> RequestContext:
    """Build this request's context.

    A ContextBuildError propagates to the application's exception handler.
    """
    return builder.build(identity)
