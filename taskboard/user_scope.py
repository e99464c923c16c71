"""Request-scoped user identity helpers."""

from __future__ import annotations

import logging

from fastapi import Request

from taskboard.errors import InternalError, ProviderUnavailable, Unauthorized
from taskboard.identity import (
    IdentityProvider,
    IdentityProviderError,
    InvalidTokenError,
)
from taskboard.tasks import TaskService

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
AUTH_EXEMPT_PATHS = {"/health", "/signup"}


def parse_bearer_token(raw_header: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if raw_header is None or not raw_header.strip():
        raise Unauthorized("No authorization token provided", "AUTH_REQUIRED")

    scheme, _, token = raw_header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized(
            "Authorization header must use the Bearer scheme", "AUTH_REQUIRED"
        )
    return token


def verify_request_token(identity: IdentityProvider, raw_header: str | None) -> str:
    """Verify the bearer token and return the caller's user id."""
    token = parse_bearer_token(raw_header)
    try:
        user_id = identity.verify(token)
    except InvalidTokenError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise Unauthorized("Unauthorized", "AUTH_INVALID") from exc
    except IdentityProviderError as exc:
        logger.error("Identity provider failed during verification: %s", exc)
        raise ProviderUnavailable(
            f"Unable to verify authorization token: {exc}"
        ) from exc

    if not user_id or ":" in user_id:
        logger.error("Identity provider returned an unusable user id: %r", user_id)
        raise Unauthorized("Unauthorized", "AUTH_INVALID")
    return user_id


def get_identity_provider(request: Request) -> IdentityProvider:
    identity = getattr(request.app.state, "identity", None)
    if identity is None:
        raise InternalError("Identity provider is not configured.")
    return identity


def get_task_service(request: Request) -> TaskService:
    service = getattr(request.app.state, "task_service", None)
    if service is None:
        raise InternalError("Task service is not configured.")
    return service


def get_request_user_id(request: Request) -> str:
    """Read the verified user id cached by the auth middleware, verifying if absent."""
    cached = getattr(request.state, "user_id", None)
    if isinstance(cached, str) and cached:
        return cached

    user_id = verify_request_token(
        get_identity_provider(request),
        request.headers.get(AUTHORIZATION_HEADER),
    )
    request.state.user_id = user_id
    return user_id
