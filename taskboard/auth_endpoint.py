"""Account creation endpoint delegating to the identity provider."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from taskboard.api_router import api_router
from taskboard.errors import BadRequest, ProviderError, ProviderUnavailable
from taskboard.identity import IdentityProviderError, SignupRejectedError
from taskboard.payload import _ensure_payload_dict, _require_fields
from taskboard.user_scope import get_identity_provider

logger = logging.getLogger(__name__)

SIGNUP_FIELDS = ["name", "email", "password"]


@api_router.post("/signup")
def signup(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a confirmed account and return its public fields."""
    payload = _ensure_payload_dict(payload)
    fields = {
        name: value.strip() if isinstance(value, str) and name != "password" else value
        for name, value in payload.items()
    }
    _require_fields(fields, SIGNUP_FIELDS)
    for name in SIGNUP_FIELDS:
        if not isinstance(fields[name], str):
            raise BadRequest(f"{name} must be a string.", "INVALID_TYPE")

    identity = get_identity_provider(request)
    try:
        user = identity.create_user(
            fields["name"],
            fields["email"],
            fields["password"],
        )
    except SignupRejectedError as exc:
        logger.warning("Identity provider rejected signup: %s", exc)
        raise ProviderError(f"Failed to create user: {exc}") from exc
    except IdentityProviderError as exc:
        logger.error("Signup error: %s", exc)
        raise ProviderUnavailable(f"Signup failed: {exc}") from exc

    logger.info("Created user %s", user.id)
    return {"success": True, "user": user.to_dict()}
