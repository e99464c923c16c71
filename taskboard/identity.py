"""Identity provider client: bearer token verification and account creation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

INVALID_TOKEN_STATUSES = {400, 401, 403, 404}


class IdentityProviderError(RuntimeError):
    """Raised when the identity provider is unreachable or misbehaves."""


class InvalidTokenError(IdentityProviderError):
    """Raised when a bearer token is invalid or expired."""


class SignupRejectedError(IdentityProviderError):
    """Raised when the identity provider refuses to create an account."""


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "email": self.email, "name": self.name}


class IdentityProvider(Protocol):
    def verify(self, token: str) -> str: ...

    def create_user(self, name: str, email: str, password: str) -> User: ...


class SupabaseIdentityProvider:
    """Supabase Auth (GoTrue) client authenticated with the service role key."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._auth_url = f"{base_url.rstrip('/')}/auth/v1"
        self._service_key = service_key
        self._http = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def verify(self, token: str) -> str:
        """Exchange a bearer token for the id of the user it was issued to."""
        if not token:
            raise InvalidTokenError("No authorization token provided.")
        try:
            response = self._http.get(
                f"{self._auth_url}/user",
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider request failed: {exc}") from exc

        if response.status_code in INVALID_TOKEN_STATUSES:
            raise InvalidTokenError(_provider_message(response))
        if response.status_code >= 400:
            raise IdentityProviderError(
                f"Identity provider returned status {response.status_code}."
            )

        body = _json_object(response)
        user_id = body.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError("No user found for token.")
        return user_id

    def create_user(self, name: str, email: str, password: str) -> User:
        """Create a confirmed account carrying ``name`` in its user metadata."""
        try:
            response = self._http.post(
                f"{self._auth_url}/admin/users",
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {self._service_key}",
                },
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": {"name": name},
                    # No mail server is configured, so confirm up front.
                    "email_confirm": True,
                },
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider request failed: {exc}") from exc

        if 400 <= response.status_code < 500:
            raise SignupRejectedError(_provider_message(response))
        if response.status_code >= 500:
            raise IdentityProviderError(
                f"Identity provider returned status {response.status_code}."
            )

        body = _json_object(response)
        # Some GoTrue versions wrap the created user.
        if isinstance(body.get("user"), dict):
            body = body["user"]
        metadata = body.get("user_metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        user_id = body.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise IdentityProviderError("Identity provider returned no user id.")
        return User(
            id=user_id,
            email=str(body.get("email") or email),
            name=str(metadata.get("name") or name),
        )


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise IdentityProviderError(
            "Identity provider returned a non-JSON response."
        ) from exc
    if not isinstance(body, dict):
        raise IdentityProviderError("Identity provider returned an unexpected payload.")
    return body


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field_name in ("msg", "message", "error_description", "error"):
            value = body.get(field_name)
            if isinstance(value, str) and value:
                return value
    return f"Identity provider returned status {response.status_code}."
