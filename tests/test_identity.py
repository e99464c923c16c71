import json

import httpx
import pytest

from taskboard.identity import (
    IdentityProviderError,
    InvalidTokenError,
    SignupRejectedError,
    SupabaseIdentityProvider,
    User,
)


def _provider(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseIdentityProvider(
        "https://example.supabase.co", "service-key", client=client
    )


def test_verify_returns_user_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-1", "email": "a@example.com"})

    assert _provider(handler).verify("user-token") == "user-1"
    request = seen[0]
    assert request.url.path == "/auth/v1/user"
    assert request.headers["authorization"] == "Bearer user-token"
    assert request.headers["apikey"] == "service-key"


@pytest.mark.parametrize("status", [400, 401, 403])
def test_verify_rejects_invalid_token(status):
    provider = _provider(
        lambda request: httpx.Response(status, json={"msg": "invalid JWT"})
    )

    with pytest.raises(InvalidTokenError) as excinfo:
        provider.verify("garbage")

    assert "invalid JWT" in str(excinfo.value)


def test_verify_rejects_empty_token_without_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(InvalidTokenError):
        _provider(handler).verify("")


def test_verify_without_user_id_is_invalid():
    provider = _provider(lambda request: httpx.Response(200, json={"id": ""}))

    with pytest.raises(InvalidTokenError):
        provider.verify("token")


def test_verify_server_error_is_provider_error():
    provider = _provider(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(IdentityProviderError) as excinfo:
        provider.verify("token")

    assert not isinstance(excinfo.value, InvalidTokenError)


def test_verify_transport_error_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(IdentityProviderError):
        _provider(handler).verify("token")


def test_create_user_sends_confirmed_account():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "id": "user-9",
                "email": "ana@example.com",
                "user_metadata": {"name": "Ana"},
            },
        )

    user = _provider(handler).create_user("Ana", "ana@example.com", "s3cret!")

    assert user == User(id="user-9", email="ana@example.com", name="Ana")
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/auth/v1/admin/users"
    assert request.headers["authorization"] == "Bearer service-key"
    assert json.loads(request.content) == {
        "email": "ana@example.com",
        "password": "s3cret!",
        "user_metadata": {"name": "Ana"},
        "email_confirm": True,
    }


def test_create_user_reads_wrapped_user():
    provider = _provider(
        lambda request: httpx.Response(
            200, json={"user": {"id": "user-3", "email": "b@example.com"}}
        )
    )

    user = provider.create_user("Bea", "b@example.com", "pw")

    assert user.to_dict() == {"id": "user-3", "email": "b@example.com", "name": "Bea"}


def test_create_user_rejection_carries_provider_message():
    provider = _provider(
        lambda request: httpx.Response(
            422,
            json={
                "msg": "A user with this email address has already been registered"
            },
        )
    )

    with pytest.raises(SignupRejectedError) as excinfo:
        provider.create_user("Ana", "ana@example.com", "pw")

    assert "already been registered" in str(excinfo.value)


def test_create_user_server_error_is_not_a_rejection():
    provider = _provider(lambda request: httpx.Response(500, text="oops"))

    with pytest.raises(IdentityProviderError) as excinfo:
        provider.create_user("Ana", "ana@example.com", "pw")

    assert not isinstance(excinfo.value, SignupRejectedError)
