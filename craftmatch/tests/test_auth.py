import uuid
from datetime import timedelta

import pytest

from craftmatch.common.security import create_access_token
from craftmatch.config import settings
from craftmatch.integrations.auth_provider import AuthProviderClient, AuthProviderError

PASSWORD = "Secret123"


def registration(email: str = "newuser@test.com", account_type: str = "client", **overrides) -> dict:
    payload = {
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "account_type": account_type,
    }
    payload.update(overrides)
    return payload


def session_cookies(access_token: str, refresh_token: str | None = None) -> dict[str, str]:
    cookie = f"{settings.ACCESS_COOKIE_NAME}={access_token}"
    if refresh_token:
        cookie += f"; {settings.REFRESH_COOKIE_NAME}={refresh_token}"
    return {"Cookie": cookie}


# ---------- Register ----------


@pytest.mark.asyncio
async def test_register(client):
    response = await client.post("/api/auth/register", json=registration(account_type="artisan"))
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "newuser@test.com"
    assert data["user"]["role"] == "artisan"
    assert data["message"]
    assert response.cookies.get(settings.ACCESS_COOKIE_NAME)
    assert response.cookies.get(settings.REFRESH_COOKIE_NAME)

    response = await client.get("/api/users/me")
    assert response.status_code == 200
    assert response.json()["role"] == "artisan"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    await client.post("/api/auth/register", json=registration("duplicate@test.com"))

    response = await client.post("/api/auth/register", json=registration("duplicate@test.com"))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EMAIL_EXISTS"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"password": "short1A", "confirm_password": "short1A"}, "password"),
        ({"password": "alllowercase1", "confirm_password": "alllowercase1"}, "password"),
        ({"password": "NoDigitsHere", "confirm_password": "NoDigitsHere"}, "password"),
        ({"account_type": "admin"}, "account_type"),
        ({"email": "not-an-email"}, "email"),
    ],
)
async def test_register_validation(client, overrides, field):
    response = await client.post("/api/auth/register", json=registration(**overrides))
    assert response.status_code == 422
    assert field in response.json()["error"]["details"]


@pytest.mark.asyncio
async def test_register_password_mismatch(client):
    response = await client.post("/api/auth/register", json=registration(confirm_password="Secret124"))
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------- Login / logout ----------


@pytest.mark.asyncio
async def test_login(client):
    await client.post("/api/auth/register", json=registration("login@test.com"))
    client.cookies.clear()

    response = await client.post("/api/auth/login", json={"email": "login@test.com", "password": PASSWORD})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "login@test.com"
    assert user["role"] == "client"
    assert response.cookies.get(settings.ACCESS_COOKIE_NAME)


@pytest.mark.asyncio
async def test_login_invalid_credentials(client, monkeypatch):
    async def reject(self, email, password):
        raise AuthProviderError(400, "Invalid login credentials")

    monkeypatch.setattr(AuthProviderClient, "sign_in_with_password", reject)

    response = await client.post("/api/auth/login", json={"email": "nobody@test.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_logout_clears_cookies(client):
    await client.post("/api/auth/register", json=registration())
    assert client.cookies.get(settings.ACCESS_COOKIE_NAME)

    response = await client.post("/api/auth/logout")
    assert response.status_code == 200
    assert client.cookies.get(settings.ACCESS_COOKIE_NAME) is None

    response = await client.get("/api/users/me")
    assert response.status_code == 401


# ---------- Current user ----------


@pytest.mark.asyncio
async def test_get_me_with_bearer(client, client_headers, client_user):
    response = await client.get("/api/users/me", headers=client_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(client_user.id)
    assert data["role"] == "client"


@pytest.mark.asyncio
async def test_get_me_no_auth(client):
    response = await client.get("/api/users/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Bearer not-a-jwt", "Token abc"])
async def test_get_me_bad_token(client, header):
    response = await client.get("/api/users/me", headers={"Authorization": header})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user(client):
    token = create_access_token(str(uuid.uuid4()))
    response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_cookie_is_refreshed(client, client_user):
    expired = create_access_token(str(client_user.id), expires_delta=timedelta(minutes=-5))
    response = await client.get(
        "/api/users/me", headers=session_cookies(expired, f"mock-refresh:{client_user.id}")
    )
    assert response.status_code == 200
    assert response.json()["id"] == str(client_user.id)
    renewed = response.cookies.get(settings.ACCESS_COOKIE_NAME)
    assert renewed and renewed != expired


@pytest.mark.asyncio
async def test_expired_cookie_is_refreshed_on_empty_response(
    client, artisan_user, artisan_profile, specializations
):
    expired = create_access_token(str(artisan_user.id), expires_delta=timedelta(minutes=-5))
    response = await client.delete(
        f"/api/artisans/me/specializations/{specializations[0].id}",
        headers=session_cookies(expired, f"mock-refresh:{artisan_user.id}"),
    )
    assert response.status_code == 204
    assert response.content == b""
    renewed = response.cookies.get(settings.ACCESS_COOKIE_NAME)
    assert renewed and renewed != expired
    assert response.cookies.get(settings.REFRESH_COOKIE_NAME)


@pytest.mark.asyncio
async def test_expired_cookie_without_refresh_token(client, client_user):
    expired = create_access_token(str(client_user.id), expires_delta=timedelta(minutes=-5))
    response = await client.get("/api/users/me", headers=session_cookies(expired))
    assert response.status_code == 401


# ---------- Refresh / password ----------


@pytest.mark.asyncio
async def test_refresh(client, client_user):
    token = create_access_token(str(client_user.id))
    response = await client.post(
        "/api/auth/refresh", headers=session_cookies(token, f"mock-refresh:{client_user.id}")
    )
    assert response.status_code == 200
    assert response.cookies.get(settings.REFRESH_COOKIE_NAME)


@pytest.mark.asyncio
async def test_refresh_without_cookie(client):
    response = await client.post("/api/auth/refresh")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_password_recovery_never_reveals_accounts(client, monkeypatch):
    async def fail(self, email, redirect_to=None):
        raise AuthProviderError(404, "User not found")

    response = await client.post("/api/auth/password-recovery", json={"email": "someone@test.com"})
    assert response.status_code == 200

    monkeypatch.setattr(AuthProviderClient, "recover_password", fail)
    second = await client.post("/api/auth/password-recovery", json={"email": "ghost@test.com"})
    assert second.status_code == 200
    assert second.json() == response.json()


@pytest.mark.asyncio
async def test_password_reset(client, client_user):
    token = create_access_token(str(client_user.id))
    response = await client.post(
        "/api/auth/password-reset",
        json={"password": "NewSecret1", "confirm_password": "NewSecret1", "access_token": token},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_password_reset_without_token(client):
    response = await client.post(
        "/api/auth/password-reset", json={"password": "NewSecret1", "confirm_password": "NewSecret1"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_password_reset_provider_failure(client, monkeypatch):
    async def fail(self, access_token, password):
        raise AuthProviderError(422, "Password is too weak")

    monkeypatch.setattr(AuthProviderClient, "update_password", fail)
    response = await client.post(
        "/api/auth/password-reset",
        json={"password": "NewSecret1", "confirm_password": "NewSecret1", "access_token": "token"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PASSWORD_UPDATE_ERROR"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["service"] == "craftmatch"
    assert "X-Request-ID" in response.headers
