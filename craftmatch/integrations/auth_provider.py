"""Managed auth provider client (GoTrue-compatible REST API).

Accounts, passwords and token issuance live in the provider; this client
only forwards credentials and returns the resulting session. In mock mode
sessions are minted locally so the app can run without the provider.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
from pydantic import BaseModel

from craftmatch.common.security import create_access_token
from craftmatch.config import settings
from craftmatch.integrations.base import BaseIntegration

_MOCK_REFRESH_PREFIX = "mock-refresh:"


class AuthProviderError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class AuthSession(BaseModel):
    user_id: uuid.UUID
    email: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None


class AuthProviderClient(BaseIntegration):
    def __init__(self) -> None:
        super().__init__("auth_provider", settings.AUTH_PROVIDER_ANON_KEY)
        self._base_url = f"{settings.AUTH_PROVIDER_URL.rstrip('/')}/auth/v1"

    async def health_check(self) -> bool:
        if self.is_mock:
            return True
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(f"{self._base_url}/health", headers=self._headers())
                return resp.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error("Auth provider health check failed: %s", e)
            return False

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {access_token or self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=15) as client:
                resp = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    headers=self._headers(access_token),
                    json=json,
                    params=params,
                )
        except httpx.HTTPError as e:
            self.logger.error("Auth provider request failed | %s %s | %s", method, path, e)
            raise AuthProviderError(503, "Authentication service unavailable") from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            message = body.get("msg") or body.get("error_description") or body.get("message") or "Authentication failed"
            raise AuthProviderError(resp.status_code, message)

        if not resp.content:
            return {}
        return resp.json()

    @staticmethod
    def _session_from(payload: dict[str, Any]) -> AuthSession:
        user = payload.get("user") or payload
        return AuthSession(
            user_id=user["id"],
            email=user.get("email"),
            access_token=payload.get("access_token"),
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
        )

    def _mock_session(self, user_id: uuid.UUID, email: str | None) -> AuthSession:
        return AuthSession(
            user_id=user_id,
            email=email,
            access_token=create_access_token(str(user_id), email=email),
            refresh_token=f"{_MOCK_REFRESH_PREFIX}{user_id}",
            expires_in=3600,
        )

    async def sign_up(self, email: str, password: str) -> AuthSession:
        if self.is_mock:
            return self._mock_session(uuid.uuid5(uuid.NAMESPACE_URL, email), email)
        payload = await self._request("POST", "/signup", json={"email": email, "password": password})
        return self._session_from(payload)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if self.is_mock:
            return self._mock_session(uuid.uuid5(uuid.NAMESPACE_URL, email), email)
        payload = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._session_from(payload)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        if self.is_mock:
            if not refresh_token.startswith(_MOCK_REFRESH_PREFIX):
                raise AuthProviderError(401, "Invalid refresh token")
            try:
                user_id = uuid.UUID(refresh_token[len(_MOCK_REFRESH_PREFIX):])
            except ValueError as e:
                raise AuthProviderError(401, "Invalid refresh token") from e
            return self._mock_session(user_id, None)
        payload = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return self._session_from(payload)

    async def sign_out(self, access_token: str) -> None:
        if self.is_mock:
            return
        await self._request("POST", "/logout", access_token=access_token)

    async def recover_password(self, email: str, redirect_to: str | None = None) -> None:
        if self.is_mock:
            self.logger.info("Mock password recovery for %s", email)
            return
        body: dict[str, Any] = {"email": email}
        if redirect_to:
            body["redirect_to"] = redirect_to
        await self._request("POST", "/recover", json=body)

    async def update_password(self, access_token: str, password: str) -> None:
        if self.is_mock:
            return
        await self._request("PUT", "/user", json={"password": password}, access_token=access_token)


def get_auth_provider() -> AuthProviderClient:
    return AuthProviderClient()
