import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import UserRole
from craftmatch.common.exceptions import PermissionDeniedError, UnauthorizedError
from craftmatch.common.logging import get_logger
from craftmatch.common.security import TokenExpiredError, decode_token
from craftmatch.config import settings
from craftmatch.db.models.user import User
from craftmatch.db.session import async_session_factory
from craftmatch.integrations.auth_provider import AuthProviderError, AuthSession, get_auth_provider

logger = get_logger("api.deps")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        settings.ACCESS_COOKIE_NAME,
        access_token,
        max_age=settings.ACCESS_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=settings.REFRESH_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(settings.ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, path="/")


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def _bearer_or_cookie(request: Request, authorization: str | None) -> str | None:
    if authorization:
        if not authorization.startswith("Bearer "):
            raise UnauthorizedError("Invalid authorization header format")
        return authorization[len("Bearer "):]
    return request.cookies.get(settings.ACCESS_COOKIE_NAME)


async def _refresh(request: Request, response: Response) -> AuthSession:
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        clear_session_cookies(response)
        raise UnauthorizedError("Session expired")
    try:
        session = await get_auth_provider().refresh_session(refresh_token)
    except AuthProviderError as e:
        logger.info("Session refresh rejected: %s", e.message)
        clear_session_cookies(response)
        raise UnauthorizedError("Session expired") from e

    if session.access_token and session.refresh_token:
        set_session_cookies(response, session.access_token, session.refresh_token)
    return session


async def get_current_user(
    request: Request,
    response: Response,
    authorization: str | None = Header(None, description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the access token cookie or bearer header.

    An expired cookie session is renewed through the auth provider using the
    refresh cookie; the new pair is written back on the response.
    """
    token = _bearer_or_cookie(request, authorization)
    if not token:
        raise UnauthorizedError()

    try:
        user_id = decode_token(token).get("sub")
    except TokenExpiredError:
        user_id = str((await _refresh(request, response)).user_id)
    except ValueError as e:
        raise UnauthorizedError("Invalid or expired token") from e

    if not user_id:
        raise UnauthorizedError("Invalid token payload")
    try:
        user = await db.get(User, uuid.UUID(user_id))
    except ValueError as e:
        raise UnauthorizedError("Invalid token payload") from e

    if not user:
        raise UnauthorizedError("User account not found")
    return user


def require_role(*roles: UserRole, code: str = "FORBIDDEN", message: str | None = None):
    """Role gate resolved before the request body is validated."""

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in [r.value for r in roles]:
            raise PermissionDeniedError(
                message or f"This action requires one of the following roles: {', '.join(r.value for r in roles)}",
                code=code,
            )
        return current_user

    return role_checker
