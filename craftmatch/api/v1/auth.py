import re
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import (
    clear_session_cookies,
    get_db,
    set_session_cookies,
)
from craftmatch.common.enums import UserRole
from craftmatch.common.exceptions import BadRequestError, CraftMatchException, UnauthorizedError
from craftmatch.common.logging import get_logger
from craftmatch.config import settings
from craftmatch.db.models.user import User
from craftmatch.integrations.auth_provider import AuthProviderError, get_auth_provider

logger = get_logger("api.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])

_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_strength(v: str) -> str:
    if not _PASSWORD_RE.match(v):
        raise ValueError("Password must contain a lowercase letter, an uppercase letter and a digit")
    return v


Password = Annotated[str, Field(min_length=8), AfterValidator(_check_password_strength)]


# ---------- Schemas ----------


class RegisterRequest(BaseModel):
    email: EmailStr
    password: Password
    confirm_password: str = Field(..., min_length=1)
    account_type: UserRole

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordRecoveryRequest(BaseModel):
    email: EmailStr


class PasswordResetRequest(BaseModel):
    password: Password
    confirm_password: str = Field(..., min_length=1)
    access_token: str | None = None

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordResetRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: UserRole | None = None


class AuthResponse(BaseModel):
    user: UserResponse
    message: str | None = None


class MessageResponse(BaseModel):
    message: str


# ---------- Endpoints ----------


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)):
    existing = await db.execute(select(User.id).where(User.email == body.email))
    if existing.first():
        raise BadRequestError("This email address is already registered", code="EMAIL_EXISTS")

    try:
        session = await get_auth_provider().sign_up(body.email, body.password)
    except AuthProviderError as e:
        message = e.message.lower()
        if "already" in message and "registered" in message:
            raise BadRequestError("This email address is already registered", code="EMAIL_EXISTS") from e
        if "password" in message:
            raise BadRequestError("The password does not meet security requirements", code="WEAK_PASSWORD") from e
        raise BadRequestError(e.message, code="AUTH_ERROR") from e

    user = User(id=session.user_id, email=body.email, role=body.account_type.value)
    db.add(user)
    await db.flush()

    if session.access_token and session.refresh_token:
        set_session_cookies(response, session.access_token, session.refresh_token)

    logger.info("Registered %s account %s", body.account_type.value, user.id)
    return AuthResponse(
        user=UserResponse(id=user.id, email=user.email, role=user.role),
        message="Account created. Check your inbox to confirm your email address.",
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    try:
        session = await get_auth_provider().sign_in_with_password(body.email, body.password)
    except AuthProviderError as e:
        if e.status_code in (400, 401):
            raise CraftMatchException(
                "Invalid email or password", "INVALID_CREDENTIALS", status.HTTP_401_UNAUTHORIZED
            ) from e
        raise BadRequestError(e.message, code="AUTH_ERROR") from e

    if not session.access_token or not session.refresh_token:
        raise CraftMatchException("Failed to create a session", "NO_SESSION")

    set_session_cookies(response, session.access_token, session.refresh_token)
    user = await db.get(User, session.user_id)
    return AuthResponse(
        user=UserResponse(
            id=session.user_id,
            email=session.email or body.email,
            role=user.role if user else None,
        )
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response):
    token = request.cookies.get(settings.ACCESS_COOKIE_NAME)
    if token:
        try:
            await get_auth_provider().sign_out(token)
        except AuthProviderError as e:
            logger.info("Provider sign-out failed, clearing cookies anyway: %s", e.message)
    clear_session_cookies(response)
    return MessageResponse(message="Logged out")


@router.post("/refresh", response_model=MessageResponse)
async def refresh(request: Request, response: Response):
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        raise UnauthorizedError("No refresh token")
    try:
        session = await get_auth_provider().refresh_session(refresh_token)
    except AuthProviderError as e:
        clear_session_cookies(response)
        raise UnauthorizedError("Session expired") from e

    if session.access_token and session.refresh_token:
        set_session_cookies(response, session.access_token, session.refresh_token)
    return MessageResponse(message="Session refreshed")


@router.post("/password-recovery", response_model=MessageResponse)
async def password_recovery(body: PasswordRecoveryRequest):
    try:
        await get_auth_provider().recover_password(body.email, redirect_to=f"{settings.APP_URL}/password-reset")
    except AuthProviderError as e:
        # The response never reveals whether the address exists
        logger.warning("Password recovery request failed: %s", e.message)
    return MessageResponse(message="If an account exists for this address, a reset link has been sent")


@router.post("/password-reset", response_model=MessageResponse)
async def password_reset(body: PasswordResetRequest, request: Request):
    token = body.access_token or request.cookies.get(settings.ACCESS_COOKIE_NAME)
    if not token:
        raise UnauthorizedError("The password reset link is invalid or has expired")
    try:
        await get_auth_provider().update_password(token, body.password)
    except AuthProviderError as e:
        raise BadRequestError(
            "Failed to update the password. Please try again.", code="PASSWORD_UPDATE_ERROR"
        ) from e
    return MessageResponse(message="Password updated")
