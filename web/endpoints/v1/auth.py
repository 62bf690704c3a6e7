"""Authentication endpoints (sign-up, sign-in, sign-out, current user)."""

import logging
import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_409_CONFLICT

from web.auth_database import AuthDatabaseManager
from web.auth_schemas import (
    ErrorResponse,
    LoginResponse,
    LoginSchema,
    MessageResponse,
    UserInfoSchema,
    UserRegistrationSchema,
)
from web.auth_utils import (
    ACCESS_TOKEN_COOKIE_NAME,
    CookieUtils,
    JWTUtils,
    PasswordUtils,
    display_name_for,
    get_current_user,
    log_security_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

_auth_db: AuthDatabaseManager | None = None


def get_auth_db() -> AuthDatabaseManager:
    """Shared auth database manager, created on first use."""
    global _auth_db
    if _auth_db is None:
        _auth_db = AuthDatabaseManager()
    return _auth_db


def _user_info(user_id: int, email: str, username: str | None) -> UserInfoSchema:
    return UserInfoSchema(
        id=user_id,
        email=email,
        username=username,
        display_name=display_name_for(username, email),
    )


def _set_auth_cookie(response: Response, user_id: int, email: str, username: str | None) -> None:
    token = JWTUtils.create_access_token(user_id, email, username)
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE_NAME, value=token, **CookieUtils.get_cookie_settings()
    )


@router.post("/register", response_model=LoginResponse,
             responses={409: {"model": ErrorResponse}})
async def register(
    request: Request,
    response: Response,
    user_data: UserRegistrationSchema,
    auth_db: AuthDatabaseManager = Depends(get_auth_db),
):
    """Create an account and sign the new user in."""
    try:
        if auth_db.email_exists(user_data.email):
            log_security_event("registration_failed", {"email": user_data.email, "reason": "email_exists"}, request)
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Email already registered")

        password_hash = PasswordUtils.hash_password(user_data.password)
        user_id = auth_db.create_user(user_data.email, password_hash, user_data.username)

        _set_auth_cookie(response, user_id, user_data.email, user_data.username)
        log_security_event("registration_success", {"email": user_data.email, "user_id": user_id}, request)
        return LoginResponse(
            message=f"Account created for {user_data.email}",
            user=_user_info(user_id, user_data.email, user_data.username),
        )

    except HTTPException:
        raise
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Email already registered")
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(status_code=500, detail="Registration failed")


@router.post("/login", response_model=LoginResponse,
             responses={401: {"model": ErrorResponse}})
async def login(
    request: Request,
    response: Response,
    login_data: LoginSchema,
    auth_db: AuthDatabaseManager = Depends(get_auth_db),
):
    """Sign in and set the authentication cookie."""
    try:
        user = auth_db.get_user_by_email(login_data.email)
        if not user or not PasswordUtils.verify_password(login_data.password, user["password_hash"]):
            log_security_event("login_failed", {"email": login_data.email}, request)
            raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        _set_auth_cookie(response, user["id"], user["email"], user["username"])
        log_security_event("login_success", {"user_id": user["id"]}, request)
        return LoginResponse(
            message="Login successful",
            user=_user_info(user["id"], user["email"], user["username"]),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=500, detail="Login failed")


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Sign out by clearing the authentication cookie."""
    response.delete_cookie(ACCESS_TOKEN_COOKIE_NAME)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserInfoSchema,
            responses={401: {"model": ErrorResponse}})
async def get_me(
    current_user: dict[str, Any] = Depends(get_current_user),
    auth_db: AuthDatabaseManager = Depends(get_auth_db),
):
    """Return the signed-in user."""
    user = auth_db.get_user_by_id(current_user["id"])
    if not user:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return _user_info(user["id"], user["email"], user["username"])
