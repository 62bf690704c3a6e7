"""Authentication utilities for JWT, password hashing, and the current user."""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import HTTPException, Request
from jose import JWTError, jwt
from starlette.status import HTTP_401_UNAUTHORIZED

from discussion_engine.models import UserIdentity

logger = logging.getLogger(__name__)

# Configuration constants (environment variables override defaults)
# SECURITY: In production, JWT_SECRET_KEY MUST be set via environment variable
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_HOURS = int(os.environ.get("JWT_EXPIRE_HOURS", "168"))  # Default: 7 days
ACCESS_TOKEN_COOKIE_NAME = "access_token"
COOKIE_SECURE = os.environ.get("AUTH_COOKIE_SECURE", "true").lower() != "false"

BCRYPT_ROUNDS = 12

# Security logger for auth events
security_logger = logging.getLogger("security")


class AuthenticationError(HTTPException):
    """Custom exception for authentication failures."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=HTTP_401_UNAUTHORIZED, detail=detail)


class PasswordUtils:
    """Utilities for password hashing and verification."""

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )


class JWTUtils:
    """Utilities for JWT token creation and validation."""

    @staticmethod
    def create_access_token(
        user_id: int, email: str, username: str | None = None
    ) -> str:
        """
        Create a JWT access token for a user.

        Args:
            user_id: User's database ID
            email: User's email address
            username: Display name chosen at sign-up

        Returns:
            JWT token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "username": username,
            "exp": now + timedelta(hours=JWT_EXPIRE_HOURS),
            "iat": now,
        }
        return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    @staticmethod
    def decode_access_token(token: str) -> dict[str, Any]:
        """
        Decode and validate a JWT access token.

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        try:
            payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            security_logger.warning(f"JWT decode error: {e}")
            raise AuthenticationError("Invalid or expired token")

        if "sub" not in payload or "email" not in payload:
            raise AuthenticationError("Invalid token payload")
        return payload


class CookieUtils:
    """Utilities for secure cookie handling."""

    @staticmethod
    def get_cookie_settings() -> dict[str, Any]:
        """Cookie settings for JWT storage."""
        return {
            "httponly": True,
            "secure": COOKIE_SECURE,
            "samesite": "strict",
            "max_age": JWT_EXPIRE_HOURS * 3600,
        }


def display_name_for(username: str | None, email: str | None) -> str:
    """Username, else the local part of the e-mail address, else Anonymous."""
    if username:
        return username
    if email and email.split("@")[0]:
        return email.split("@")[0]
    return "Anonymous"


def actor_from_user(user: dict[str, Any]) -> UserIdentity:
    """Convert the authenticated user dict into the identity commands act as."""
    return UserIdentity(
        id=str(user["id"]),
        display_name=display_name_for(user.get("username"), user.get("email")),
    )


def get_current_user_from_token(request: Request) -> dict[str, Any]:
    """
    Get current user information from the JWT token in the access cookie.

    Raises:
        AuthenticationError: If authentication fails
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE_NAME)
    if not token:
        raise AuthenticationError("No authentication token found")

    try:
        payload = JWTUtils.decode_access_token(token)
    except AuthenticationError:
        security_logger.warning(
            f"Failed authentication attempt from IP: {request.client.host if request.client else 'unknown'}"
        )
        raise

    return {
        "id": int(payload["sub"]),
        "email": payload["email"],
        "username": payload.get("username"),
    }


# FastAPI dependency for protecting routes
async def get_current_user(request: Request) -> dict[str, Any]:
    """
    FastAPI dependency to get current authenticated user.

    Usage in route:
        @router.post("/discussions")
        async def create_discussion(current_user: dict = Depends(get_current_user)):
            actor = actor_from_user(current_user)
    """
    return get_current_user_from_token(request)


def log_security_event(
    event_type: str, details: dict[str, Any], request: Request | None = None
):
    """
    Log security-related events for monitoring and auditing.

    Args:
        event_type: Type of security event (e.g., "login_failed", "registration_success")
        details: Dictionary of event details (avoid sensitive data)
        request: Optional FastAPI request for IP logging
    """
    log_data = {
        "event_type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **details,
    }

    if request and request.client:
        log_data["client_ip"] = request.client.host

    security_logger.info(f"Security event: {log_data}")
