"""Pydantic schemas for authentication endpoints."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserRegistrationSchema(BaseModel):
    """Schema for user sign-up."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, max_length=128, description="User's password")
    username: str = Field(..., min_length=2, max_length=20, description="Display name")

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, password: str) -> str:
        """Validate password meets security requirements."""
        errors = []

        if not any(c.isalpha() for c in password):
            errors.append("Password must contain at least one letter")

        if not any(c.isdigit() for c in password):
            errors.append("Password must contain at least one number")

        if errors:
            raise ValueError(f"Password validation failed: {'; '.join(errors)}")

        return password

    @field_validator("username")
    @classmethod
    def validate_username(cls, username: str) -> str:
        # Letters of any script, digits, underscores and hyphens
        if not re.match(r"^[\w-]+$", username):
            raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")
        return username

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "user@example.com",
                "password": "SecurePass123",
                "username": "debater01",
            }
        }
    }


class LoginSchema(BaseModel):
    """Schema for sign-in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserInfoSchema(BaseModel):
    """Public user information."""

    id: int
    email: str
    username: str | None = None
    display_name: str


class LoginResponse(BaseModel):
    message: str
    user: UserInfoSchema


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
