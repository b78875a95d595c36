# app/schemas/session.py
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """
    Credentials forwarded to the backend's /users/login.
    """

    email: EmailStr
    password: str = Field(min_length=1)


class SessionRead(BaseModel):
    """
    What the storefront knows about the caller.
    """

    authenticated: bool
    user_id: str | None = None
    email: str | None = None
    user: dict[str, Any] | None = None
    message: str | None = None
