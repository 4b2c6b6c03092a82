"""
Authentication schemas.
"""

import re
import uuid
from typing import Optional

from pydantic import BaseModel

from herbario.errors import MissingCredentialsError, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class UserLogin(BaseModel):
    """
    Login request.

    Fields are optional here so a missing credential is reported as
    MISSING_CREDENTIALS rather than a generic validation failure.
    """

    email: Optional[str] = None
    password: Optional[str] = None

    def checked(self) -> tuple[str, str]:
        """Return (email, password) or raise the matching client error."""
        email = (self.email or "").strip()
        password = self.password or ""
        if not email or not password:
            raise MissingCredentialsError()

        details = []
        if not EMAIL_PATTERN.match(email):
            details.append({"field": "email", "message": "Invalid email format"})
        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            details.append({
                "field": "password",
                "message": f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters",
            })
        if details:
            raise ValidationError("Invalid login data", details=details)
        return email, password


class UserResponse(BaseModel):
    """Principal as exposed to clients."""

    id: uuid.UUID
    email: str
    name: str
    role: str


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: UserResponse


class VerifyResponse(BaseModel):
    success: bool = True
    user: UserResponse
