"""
JWT session tokens.

Tokens are stateless: nothing is stored server-side, so logout is a client-side
discard and a token stays valid until its expiry.
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from herbario.config import get_settings
from herbario.errors import ExpiredOrInvalidTokenError, MissingTokenError
from herbario.kernel.models.user import UserRole


class TokenFailure(str, Enum):
    """Why a token was refused."""

    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"


class AccessTokenPayload(BaseModel):
    """Claims carried by a session token."""

    sub: str  # User ID
    email: str
    role: str
    iat: datetime
    exp: datetime
    jti: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        try:
            return uuid.UUID(self.sub)
        except ValueError:
            return None


class JWTManager:
    """JWT token creation and verification."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    def create_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        role: str,
        issued_at: Optional[datetime] = None,
    ) -> tuple[str, datetime]:
        """
        Create a new access token.

        Args:
            user_id: Principal's unique identifier
            email: Principal's email
            role: 'admin' or 'user'
            issued_at: Issue time (defaults to now)

        Returns:
            Tuple of (token, expiration_datetime)
        """
        now = (issued_at or datetime.now(timezone.utc)).replace(microsecond=0)
        expire = now + self.lifetime

        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "jti": str(uuid.uuid4()),
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expire

    def verify_access_token(
        self,
        token: Optional[str],
        now: Optional[datetime] = None,
    ) -> AccessTokenPayload:
        """
        Verify signature and expiry of a token.

        A token is valid while ``now < issued_at + lifetime``.

        Raises:
            MissingTokenError: no token supplied
            ExpiredOrInvalidTokenError: bad signature, malformed claims or expired;
                ``reason`` tells which
        """
        if not token:
            raise MissingTokenError(reason=TokenFailure.MISSING)

        try:
            # Expiry is checked below against an injectable clock
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise ExpiredOrInvalidTokenError(reason=TokenFailure.INVALID)

        try:
            payload = AccessTokenPayload(
                sub=claims["sub"],
                email=claims["email"],
                role=claims["role"],
                iat=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
                jti=claims.get("jti", ""),
            )
        except (KeyError, TypeError, ValueError):
            raise ExpiredOrInvalidTokenError(reason=TokenFailure.INVALID)

        current = now or datetime.now(timezone.utc)
        if current >= payload.exp:
            raise ExpiredOrInvalidTokenError(reason=TokenFailure.EXPIRED)

        return payload


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def reset_jwt_manager() -> None:
    """Drop the cached manager so it picks up reloaded settings."""
    global _jwt_manager
    _jwt_manager = None


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    role: str,
) -> tuple[str, datetime]:
    """Create an access token."""
    return get_jwt_manager().create_access_token(user_id, email, role)


def verify_access_token(token: Optional[str]) -> AccessTokenPayload:
    """Verify an access token."""
    return get_jwt_manager().verify_access_token(token)
