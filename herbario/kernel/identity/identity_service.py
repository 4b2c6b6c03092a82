"""
Identity service: credential verification and login.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from herbario.kernel.models.user import User
from herbario.kernel.identity.password import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    needs_rehash,
    verify_password,
)
from herbario.kernel.identity.jwt import JWTManager, get_jwt_manager
from herbario.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for principal identity operations.

    Lookup errors propagate to the caller; a credential mismatch is a normal
    ``None`` result.
    """

    def __init__(self, session: AsyncSession, jwt_manager: Optional[JWTManager] = None):
        self.session = session
        self.jwt_manager = jwt_manager or get_jwt_manager()

    async def verify_credentials(self, email: str, password: str) -> Optional[User]:
        """
        Check an email/password pair against the stored hash.

        Returns the principal on match, None otherwise. Unknown email and
        wrong password are indistinguishable to the caller.
        """
        user = await self.get_user_by_email(email)
        if user is None:
            verify_password(password, DUMMY_PASSWORD_HASH)
            return None

        if not verify_password(password, user.password_hash):
            return None

        if needs_rehash(user.password_hash):
            # Work factor changed since this hash was stored
            user.password_hash = hash_password(password)

        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> Optional[tuple[User, str]]:
        """
        Verify credentials, stamp last_login_at and issue a session token.

        Returns:
            Tuple of (User, token) if successful, None otherwise
        """
        user = await self.verify_credentials(email, password)
        if user is None:
            logger.info("Login failed", extra={"ip_address": ip_address})
            return None

        user.last_login_at = datetime.now(timezone.utc)
        await self.session.commit()

        token, _ = self.jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value,
        )
        logger.info(
            "Login succeeded",
            extra={"user_id": str(user.id), "role": user.role.value, "ip_address": ip_address},
        )
        return user, token

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (exact match after trimming)."""
        query = select(User).where(User.email == email.strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
