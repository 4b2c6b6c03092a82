"""
User model for identity management.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from herbario.kernel.models.base import Base, TimestampMixin, generate_uuid


class UserRole(str, Enum):
    """Role carried in session tokens, derived from the admin flag."""
    USER = "user"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """
    Principal account.

    Provisioned out-of-band (see scripts/create_admin.py). Only login mutates
    it afterwards, through last_login_at.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    # Stored and matched exactly as provisioned
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def role(self) -> UserRole:
        return UserRole.ADMIN if self.is_admin else UserRole.USER

    @property
    def display_name(self) -> str:
        return self.email.split("@", 1)[0]

    def __repr__(self) -> str:
        return f"<User {self.email}>"
