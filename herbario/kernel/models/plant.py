"""
Plant submission models.

A Plant starts as ``pending`` and is moved between the three moderation
states by herbario.orchestration.state_machine. Its optional photo lives in
plant_images (1:0..1) so listings never load image bytes.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    LargeBinary,
    String,
    Text,
    Uuid,
    func,
    select,
)
from sqlalchemy.orm import Mapped, column_property, mapped_column, validates

from herbario.kernel.models.base import Base, TimestampMixin, generate_uuid


class PlantStatus(str, Enum):
    """Moderation status of a plant submission."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> tuple:
        return tuple(s.value for s in cls)


class PlantImage(Base):
    """Photo attached to a plant submission."""

    __tablename__ = "plant_images"

    plant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("plants.id", ondelete="CASCADE"),
        primary_key=True,
    )
    mime_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    data: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class Plant(Base, TimestampMixin):
    """Plant species record submitted by a visitor."""

    __tablename__ = "plants"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="status",
        ),
        Index("ix_plants_status_created_at", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    scientific_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    family: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PlantStatus.PENDING.value,
        nullable=False,
    )
    accepted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    has_image: Mapped[bool] = column_property(
        select(PlantImage.plant_id)
        .where(PlantImage.plant_id == id)
        .correlate_except(PlantImage)
        .exists()
    )

    @validates("status")
    def _validate_status(self, key: str, value) -> str:
        # Raises ValueError for anything outside the three states
        return PlantStatus(value).value

    def __repr__(self) -> str:
        return f"<Plant {self.id} {self.status}>"
