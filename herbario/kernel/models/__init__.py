"""
Kernel Data Models

Core SQLAlchemy models: principals and plant submissions.
"""

from herbario.kernel.models.base import Base, TimestampMixin, generate_uuid
from herbario.kernel.models.user import User, UserRole
from herbario.kernel.models.plant import Plant, PlantImage, PlantStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # User
    "User",
    "UserRole",
    # Plants
    "Plant",
    "PlantImage",
    "PlantStatus",
]
