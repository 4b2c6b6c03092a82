"""
Kernel Layer

Foundational components the API builds on:
- Identity Core (principals, password hashes, session tokens)
- Plant submission records and their repository
"""

from herbario.kernel.models import User, UserRole, Plant, PlantImage, PlantStatus

__all__ = [
    "User",
    "UserRole",
    "Plant",
    "PlantImage",
    "PlantStatus",
]
