"""Plant submission persistence."""

from herbario.kernel.plants.repository import PlantRepository

__all__ = ["PlantRepository"]
