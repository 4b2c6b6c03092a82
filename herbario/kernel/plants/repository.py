"""
Plant repository: persistence for plant records and their images.

Each statement runs under the configured storage timeout. Timeouts and
driver errors surface as StorageError; nothing here retries.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Dict, Optional, Sequence, TypeVar

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herbario.config import get_settings
from herbario.errors import StorageError
from herbario.kernel.models.plant import Plant, PlantImage, PlantStatus
from herbario.kernel.models.user import User
from herbario.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class PlantRepository:
    """Create/list/count/update/delete plant records keyed by id."""

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout if timeout is not None else get_settings().db_statement_timeout_seconds

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Storage timeout", extra={"operation": operation, "timeout": self.timeout})
            raise StorageError("Storage operation timed out")
        except SQLAlchemyError as exc:
            logger.error(
                "Storage failure",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StorageError() from exc

    async def create(self, fields: Dict[str, Any], image: Optional[PlantImage] = None) -> Plant:
        """Insert a pending plant and, if given, its image in the same transaction."""
        plant = Plant(id=uuid.uuid4(), status=PlantStatus.PENDING.value, **fields)
        self.session.add(plant)
        # No relationship() between the two, so the parent row goes first
        await self._run("create", self.session.flush())
        if image is not None:
            image.plant_id = plant.id
            self.session.add(image)
            await self._run("create", self.session.flush())
        await self._run("create", self.session.refresh(plant))
        return plant

    async def get(self, plant_id: uuid.UUID) -> Optional[Plant]:
        result = await self._run(
            "get",
            self.session.execute(select(Plant).where(Plant.id == plant_id)),
        )
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """Make pending writes durable. A failure here surfaces as StorageError."""
        await self._run("commit", self.session.commit())

    async def user_exists(self, user_id: uuid.UUID) -> bool:
        result = await self._run(
            "user_exists",
            self.session.execute(select(User.id).where(User.id == user_id)),
        )
        return result.scalar_one_or_none() is not None

    async def save(self, plant: Plant) -> Plant:
        """Flush pending attribute changes and reload server-side columns."""
        await self._run("save", self.session.flush())
        await self._run("save", self.session.refresh(plant))
        return plant

    async def delete(self, plant_id: uuid.UUID) -> bool:
        """Delete a plant and its image. Returns False if it did not exist."""
        await self._run(
            "delete",
            self.session.execute(delete(PlantImage).where(PlantImage.plant_id == plant_id)),
        )
        result = await self._run(
            "delete",
            self.session.execute(delete(Plant).where(Plant.id == plant_id)),
        )
        return result.rowcount > 0

    @staticmethod
    def _filtered(
        query: Select,
        status: Optional[str] = None,
        q: Optional[str] = None,
        family: Optional[str] = None,
    ) -> Select:
        if status:
            query = query.where(Plant.status == status)
        if q:
            pattern = f"%{q.lower()}%"
            query = query.where(
                or_(
                    func.lower(Plant.name).like(pattern),
                    func.lower(Plant.scientific_name).like(pattern),
                    func.lower(Plant.family).like(pattern),
                )
            )
        if family:
            query = query.where(Plant.family == family)
        return query

    async def list(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        family: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[Plant]:
        query = self._filtered(select(Plant), status, q, family)
        query = query.order_by(Plant.created_at.desc(), Plant.id).limit(limit).offset(offset)
        result = await self._run("list", self.session.execute(query))
        return result.scalars().all()

    async def count(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        family: Optional[str] = None,
    ) -> int:
        query = self._filtered(select(func.count()).select_from(Plant), status, q, family)
        result = await self._run("count", self.session.execute(query))
        return result.scalar_one()

    async def count_by_status(self) -> Dict[str, int]:
        query = select(Plant.status, func.count()).group_by(Plant.status)
        result = await self._run("count_by_status", self.session.execute(query))
        counts = {status: 0 for status in PlantStatus.values()}
        for status, total in result.all():
            counts[status] = total
        return counts

    async def get_image(self, plant_id: uuid.UUID) -> Optional[PlantImage]:
        result = await self._run(
            "get_image",
            self.session.execute(select(PlantImage).where(PlantImage.plant_id == plant_id)),
        )
        return result.scalar_one_or_none()

