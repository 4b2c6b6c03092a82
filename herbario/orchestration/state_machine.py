"""
Moderation state machine for plant submissions.

States: pending (initial), accepted, rejected. Creation is the only way into
``pending``; accept and reject are legal from any state. Attribution
(accepted_by / rejected_by) is recorded only for authenticated admins.
"""

import uuid
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from herbario.errors import NotFoundError
from herbario.kernel.identity.jwt import AccessTokenPayload
from herbario.kernel.models.plant import Plant, PlantImage, PlantStatus
from herbario.kernel.plants.repository import PlantRepository
from herbario.logging_config import get_logger
from herbario.schemas.plant import ImageUpload, PlantCreate, PlantListQuery

logger = get_logger(__name__)


class Transition(str, Enum):
    """Moderation actions that move a record to a fixed target state."""

    ACCEPT = "accept"
    REJECT = "reject"


# action -> (target state, attribution column)
_TRANSITIONS: Dict[Transition, Tuple[PlantStatus, str]] = {
    Transition.ACCEPT: (PlantStatus.ACCEPTED, "accepted_by"),
    Transition.REJECT: (PlantStatus.REJECTED, "rejected_by"),
}


def attribution_for(actor: Optional[AccessTokenPayload]) -> Optional[uuid.UUID]:
    """Actor id to record, or None for anonymous and non-admin actors."""
    if actor is None or not actor.is_admin:
        return None
    return actor.user_id


def parse_plant_id(raw: Any) -> Optional[uuid.UUID]:
    """Parse a path id; malformed ids are treated as nonexistent."""
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


class ModerationStateMachine:
    """Applies submissions and moderation transitions to plant records."""

    def __init__(self, session: AsyncSession, repository: Optional[PlantRepository] = None):
        self.session = session
        self.repository = repository or PlantRepository(session)

    async def _require(self, plant_id: Any) -> Plant:
        parsed = parse_plant_id(plant_id)
        plant = await self.repository.get(parsed) if parsed else None
        if plant is None:
            raise NotFoundError("Plant", plant_id)
        return plant

    async def _attribution(self, actor: Optional[AccessTokenPayload]) -> Optional[uuid.UUID]:
        """Attribution id for ``actor``; empty when its principal has since been deleted."""
        actor_id = attribution_for(actor)
        if actor_id is not None and not await self.repository.user_exists(actor_id):
            logger.warning("Moderator no longer exists", extra={"actor_id": str(actor_id)})
            return None
        return actor_id

    async def create(self, data: PlantCreate, image: Optional[ImageUpload] = None) -> Plant:
        """Store a new submission. Always starts in ``pending``."""
        image_row = None
        if image is not None:
            image_row = PlantImage(mime_type=image.mime_type, data=image.data)
        plant = await self.repository.create(data.model_dump(), image=image_row)
        await self.repository.commit()
        logger.info(
            "Plant submitted",
            extra={"plant_id": str(plant.id), "has_image": image is not None},
        )
        return plant

    async def apply(
        self,
        plant_id: Any,
        action: Transition,
        actor: Optional[AccessTokenPayload] = None,
    ) -> Plant:
        """Move a record to the action's target state and record attribution."""
        plant = await self._require(plant_id)
        to_state, attribution_column = _TRANSITIONS[action]
        from_state = plant.status

        plant.status = to_state.value
        actor_id = await self._attribution(actor)
        if actor_id is not None:
            setattr(plant, attribution_column, actor_id)

        plant = await self.repository.save(plant)
        await self.repository.commit()
        logger.info(
            "Plant moderated",
            extra={
                "plant_id": str(plant.id),
                "from_state": from_state,
                "to_state": to_state.value,
                "actor_id": str(actor_id) if actor_id else None,
            },
        )
        return plant

    async def accept(self, plant_id: Any, actor: Optional[AccessTokenPayload] = None) -> Plant:
        return await self.apply(plant_id, Transition.ACCEPT, actor)

    async def reject(self, plant_id: Any, actor: Optional[AccessTokenPayload] = None) -> Plant:
        return await self.apply(plant_id, Transition.REJECT, actor)

    async def update(self, plant_id: Any, changes: Dict[str, Any]) -> Plant:
        """
        Administrative partial update.

        ``status`` may be set directly here without touching attribution.
        An empty change set returns the record unchanged.
        """
        plant = await self._require(plant_id)
        if not changes:
            return plant

        for field, value in changes.items():
            setattr(plant, field, value)
        plant = await self.repository.save(plant)
        await self.repository.commit()
        logger.info(
            "Plant updated",
            extra={"plant_id": str(plant.id), "fields": sorted(changes)},
        )
        return plant

    async def remove(self, plant_id: Any) -> None:
        """Delete a record permanently."""
        parsed = parse_plant_id(plant_id)
        if parsed is None or not await self.repository.delete(parsed):
            raise NotFoundError("Plant", plant_id)
        await self.repository.commit()
        logger.info("Plant deleted", extra={"plant_id": str(parsed)})

    async def list(self, query: PlantListQuery) -> Tuple[Sequence[Plant], int]:
        """One page of records plus the total matching count."""
        filters = {"status": query.status_filter, "q": query.q, "family": query.family}
        items = await self.repository.list(
            **filters,
            limit=query.page_size,
            offset=query.offset,
        )
        total = await self.repository.count(**filters)
        return items, total

    async def count_by_status(self) -> Dict[str, int]:
        return await self.repository.count_by_status()

    async def count_pending(self) -> int:
        return await self.repository.count(status=PlantStatus.PENDING.value)

    async def get_image(self, plant_id: Any) -> PlantImage:
        parsed = parse_plant_id(plant_id)
        image = await self.repository.get_image(parsed) if parsed else None
        if image is None:
            raise NotFoundError("Image", plant_id)
        return image
