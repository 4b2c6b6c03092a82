"""
Plant submission schemas.

Input models forbid unknown fields, so a client cannot smuggle ``status``
(or anything else) into a submission.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from herbario.kernel.models.plant import PlantStatus


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _coordinate(value: Any) -> Any:
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("must be a number")
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return number


class _PlantFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=255)
    scientific_name: Optional[str] = Field(None, max_length=255)
    family: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("name", "scientific_name", "family", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def parse_coordinate(cls, v: Any) -> Any:
        return _coordinate(v)


class PlantCreate(_PlantFields):
    """Public submission payload."""

    @model_validator(mode="after")
    def require_a_name(self) -> "PlantCreate":
        if not self.name and not self.scientific_name:
            raise ValueError("name or scientific_name is required")
        if not self.name:
            self.name = self.scientific_name
        return self


class PlantUpdate(_PlantFields):
    """Administrative partial update. Absent or null fields are left untouched."""

    status: Optional[PlantStatus] = None

    def changes(self) -> dict:
        changes = self.model_dump(exclude_none=True)
        if "status" in changes:
            changes["status"] = PlantStatus(changes["status"]).value
        return changes


class PlantListQuery(BaseModel):
    """Query string accepted by GET /plants."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: Optional[Literal["pending", "accepted", "rejected", ""]] = None
    q: Optional[str] = Field(None, max_length=200)
    family: Optional[str] = Field(None, max_length=255)
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100, alias="pageSize")

    @field_validator("q", "family", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @property
    def status_filter(self) -> Optional[str]:
        return self.status or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class ImageUpload:
    """Photo attached to a submission."""

    mime_type: str
    data: bytes


class PlantResponse(BaseModel):
    """Plant record as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: Optional[str] = None
    scientific_name: Optional[str] = None
    family: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: PlantStatus
    accepted_by: Optional[uuid.UUID] = None
    rejected_by: Optional[uuid.UUID] = None
    has_image: bool = False
    created_at: datetime
    updated_at: datetime


class PlantEnvelope(BaseModel):
    success: bool = True
    data: PlantResponse


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    page_size: int = Field(..., serialization_alias="pageSize")
    total: int
    total_pages: int = Field(..., serialization_alias="totalPages")

    @classmethod
    def create(cls, page: int, page_size: int, total: int) -> "Pagination":
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=max(1, math.ceil(total / page_size)),
        )


class PlantListResponse(BaseModel):
    data: List[PlantResponse]
    pagination: Pagination


class StatusCounts(BaseModel):
    pending: int = 0
    accepted: int = 0
    rejected: int = 0


class PendingCount(BaseModel):
    pending: int = 0
