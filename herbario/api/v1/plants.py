"""
Plant submission and moderation endpoints.
"""

from typing import Annotated, Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.datastructures import UploadFile

from herbario.api.deps import (
    AccessGate,
    ListQuery,
    Moderation,
    read_json_object,
    require_listing_access,
)
from herbario.config import get_settings
from herbario.errors import PayloadTooLargeError, ValidationError
from herbario.kernel.identity.jwt import AccessTokenPayload
from herbario.kernel.permissions.access_policy import Operation
from herbario.schemas.common import ErrorResponse, SuccessResponse, validate_payload
from herbario.schemas.plant import (
    ImageUpload,
    Pagination,
    PendingCount,
    PlantCreate,
    PlantEnvelope,
    PlantListResponse,
    PlantResponse,
    PlantUpdate,
    StatusCounts,
)

router = APIRouter()

IMAGE_FIELD = "imagen"
IMAGE_CACHE_CONTROL = "public, max-age=600"
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

_ADMIN_ERRORS: Dict[Any, Dict[str, Any]] = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


async def _read_image(upload: UploadFile) -> Optional[ImageUpload]:
    limit = get_settings().upload_max_bytes
    data = await upload.read(limit + 1)
    if not data and not upload.filename:
        # Browsers send an empty part when no file was chosen
        return None
    if len(data) > limit:
        raise PayloadTooLargeError(f"Image exceeds {limit} bytes")
    mime_type = (upload.content_type or "").lower()
    if not mime_type.startswith("image/"):
        raise ValidationError(
            "Invalid submission",
            details=[{"field": IMAGE_FIELD, "message": "File must be an image"}],
        )
    return ImageUpload(mime_type=mime_type, data=data)


async def _read_submission(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """Submission fields plus optional image, from a form or a JSON body."""
    content_type = request.headers.get("content-type", "").lower()
    if not content_type.startswith(FORM_CONTENT_TYPES):
        return await read_json_object(request, allow_empty=False), None

    image = None
    fields: Dict[str, Any] = {}
    async with request.form() as form:
        for key, value in form.multi_items():
            if key == IMAGE_FIELD and isinstance(value, UploadFile):
                image = await _read_image(value)
            elif key == IMAGE_FIELD and not value:
                continue
            else:
                fields[key] = value
    return fields, image


@router.post(
    "/submissions",
    response_model=PlantEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
)
async def submit_plant(request: Request, moderation: Moderation):
    """
    Submit a plant record (public).

    Accepts JSON or multipart form data with an optional image in the
    ``imagen`` field. The record always starts as ``pending``.
    """
    fields, image = await _read_submission(request)
    data = validate_payload(PlantCreate, fields, "Invalid submission")
    plant = await moderation.create(data, image=image)
    return PlantEnvelope(data=PlantResponse.model_validate(plant))


@router.get(
    "",
    response_model=PlantListResponse,
    responses={400: {"model": ErrorResponse}, **_ADMIN_ERRORS},
)
async def list_plants(
    query: ListQuery,
    _: Annotated[Optional[AccessTokenPayload], Depends(require_listing_access)],
    moderation: Moderation,
):
    """
    List plant records.

    Public when ``status=accepted``; any other status filter, or none,
    requires an admin token.
    """
    items, total = await moderation.list(query)
    return PlantListResponse(
        data=[PlantResponse.model_validate(p) for p in items],
        pagination=Pagination.create(page=query.page, page_size=query.page_size, total=total),
    )


@router.get("/count", response_model=StatusCounts, responses=_ADMIN_ERRORS)
async def count_by_status(
    _: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.COUNT_BY_STATUS))],
    moderation: Moderation,
):
    """Record counts per moderation status (admin)."""
    return StatusCounts(**await moderation.count_by_status())


@router.get("/count/pending", response_model=PendingCount)
async def count_pending(moderation: Moderation):
    """Number of submissions awaiting moderation (public)."""
    return PendingCount(pending=await moderation.count_pending())


@router.get(
    "/{plant_id}/imagen",
    response_class=Response,
    responses={200: {"content": {"image/*": {}}}, 404: {"model": ErrorResponse}},
)
async def get_plant_image(plant_id: str, moderation: Moderation):
    """Raw image bytes of a plant record (public)."""
    image = await moderation.get_image(plant_id)
    return Response(
        content=image.data,
        media_type=image.mime_type,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL},
    )


@router.put("/{plant_id}/accept", response_model=PlantEnvelope, responses=_ADMIN_ERRORS)
async def accept_plant(
    plant_id: str,
    actor: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.ACCEPT))],
    moderation: Moderation,
):
    """Mark a record as accepted, attributed to the acting admin."""
    plant = await moderation.accept(plant_id, actor)
    return PlantEnvelope(data=PlantResponse.model_validate(plant))


@router.put("/{plant_id}/reject", response_model=PlantEnvelope, responses=_ADMIN_ERRORS)
async def reject_plant(
    plant_id: str,
    actor: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.REJECT))],
    moderation: Moderation,
):
    """Mark a record as rejected, attributed to the acting admin."""
    plant = await moderation.reject(plant_id, actor)
    return PlantEnvelope(data=PlantResponse.model_validate(plant))


@router.put(
    "/{plant_id}",
    response_model=PlantEnvelope,
    responses={400: {"model": ErrorResponse}, **_ADMIN_ERRORS},
)
async def update_plant(
    plant_id: str,
    request: Request,
    _: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.UPDATE))],
    moderation: Moderation,
):
    """
    Partially update a record (admin).

    Only fields present and non-null are changed. ``status`` may be set
    directly. An empty body returns the record unchanged.
    """
    data = validate_payload(PlantUpdate, await read_json_object(request), "Invalid update")
    plant = await moderation.update(plant_id, data.changes())
    return PlantEnvelope(data=PlantResponse.model_validate(plant))


@router.delete("/{plant_id}", response_model=SuccessResponse, responses=_ADMIN_ERRORS)
async def delete_plant(
    plant_id: str,
    _: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.DELETE))],
    moderation: Moderation,
):
    """Permanently delete a record and its image (admin)."""
    await moderation.remove(plant_id)
    return SuccessResponse(message="Plant deleted")
