"""
Common schema types used across the API.
"""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from herbario.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class ErrorResponse(BaseModel):
    """Uniform error body."""

    model_config = ConfigDict(populate_by_name=True)

    error: bool = True
    code: str
    message: str
    correlation_id: str = Field(..., alias="correlationId")
    details: Optional[Any] = None


class SuccessResponse(BaseModel):
    """Standard success response."""

    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    ok: bool = True
    service: str
    version: str


def validation_details(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into field/message pairs."""
    details = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        details.append({
            "field": ".".join(loc),
            "message": error.get("msg", "Invalid value"),
        })
    return details


def validate_payload(model: Type[M], data: Any, message: str = "Invalid data") -> M:
    """Validate ``data`` against ``model``, raising the API's VALIDATION_ERROR."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(message, details=validation_details(exc.errors()))
