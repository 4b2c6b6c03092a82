"""
FastAPI dependencies for database sessions, authentication and access control.
"""

import json
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from herbario.config import get_settings
from herbario.database import get_db
from herbario.errors import ForbiddenError, InvalidTokenError, ValidationError
from herbario.kernel.identity.identity_service import IdentityService
from herbario.kernel.identity.jwt import AccessTokenPayload, get_jwt_manager
from herbario.kernel.models.user import User
from herbario.kernel.permissions.access_policy import AccessLevel, Operation, required_access
from herbario.orchestration.state_machine import ModerationStateMachine
from herbario.schemas.common import validate_payload
from herbario.schemas.plant import PlantListQuery
from herbario.logging_config import get_logger

logger = get_logger(__name__)

# Only the Bearer scheme is recognised; anything else reads as "no token"
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]
BearerCredentials = Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)]


def get_state_machine(db: DbSession) -> ModerationStateMachine:
    return ModerationStateMachine(db)


Moderation = Annotated[ModerationStateMachine, Depends(get_state_machine)]


def get_token_payload(credentials: BearerCredentials) -> AccessTokenPayload:
    """Verify the bearer token's signature and expiry (no database lookup)."""
    token = credentials.credentials if credentials else None
    return get_jwt_manager().verify_access_token(token)


def authorize(
    operation: Operation,
    credentials: Optional[HTTPAuthorizationCredentials],
    status: Optional[str] = None,
) -> Optional[AccessTokenPayload]:
    """
    Apply the access policy to one request.

    Public operations return None without looking at the token. Admin
    operations trust the role embedded in a valid token.

    Raises:
        TokenError: token missing, invalid or expired (401)
        ForbiddenError: valid token without the admin role (403)
    """
    if required_access(operation, status) is AccessLevel.PUBLIC:
        return None

    payload = get_token_payload(credentials)
    if not payload.is_admin:
        logger.info(
            "Admin access denied",
            extra={"operation": operation.value, "user_id": payload.sub},
        )
        raise ForbiddenError()
    return payload


class AccessGate:
    """
    Dependency enforcing the access policy for a fixed operation.

    Usage:
        @router.put("/{plant_id}/accept")
        async def accept(
            plant_id: str,
            actor: Annotated[AccessTokenPayload, Depends(AccessGate(Operation.ACCEPT))],
        ):
            ...
    """

    def __init__(self, operation: Operation):
        self.operation = operation

    async def __call__(self, credentials: BearerCredentials) -> Optional[AccessTokenPayload]:
        return authorize(self.operation, credentials)


async def get_list_query(request: Request) -> PlantListQuery:
    """Validate the listing query string; unknown parameters are rejected."""
    return validate_payload(
        PlantListQuery,
        dict(request.query_params),
        message="Invalid query parameters",
    )


ListQuery = Annotated[PlantListQuery, Depends(get_list_query)]


async def require_listing_access(
    query: ListQuery,
    credentials: BearerCredentials,
) -> Optional[AccessTokenPayload]:
    """Listing gate: runs after query validation and looks at the status filter."""
    return authorize(Operation.LIST, credentials, status=query.status)


async def get_current_user(
    payload: Annotated[AccessTokenPayload, Depends(get_token_payload)],
    db: DbSession,
) -> User:
    """Resolve the token subject to a stored principal (used by /auth/verify)."""
    user_id = payload.user_id
    user = await IdentityService(db).get_user_by_id(user_id) if user_id else None
    if user is None:
        raise InvalidTokenError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_client_ip(request: Request) -> str:
    """
    Client IP for rate limiting and logs.

    X-Forwarded-For is read right to left and only across the configured
    number of trusted proxy hops; entries further left are client-supplied
    and ignored.
    """
    peer = request.client.host if request.client else "unknown"
    hops = get_settings().trusted_proxy_hops
    if hops <= 0:
        return peer

    forwarded = request.headers.get("x-forwarded-for", "")
    chain = [entry.strip() for entry in forwarded.split(",") if entry.strip()]
    chain.append(peer)
    return chain[max(0, len(chain) - 1 - hops)]


async def read_json_object(request: Request, allow_empty: bool = True) -> dict:
    """Parse the request body as a JSON object; an empty body reads as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        if allow_empty:
            return {}
        raise ValidationError("Request body is required")
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError("Malformed JSON body")
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data
