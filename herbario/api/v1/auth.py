"""
Authentication endpoints.
"""

from fastapi import APIRouter, Request

from herbario.api.deps import CurrentUser, DbSession, get_client_ip, read_json_object
from herbario.errors import InvalidCredentialsError
from herbario.kernel.identity.identity_service import IdentityService
from herbario.kernel.models.user import User
from herbario.schemas.auth import LoginResponse, UserLogin, UserResponse, VerifyResponse
from herbario.schemas.common import ErrorResponse, SuccessResponse, validate_payload

router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.display_name,
        role=user.role.value,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login(request: Request, db: DbSession):
    """
    Authenticate with email and password and return a session token.

    Unknown email and wrong password produce the same 401.
    """
    data = validate_payload(UserLogin, await read_json_object(request), "Invalid login data")
    email, password = data.checked()

    result = await IdentityService(db).authenticate(
        email=email,
        password=password,
        ip_address=get_client_ip(request),
    )
    if not result:
        raise InvalidCredentialsError()

    user, token = result
    return LoginResponse(token=token, user=_user_response(user))


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={401: {"model": ErrorResponse}},
)
async def verify(user: CurrentUser):
    """Validate the bearer token and confirm its subject still exists."""
    return VerifyResponse(user=_user_response(user))


@router.post("/logout", response_model=SuccessResponse)
async def logout():
    """
    Log out.

    Tokens are stateless, so this only tells the client to discard its token.
    """
    return SuccessResponse(message="Session closed")
