"""
Identity: password hashing, session tokens, credential verification.
"""

from herbario.kernel.identity.password import PasswordHasher, hash_password, verify_password
from herbario.kernel.identity.jwt import (
    AccessTokenPayload,
    JWTManager,
    TokenFailure,
    get_jwt_manager,
)
from herbario.kernel.identity.identity_service import IdentityService

__all__ = [
    "PasswordHasher",
    "hash_password",
    "verify_password",
    "AccessTokenPayload",
    "JWTManager",
    "TokenFailure",
    "get_jwt_manager",
    "IdentityService",
]
