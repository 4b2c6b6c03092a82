"""
Access policy: which operations are public and which need an admin token.
"""

from herbario.kernel.permissions.access_policy import (
    ACCESS_RULES,
    AccessLevel,
    ListingScope,
    Operation,
    listing_scope_for,
    required_access,
)

__all__ = [
    "ACCESS_RULES",
    "AccessLevel",
    "ListingScope",
    "Operation",
    "listing_scope_for",
    "required_access",
]
