"""
Access policy decision table.

Every API operation maps to an access level. Listing is the one operation
whose level depends on the request: only an exact ``status=accepted`` filter
is public, everything else (including no filter) is admin-only.
"""

from enum import Enum
from typing import Dict, Optional

PUBLIC_LISTING_STATUS = "accepted"


class AccessLevel(str, Enum):
    """Requirement an operation places on the caller."""

    PUBLIC = "public"
    ADMIN = "admin"
    BY_LISTING_SCOPE = "by_listing_scope"


class ListingScope(str, Enum):
    """Resolved scope of a listing request."""

    PUBLIC = "public"
    ADMIN_ONLY = "admin_only"


class Operation(str, Enum):
    HEALTH = "health"
    LOGIN = "login"
    LOGOUT = "logout"
    SUBMIT = "submit"
    LIST = "list"
    COUNT_PENDING = "count_pending"
    GET_IMAGE = "get_image"
    COUNT_BY_STATUS = "count_by_status"
    ACCEPT = "accept"
    REJECT = "reject"
    UPDATE = "update"
    DELETE = "delete"


ACCESS_RULES: Dict[Operation, AccessLevel] = {
    Operation.HEALTH: AccessLevel.PUBLIC,
    Operation.LOGIN: AccessLevel.PUBLIC,
    Operation.LOGOUT: AccessLevel.PUBLIC,
    Operation.SUBMIT: AccessLevel.PUBLIC,
    Operation.COUNT_PENDING: AccessLevel.PUBLIC,
    Operation.GET_IMAGE: AccessLevel.PUBLIC,
    Operation.LIST: AccessLevel.BY_LISTING_SCOPE,
    Operation.COUNT_BY_STATUS: AccessLevel.ADMIN,
    Operation.ACCEPT: AccessLevel.ADMIN,
    Operation.REJECT: AccessLevel.ADMIN,
    Operation.UPDATE: AccessLevel.ADMIN,
    Operation.DELETE: AccessLevel.ADMIN,
}


def listing_scope_for(status: Optional[str]) -> ListingScope:
    """Exact string match: ' accepted', 'Accepted' and '' are all admin-only."""
    if status == PUBLIC_LISTING_STATUS:
        return ListingScope.PUBLIC
    return ListingScope.ADMIN_ONLY


def required_access(operation: Operation, status: Optional[str] = None) -> AccessLevel:
    """Resolve an operation (and, for listings, its status filter) to PUBLIC or ADMIN."""
    level = ACCESS_RULES[operation]
    if level is AccessLevel.BY_LISTING_SCOPE:
        if listing_scope_for(status) is ListingScope.PUBLIC:
            return AccessLevel.PUBLIC
        return AccessLevel.ADMIN
    return level
