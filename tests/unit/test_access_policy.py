"""Unit tests for the access policy decision table."""

import pytest

from herbario.kernel.permissions.access_policy import (
    ACCESS_RULES,
    AccessLevel,
    ListingScope,
    Operation,
    listing_scope_for,
    required_access,
)


class TestListingScope:

    def test_accepted_is_public(self):
        assert listing_scope_for("accepted") is ListingScope.PUBLIC

    @pytest.mark.parametrize(
        "status",
        [None, "", "pending", "rejected", "Accepted", "ACCEPTED", " accepted", "accepted "],
    )
    def test_everything_else_is_admin_only(self, status):
        assert listing_scope_for(status) is ListingScope.ADMIN_ONLY


class TestRequiredAccess:

    @pytest.mark.parametrize(
        "operation",
        [
            Operation.HEALTH,
            Operation.LOGIN,
            Operation.LOGOUT,
            Operation.SUBMIT,
            Operation.COUNT_PENDING,
            Operation.GET_IMAGE,
        ],
    )
    def test_public_operations(self, operation):
        assert required_access(operation) is AccessLevel.PUBLIC

    @pytest.mark.parametrize(
        "operation",
        [
            Operation.COUNT_BY_STATUS,
            Operation.ACCEPT,
            Operation.REJECT,
            Operation.UPDATE,
            Operation.DELETE,
        ],
    )
    def test_admin_operations(self, operation):
        assert required_access(operation) is AccessLevel.ADMIN

    def test_status_does_not_open_admin_operations(self):
        assert required_access(Operation.ACCEPT, status="accepted") is AccessLevel.ADMIN

    def test_listing_depends_on_status(self):
        assert required_access(Operation.LIST, status="accepted") is AccessLevel.PUBLIC
        assert required_access(Operation.LIST, status="pending") is AccessLevel.ADMIN
        assert required_access(Operation.LIST) is AccessLevel.ADMIN

    def test_every_operation_has_a_rule(self):
        assert set(ACCESS_RULES) == set(Operation)
