"""
Unit tests for the capability table.
"""

import pytest

from service_support.app.access.capabilities import CAPABILITIES, is_permitted, roles_for
from service_support.app.access.errors import UnknownOperation
from service_support.app.access.models import Role, User


class TestCapabilities:
    """Test cases for per-operation allow-lists."""

    def test_every_allow_list_is_non_empty(self):
        for operation, roles in CAPABILITIES.items():
            assert roles, operation
            assert all(isinstance(role, Role) for role in roles)

    def test_support_config_writes_are_admin_only(self):
        for operation in ("support_config.create", "support_config.update", "support_config.deactivate"):
            assert roles_for(operation) == frozenset({Role.SUPER_ADMIN, Role.ADMIN})

    def test_initialize_defaults_is_super_admin_only(self):
        assert roles_for("support_config.initialize_defaults") == frozenset({Role.SUPER_ADMIN})

    def test_roles_are_not_ordered(self):
        # reviewers may read the review queue but beneficiaries may not, and the
        # reverse holds for submitting applications
        assert is_permitted(Role.REVIEWER, "applications.review_queue")
        assert not is_permitted(Role.BENEFICIARY, "applications.review_queue")
        assert is_permitted(Role.BENEFICIARY, "applications.submit")
        assert not is_permitted(Role.REVIEWER, "applications.submit")
        assert not is_permitted(Role.ADMIN, "applications.submit")

    def test_audit_queries(self):
        assert roles_for("audit.by_entity") == frozenset(Role)
        assert Role.REVIEWER not in roles_for("audit.recent")

    def test_unknown_operation_is_key_error(self):
        with pytest.raises(KeyError):
            roles_for("nope")
        with pytest.raises(UnknownOperation):
            is_permitted(Role.ADMIN, "nope")

    def test_admin_roles(self):
        def user(role):
            return User(id="u1", subject="s1", email="u1@x.org", first_name="U", last_name="One", role=role)

        assert [role for role in Role if user(role).is_admin] == [Role.SUPER_ADMIN, Role.ADMIN]
