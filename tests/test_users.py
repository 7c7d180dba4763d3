"""
Tests for operator accounts and role checks.
"""

import pytest

from aerodesk.exceptions import DuplicateName, NotFound, PermissionDenied, ValidationError
from aerodesk.models.enums import UserRole
from aerodesk.services.users import hash_password, require_role, verify_password
from tests.helpers import NOW


class TestPasswords:

    def test_hash_round_trip(self):
        stored = hash_password("s3cret")
        assert "$" in stored
        assert verify_password("s3cret", stored)
        assert not verify_password("wrong", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")


class TestUserService:

    def test_create_user(self, admin):
        assert admin.username == "admin"
        assert admin.role == UserRole.ADMINISTRATOR
        assert admin.is_active
        assert admin.created_at == NOW

    def test_duplicate_username(self, aero, admin):
        with pytest.raises(DuplicateName):
            aero.users.create_user("admin", "x", UserRole.CHECK_IN_AGENT, "Other Admin")

    @pytest.mark.parametrize("username,password,role", [
        ("", "pw", UserRole.CHECK_IN_AGENT),
        ("bob", "", UserRole.CHECK_IN_AGENT),
        ("bob", "pw", "PILOT"),
    ])
    def test_invalid_input(self, aero, username, password, role):
        with pytest.raises(ValidationError):
            aero.users.create_user(username, password, role, "Bob Builder")

    def test_authenticate(self, aero, agent):
        assert aero.users.authenticate("agent", "s3cret").id == agent.id
        assert aero.users.authenticate("agent", "nope") is None
        assert aero.users.authenticate("ghost", "s3cret") is None

    def test_authenticate_for_a_role(self, aero, agent):
        assert aero.users.authenticate("agent", "s3cret", UserRole.CHECK_IN_AGENT).id == agent.id
        assert aero.users.authenticate("agent", "s3cret", "CHECK_IN_AGENT").id == agent.id
        assert aero.users.authenticate("agent", "s3cret", UserRole.ADMINISTRATOR) is None

    def test_overlong_password(self, aero):
        with pytest.raises(ValidationError):
            aero.users.create_user("bob", "x" * 73, UserRole.CHECK_IN_AGENT, "Bob Builder")
        assert not verify_password("x" * 73, hash_password("x" * 72))

    def test_deactivated_user_cannot_log_in(self, aero, agent):
        aero.users.deactivate("agent")
        assert aero.users.authenticate("agent", "s3cret") is None
        assert [u.username for u in aero.users.list_active()] == []

    def test_deactivate_unknown(self, aero):
        with pytest.raises(NotFound):
            aero.users.deactivate("ghost")

    def test_get_by_username(self, aero, admin):
        assert aero.users.get_by_username("admin").full_name == "Ada Admin"
        assert aero.users.get_by_username("ghost") is None


class TestRequireRole:

    def test_allowed(self, admin):
        require_role(admin, UserRole.ADMINISTRATOR, UserRole.GATE_CONTROLLER)

    def test_wrong_role(self, agent):
        with pytest.raises(PermissionDenied):
            require_role(agent, UserRole.ADMINISTRATOR)

    def test_no_operator(self):
        with pytest.raises(PermissionDenied):
            require_role(None, UserRole.ADMINISTRATOR)
