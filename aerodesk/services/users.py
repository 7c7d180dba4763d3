"""
Operator accounts and role checks.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

import bcrypt

from ..database.config import DatabaseConfig
from ..database.models import User
from ..exceptions import DuplicateName, PermissionDenied, ValidationError
from ..models.enums import UserRole
from ..models.user import UserModel
from .common import Clock

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Salted bcrypt hash, stored as text."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, stored_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, stored_hash.encode("utf-8"))


def require_role(user: Optional[Union[User, UserModel]], *roles: UserRole) -> None:
    """
    Check that an operator is active and holds one of ``roles``.

    Raises:
        PermissionDenied: No operator, inactive operator, or wrong role
    """
    if user is None:
        raise PermissionDenied("an authenticated operator is required")
    if not user.is_active:
        raise PermissionDenied(f"operator '{user.username}' is deactivated")
    if user.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise PermissionDenied(f"operator '{user.username}' ({user.role.value}) needs role {allowed}")


class UserService:
    """Create, look up and deactivate operator accounts."""

    def __init__(self, db: DatabaseConfig, clock: Clock = datetime.now):
        self.db = db
        self.clock = clock

    def create_user(self, username: str, password: str, role: UserRole, full_name: str) -> UserModel:
        username = (username or "").strip()
        full_name = (full_name or "").strip()
        if not username or not full_name:
            raise ValidationError("username and full name are required", operation="create_user")
        if not password:
            raise ValidationError("password is required", operation="create_user", entity_id=username)
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password is longer than {MAX_PASSWORD_BYTES} bytes",
                                  operation="create_user", entity_id=username)
        try:
            role = UserRole(role)
        except ValueError as e:
            raise ValidationError(f"unknown role '{role}'", operation="create_user", entity_id=username) from e

        with self.db.transaction("create_user", username) as uow:
            conflict = DuplicateName(f"username '{username}' is already taken")
            if uow.users.get_by_natural_key(username) is not None:
                raise conflict
            user = uow.users.create(
                username=username,
                password_hash=hash_password(password),
                role=role,
                full_name=full_name,
                is_active=True,
                created_at=self.clock(),
            )
            uow.flush(conflict=conflict)
            logger.info(f"Created operator {username} with role {role.value}")
            return UserModel.model_validate(user)

    def get_by_username(self, username: str) -> Optional[UserModel]:
        with self.db.transaction("get_user", username) as uow:
            user = uow.users.get_by_natural_key(username)
            return UserModel.model_validate(user) if user else None

    def list_active(self) -> List[UserModel]:
        with self.db.transaction("list_active_users") as uow:
            return [UserModel.model_validate(user) for user in uow.users.active()]

    def deactivate(self, username: str) -> UserModel:
        with self.db.transaction("deactivate_user", username) as uow:
            user = uow.users.require_by_natural_key(username)
            if uow.users.update(user, is_active=False):
                logger.info(f"Deactivated operator {username}")
            return UserModel.model_validate(user)

    def authenticate(self, username: str, password: str, role: Optional[UserRole] = None) -> Optional[UserModel]:
        """
        Active operator matching the credentials, or None.

        When ``role`` is given the operator must also hold that role, as the
        login screen asks for the desk being opened.
        """
        with self.db.transaction("authenticate", username) as uow:
            user = uow.users.get_by_natural_key(username)
            if user is None or not user.is_active or not verify_password(password, user.password_hash):
                logger.warning(f"Failed login attempt for user: {username}")
                return None
            if role is not None and user.role != UserRole(role):
                logger.warning(f"Login for {username} refused: not a {UserRole(role).value}")
                return None
            return UserModel.model_validate(user)
