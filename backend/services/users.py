# backend/services/users.py
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from database import transaction
from models.users import Role, User
from services.errors import Conflict, InvalidInput, NotFound, Unauthorized
from utils.hashing import get_password_hash, verify_password

logger = logging.getLogger(__name__)


def _norm_role(role: Optional[str]) -> str:
    # Anything that is not explicitly admin is a plain user
    return Role.ADMIN.value if (role or "").strip().lower() == Role.ADMIN.value else Role.USER.value


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFound("User not found", user_id=user_id)
        return user

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id.asc()).all()

    def authenticate(self, username: str, password: str) -> User:
        user = self.get_by_username((username or "").strip())
        if user is None or not user.is_active:
            raise Unauthorized("Invalid credentials or user inactive")
        if not verify_password(password, user.password_hash):
            raise Unauthorized("Invalid credentials")
        return user

    def create(self, *, username: str, password: str, role: str = Role.USER.value) -> User:
        username = (username or "").strip()
        if not username or not password:
            raise InvalidInput("Username and password are required")

        with transaction(self.db):
            if self.get_by_username(username) is not None:
                raise Conflict("Username already exists", username=username)
            user = User(
                username=username,
                password_hash=get_password_hash(password),
                role=_norm_role(role),
                is_active=True,
            )
            self.db.add(user)
            self._flush_unique(username)

        logger.info("Created user %s with role %s", user.username, user.role)
        return user

    def update(self, user_id: int, *, username: Optional[str] = None, role: Optional[str] = None,
               is_active: Optional[bool] = None) -> User:
        """
        Change username, role or active flag. Demoting or deactivating the
        last active admin is refused with Conflict.
        """
        with transaction(self.db):
            user = self.get(user_id)
            changes = {}

            if username is not None:
                username = username.strip()
                if not username:
                    raise InvalidInput("Username cannot be empty")
                if username != user.username and self.get_by_username(username) is not None:
                    raise Conflict("Username already exists", username=username)
                changes["username"] = username
            if role is not None:
                changes["role"] = _norm_role(role)
            if is_active is not None:
                changes["is_active"] = is_active

            if not changes:
                return user

            query = self.db.query(User).filter(User.id == user.id)

            loses_admin = user.is_admin and user.is_active and (
                changes.get("is_active") is False or changes.get("role") == Role.USER.value
            )
            if loses_admin:
                # Serialize against other admin changes, then only apply the
                # update while another active admin still exists.
                self._active_admins().with_for_update().all()
                other = aliased(User)
                others = (
                    select(func.count(other.id))
                    .where(other.role == Role.ADMIN.value, other.is_active == True, other.id != user.id)  # noqa: E712
                    .scalar_subquery()
                )
                query = query.filter(others > 0)

            try:
                updated = query.update(changes, synchronize_session=False)
            except IntegrityError as e:
                self._raise_if_username_taken(e, changes.get("username"))
                raise
            if not updated:
                raise Conflict("Cannot deactivate or demote the last admin", user_id=user.id)

        self.db.refresh(user)
        logger.info("Updated user %s (role=%s, active=%s)", user.username, user.role, user.is_active)
        return user

    def reset_password(self, user_id: int, password: str) -> User:
        if not password:
            raise InvalidInput("Password is required")
        with transaction(self.db):
            user = self.get(user_id)
            user.password_hash = get_password_hash(password)
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not current_password or not new_password:
            raise InvalidInput("Current password and new password are required")
        if not verify_password(current_password, user.password_hash):
            raise Unauthorized("Current password is incorrect")
        with transaction(self.db):
            user.password_hash = get_password_hash(new_password)
        return user

    def _active_admins(self):
        return self.db.query(User).filter(User.role == Role.ADMIN.value, User.is_active == True)  # noqa: E712

    def _flush_unique(self, username: str) -> None:
        # The unique index catches a concurrent insert of the same username
        try:
            self.db.flush()
        except IntegrityError as e:
            self._raise_if_username_taken(e, username)
            raise

    @staticmethod
    def _raise_if_username_taken(error: IntegrityError, username: Optional[str]) -> None:
        if username is not None and "username" in str(error.orig).lower():
            raise Conflict("Username already exists", username=username) from error
