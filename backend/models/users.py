# backend/models/users.py
import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func
from database import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


# Represents an actor account with credentials and system role
class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default=Role.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
