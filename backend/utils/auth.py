# utils/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import Role, User
from services.errors import Unauthorized
from utils.permissions import requires_role

# Authorization scheme; missing headers are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)

# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "username": user.username, "role": user.role})


# Retrieve the currently authenticated, still active user from the bearer token
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise Unauthorized("Access token required")
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise Unauthorized("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthorized("User no longer exists")
    if not user.is_active:
        raise Unauthorized("User account is deactivated")
    return user

# Dependency factory for role-based access control
def role_required(role: Role):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        return requires_role(current_user, role)
    return _checker


require_admin = role_required(Role.ADMIN)
