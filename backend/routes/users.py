# backend/routes/users.py
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas import user as schemas
from services.users import UserService
from utils.audit import client_ip, write_log
from utils.auth import require_admin

router = APIRouter(prefix="/users", tags=["Users"])


# List all accounts (Admin only)
@router.get("", response_model=List[schemas.UserResponse])
def list_users(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return UserService(db).list_users()


# Create an account (Admin only)
@router.post("", response_model=schemas.UserResponse, status_code=201)
def create_user(
    payload: schemas.UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = UserService(db).create(username=payload.username, password=payload.password, role=payload.role)
    write_log(db, user_id=current_user.id, action="USER_CREATE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"id": user.id, "username": user.username, "role": user.role})
    return user


# Update username, role or active flag (Admin only); the last admin is protected
@router.put("/{user_id}", response_model=schemas.UserResponse)
def update_user(
    user_id: int,
    payload: schemas.UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = UserService(db).update(user_id, **payload.model_dump(exclude_unset=True))
    write_log(db, user_id=current_user.id, action="USER_UPDATE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"id": user.id, **payload.model_dump(exclude_unset=True)})
    return user


# Set a new password for another account (Admin only)
@router.post("/{user_id}/reset-password", response_model=schemas.MessageResponse)
def reset_password(
    user_id: int,
    payload: schemas.PasswordReset,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = UserService(db).reset_password(user_id, payload.password)
    write_log(db, user_id=current_user.id, action="PASSWORD_RESET", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"id": user.id})
    return {"message": "Password reset successfully"}
