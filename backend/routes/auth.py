# backend/routes/auth.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas import user as schemas
from services.errors import Unauthorized
from services.users import UserService
from utils.audit import client_ip, write_log
from utils.auth import get_current_user, token_for

router = APIRouter(prefix="/auth", tags=["Auth"])


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        user = service.authenticate(payload.username, payload.password)
    except Unauthorized:
        # Log the failed attempt before surfacing the error
        known = service.get_by_username(payload.username.strip())
        write_log(db, user_id=(known.id if known else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"username": payload.username})
        raise

    access_token = token_for(user)
    write_log(db, user_id=user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"username": user.username})

    return {"access_token": access_token, "token_type": "bearer", "user": user}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# Change own password; requires the current one
@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.PasswordChange,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        UserService(db).change_password(current_user, payload.current_password, payload.new_password)
    except Unauthorized:
        write_log(db, user_id=current_user.id, action="PASSWORD_CHANGE", resource="auth",
                  status="FAIL", ip=client_ip(request))
        raise
    write_log(db, user_id=current_user.id, action="PASSWORD_CHANGE", resource="auth",
              status="SUCCESS", ip=client_ip(request))
    return {"message": "Password changed successfully"}
