from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, StrictBool
from typing import Literal, Optional

RoleLiteral = Literal["admin", "user"]

# Schema for user authentication credentials
class UserLogin(BaseModel):
    username: str
    password: str

# Schema for creating an account (admin only)
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    role: RoleLiteral = "user"

# Schema for administrative account updates
class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[RoleLiteral] = None
    is_active: Optional[StrictBool] = None

class PasswordReset(BaseModel):
    password: str = Field(..., min_length=1)

class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)

# Output schema for account details
class UserResponse(BaseModel):
    id: int
    username: str
    role: RoleLiteral
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class MessageResponse(BaseModel):
    message: str
