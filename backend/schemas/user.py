from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from models.users import Role
from schemas.common import ORMBase

# Shared properties for user models
class UserBase(ORMBase):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for account creation by an administrator
class UserCreate(UserBase):
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    role: Role = Role.WORKER
    department: Optional[str] = None
    phone: Optional[str] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    name: str
    role: Role
    department: Optional[str] = None
    phone: Optional[str] = None
    active: bool

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
