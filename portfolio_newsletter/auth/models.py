from pydantic import BaseModel
from typing import Optional
from enum import Enum

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"

class TokenData(BaseModel):
    sub: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    exp: Optional[int] = None
