# storefront/schemas/auth.py

from pydantic import BaseModel
from typing import Optional


class AdminClaims(BaseModel):
    """
    Verified claims of an admin session token.
    """
    type: str
    sub: str
    username: Optional[str] = None
    iat: int
    exp: int


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AdminUser(BaseModel):
    id: str
    username: str
