"""Pydantic schemas for User, Session and Auth."""

from pydantic import BaseModel
from datetime import datetime
from typing import Literal, Optional

from devflow.domain.roles import Role


class UserRead(BaseModel):
    id: int
    username: str
    name: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthSession(BaseModel):
    user: Optional[UserRead] = None
    is_authenticated: bool = False

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None


class LoginRequest(BaseModel):
    username: str
    pin: str


class LoginResult(BaseModel):
    success: bool
    error: Optional[str] = None


class SessionState(BaseModel):
    session: AuthSession
    loading: bool


class EmployeeCreate(BaseModel):
    first_name: str = ""
    last_name: str = ""
    role: Literal["sales", "engineer"] = "sales"
    pin: str = ""
