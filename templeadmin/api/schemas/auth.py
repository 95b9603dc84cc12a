from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from templeadmin.core.rbac.permissions import AccessLevel, Role, is_valid_permission


class LoginRequest(BaseModel):
    mobile: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class GrantSchema(BaseModel):
    permission_id: str
    access_level: AccessLevel

    @field_validator("permission_id")
    @classmethod
    def known_permission(cls, value: str) -> str:
        if not is_valid_permission(value):
            raise ValueError(f"Unknown permission: {value}")
        return value

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    mobile: str
    username: str
    email: Optional[str]
    full_name: Optional[str]
    role: str
    status: str
    temple_id: int
    website_link: Optional[str] = None
    trust_information: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse
    temple_name: Optional[str] = None
    permissions: List[GrantSchema]


class UserCreate(BaseModel):
    mobile: str = Field(..., min_length=1, max_length=20)
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: Role = Role.MEMBER
    temple_id: Optional[int] = None
    permissions: Optional[List[GrantSchema]] = None


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[str] = Field(None, pattern="^(active|inactive|suspended)$")
    password: Optional[str] = Field(None, min_length=6)


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    website_link: Optional[str] = None
    trust_information: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6)


class GrantsUpdate(BaseModel):
    permissions: List[GrantSchema]
