"""Pydantic schemas shared across the services.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import AccessLevelEnum, ModuleEnum

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ModuleAccessEntry(CamelModel):
    """One (module, access level) grant of a role."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True, frozen=True)

    module: ModuleEnum
    access_level: AccessLevelEnum


class ModuleAccessRead(CamelModel):
    id: uuid.UUID
    role_id: uuid.UUID
    module: ModuleEnum
    access_level: AccessLevelEnum
    created_at: datetime
    updated_at: datetime


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    module_access: List[ModuleAccessEntry] = Field(..., min_length=1)


class RoleModuleAccessUpdate(CamelModel):
    module_access: List[ModuleAccessEntry] = Field(..., min_length=1)


class RoleRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    module_access: List[ModuleAccessRead]


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    role_id: Optional[uuid.UUID] = None
    # Raw checkbox-grid payload; normalized by common.access before use.
    module_access: Optional[Any] = None


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    password: Optional[str] = Field(None, min_length=6)
    role_id: Optional[uuid.UUID] = None


class UserRead(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class UserWithRoleRead(UserRead):
    role: RoleRead


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResult(CamelModel):
    user: UserRead
    token: str


class TokenRefresh(CamelModel):
    token: str


class TokenPayload(CamelModel):
    user_id: uuid.UUID
    email: str
    role_id: uuid.UUID


class Page(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str = "Operation successful"
    data: Optional[T] = None


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    code: str
