"""SQLAlchemy models shared across all services."""
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy import Boolean, DateTime, Enum as SqlEnum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class ModuleEnum(str, Enum):
    DASHBOARD = "dashboard"
    PROJECTS = "projects"
    SURVEYS = "surveys"
    CALENDAR = "calendar"
    CUSTOMERS = "customers"
    COMPONENTS = "components"
    EQUIPMENTS = "equipments"
    FACILITY = "facility"
    ROLES = "roles"
    REPORTS = "reports"


class AccessLevelEnum(str, Enum):
    """Permission grades, declared lowest to highest."""

    NO_ACCESS = "no_access"
    VIEW_ACCESS = "view_access"
    EDIT_ACCESS = "edit_access"
    FULL_ACCESS = "full_access"


USER_EMAIL_CONSTRAINT = "uq_user_email"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class BaseColumns:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)


class Role(BaseColumns, Base):
    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(String(500), default=None)

    module_access: Mapped[List["RoleModuleAccess"]] = relationship(
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RoleModuleAccess.created_at",
    )
    users: Mapped[List["User"]] = relationship(back_populates="role")


class RoleModuleAccess(BaseColumns, Base):
    __tablename__ = "role_module_access"
    __table_args__ = (UniqueConstraint("role_id", "module", name="uq_role_module_access_role_module"),)

    role_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("role.id"), index=True)
    module: Mapped[ModuleEnum] = mapped_column(SqlEnum(ModuleEnum, name="module", values_callable=_enum_values))
    access_level: Mapped[AccessLevelEnum] = mapped_column(
        SqlEnum(AccessLevelEnum, name="access_level", values_callable=_enum_values),
        default=AccessLevelEnum.NO_ACCESS,
    )

    role: Mapped[Role] = relationship(back_populates="module_access")


class User(BaseColumns, Base):
    __tablename__ = "user"
    __table_args__ = (UniqueConstraint("email", name=USER_EMAIL_CONSTRAINT),)

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), default=None)
    password: Mapped[str] = mapped_column(String(255))
    role_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("role.id"), index=True)

    role: Mapped[Role] = relationship(back_populates="users", lazy="joined")


_ALL_MODULES_FULL = tuple((module, AccessLevelEnum.FULL_ACCESS) for module in ModuleEnum)

# name -> (description, default module access); seeded by common.seed
PREDEFINED_ROLES: Dict[str, Tuple[str, Tuple[Tuple[ModuleEnum, AccessLevelEnum], ...]]] = {
    "Admin": ("Administrator with full access", _ALL_MODULES_FULL),
    "DBA": (
        "DBA - Data base administrator",
        tuple(
            (module, AccessLevelEnum.VIEW_ACCESS)
            for module in (
                ModuleEnum.DASHBOARD,
                ModuleEnum.PROJECTS,
                ModuleEnum.SURVEYS,
                ModuleEnum.CUSTOMERS,
                ModuleEnum.COMPONENTS,
                ModuleEnum.EQUIPMENTS,
            )
        ),
    ),
    "CTO": (
        "CTO - Chief Technology Officer",
        (
            (ModuleEnum.DASHBOARD, AccessLevelEnum.FULL_ACCESS),
            (ModuleEnum.PROJECTS, AccessLevelEnum.FULL_ACCESS),
            (ModuleEnum.SURVEYS, AccessLevelEnum.FULL_ACCESS),
            (ModuleEnum.COMPONENTS, AccessLevelEnum.FULL_ACCESS),
        ),
    ),
    "COO": (
        "COO - Chief Operating Officer",
        (
            (ModuleEnum.DASHBOARD, AccessLevelEnum.VIEW_ACCESS),
            (ModuleEnum.CUSTOMERS, AccessLevelEnum.EDIT_ACCESS),
            (ModuleEnum.PROJECTS, AccessLevelEnum.VIEW_ACCESS),
        ),
    ),
    "VP": (
        "VP - Vice President",
        (
            (ModuleEnum.DASHBOARD, AccessLevelEnum.VIEW_ACCESS),
            (ModuleEnum.PROJECTS, AccessLevelEnum.EDIT_ACCESS),
            (ModuleEnum.CUSTOMERS, AccessLevelEnum.EDIT_ACCESS),
        ),
    ),
    "PM": (
        "PM - Project Manager",
        (
            (ModuleEnum.DASHBOARD, AccessLevelEnum.VIEW_ACCESS),
            (ModuleEnum.PROJECTS, AccessLevelEnum.FULL_ACCESS),
            (ModuleEnum.SURVEYS, AccessLevelEnum.EDIT_ACCESS),
            (ModuleEnum.CUSTOMERS, AccessLevelEnum.EDIT_ACCESS),
        ),
    ),
}
