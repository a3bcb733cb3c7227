"""Role and module-access management."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import transaction
from .errors import InternalError, InvalidInputError, NotFoundError
from .models import Role, RoleModuleAccess
from .schemas import ModuleAccessEntry, RoleRead

logger = logging.getLogger(__name__)


def _access_rows(module_access: Iterable[ModuleAccessEntry]) -> List[RoleModuleAccess]:
    # one row per module; a later entry for the same module wins
    latest = {entry.module: entry.access_level for entry in module_access}
    # strictly increasing created_at keeps the rows in request order when read back
    stamp = datetime.utcnow()
    return [
        RoleModuleAccess(module=module, access_level=level, created_at=stamp + timedelta(microseconds=offset))
        for offset, (module, level) in enumerate(latest.items())
    ]


def _role_not_found(role_id: uuid.UUID) -> NotFoundError:
    return NotFoundError(f"Role with ID {role_id} not found", code="ROLE_NOT_FOUND")


class RoleManager:
    """Owns roles and their module-access rows.

    Every method takes the caller's session; writes spanning several rows run
    inside one :func:`common.database.transaction`.
    """

    def find_role(self, db: Session, role_id: uuid.UUID) -> Optional[Role]:
        return db.get(Role, role_id)

    def add_role(
        self,
        db: Session,
        name: str,
        description: Optional[str],
        module_access: Iterable[ModuleAccessEntry],
    ) -> Role:
        """Stage a role with its access rows in the caller's open transaction."""

        role = Role(name=name, description=description)
        role.module_access = _access_rows(module_access)
        db.add(role)
        db.flush()
        if role.id is None:
            raise InternalError("Failed to create role", code="CREATE_FAILED")
        return role

    def create_role(
        self,
        db: Session,
        name: str,
        description: Optional[str],
        module_access: List[ModuleAccessEntry],
    ) -> RoleRead:
        if not module_access:
            raise InvalidInputError("At least one module access is required")
        try:
            with transaction(db):
                role = self.add_role(db, name, description, module_access)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to create role", code="CREATE_FAILED", detail=str(exc)) from exc

        logger.info("Created role %s (%s) with %d module grants", role.name, role.id, len(role.module_access))
        return RoleRead.model_validate(role)

    def get_role_by_id(self, db: Session, role_id: uuid.UUID) -> RoleRead:
        try:
            role = self.find_role(db, role_id)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to load role", detail=str(exc)) from exc
        if role is None:
            raise _role_not_found(role_id)
        return RoleRead.model_validate(role)

    def get_all_roles(self, db: Session) -> List[RoleRead]:
        try:
            roles = db.scalars(select(Role).order_by(Role.created_at)).all()
            return [RoleRead.model_validate(role) for role in roles]
        except SQLAlchemyError as exc:
            raise InternalError("Failed to load roles", detail=str(exc)) from exc

    def update_module_access(
        self,
        db: Session,
        role_id: uuid.UUID,
        module_access: List[ModuleAccessEntry],
    ) -> RoleRead:
        """Replace the role's whole access set with ``module_access``.

        Callers send the complete desired set, not a delta.
        """

        try:
            with transaction(db):
                role = self.find_role(db, role_id)
                if role is None:
                    raise _role_not_found(role_id)
                role.module_access.clear()
                db.flush()
                role.module_access.extend(_access_rows(module_access))
                role.updated_at = datetime.utcnow()
        except SQLAlchemyError as exc:
            raise InternalError("Failed to update role module access", detail=str(exc)) from exc

        logger.info("Replaced module access of role %s with %d grants", role_id, len(module_access))
        return RoleRead.model_validate(role)
