"""Seed data: the predefined role catalog and a handful of demo users."""
from __future__ import annotations

import logging
import uuid
from typing import Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from .database import transaction
from .models import PREDEFINED_ROLES, Role
from .roles import RoleManager
from .schemas import ModuleAccessEntry, UserRegister
from .users import UserManager

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "Password123!"

# email, first name, last name, phone, role name
DEMO_USERS = (
    ("admin@leaktrak.com", "Admin", "User", "123-456-7890", "Admin"),
    ("pm@leaktrak.com", "Project", "Manager", "123-456-7891", "PM"),
    ("cto@leaktrak.com", "Chief", "Technology", "123-456-7892", "CTO"),
    ("coo@leaktrak.com", "Chief", "Operations", "123-456-7893", "COO"),
    ("vp@leaktrak.com", "Vice", "President", "123-456-7894", "VP"),
)


def seed_predefined_roles(db: Session, role_manager: RoleManager) -> Dict[str, uuid.UUID]:
    """Create every predefined role that does not exist yet; return ids by role name."""

    role_ids: Dict[str, uuid.UUID] = {}
    with transaction(db):
        existing = {role.name: role.id for role in db.scalars(select(Role).where(Role.name.in_(PREDEFINED_ROLES)))}
        for name, (description, grants) in PREDEFINED_ROLES.items():
            if name in existing:
                role_ids[name] = existing[name]
                continue
            entries = [ModuleAccessEntry(module=module, access_level=level) for module, level in grants]
            role_ids[name] = role_manager.add_role(db, name, description, entries).id
            logger.info("Seeded role %s", name)
    return role_ids


def seed_demo_users(db: Session, user_manager: UserManager, role_ids: Dict[str, uuid.UUID]) -> int:
    """Create the demo accounts that are missing; return how many were added."""

    created = 0
    with transaction(db):
        for email, first_name, last_name, phone, role_name in DEMO_USERS:
            if role_name not in role_ids or user_manager.get_user_by_email(db, email) is not None:
                continue
            user_in = UserRegister(
                email=email,
                password=DEMO_PASSWORD,
                first_name=first_name,
                last_name=last_name,
                phone_number=phone,
            )
            user_manager.create_user(db, user_in, role_ids[role_name])
            created += 1
    logger.info("Seeded %d demo users", created)
    return created
