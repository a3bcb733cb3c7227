"""User persistence operations."""
from __future__ import annotations

import logging
import math
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import get_password_hash
from .auth import verify_password as password_matches
from .database import transaction
from .errors import ConflictError, InternalError, InvalidInputError, NotFoundError
from .models import USER_EMAIL_CONSTRAINT, Role, User
from .schemas import Page, UserRead, UserRegister, UserUpdate

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = {"phone_number"}


def _user_not_found(user_id: uuid.UUID) -> NotFoundError:
    return NotFoundError(f"User with ID {user_id} not found", code="USER_NOT_FOUND")


def is_email_conflict(exc: IntegrityError) -> bool:
    """Whether ``exc`` was raised by the unique constraint on ``user.email``.

    PostgreSQL drivers report the violated constraint by name. SQLite only
    names the columns, as ``UNIQUE constraint failed: user.email``.
    """

    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint is not None:
        return constraint == USER_EMAIL_CONSTRAINT
    return f"{User.__tablename__}.email" in str(exc.orig)


class UserManager:
    """Owns user rows; passwords are hashed with ``common.auth`` before storage."""

    def get_user_by_id(self, db: Session, user_id: uuid.UUID) -> Optional[User]:
        return db.get(User, user_id)

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.scalars(select(User).where(User.email == email).limit(1)).first()

    def create_user(self, db: Session, user_in: UserRegister, role_id: uuid.UUID) -> User:
        """Stage a new user in the caller's open transaction.

        The ``uq_user_email`` constraint is what finally rejects a duplicate, so a
        concurrent registration that slipped past a pre-check still fails here.
        """

        user = User(
            first_name=user_in.first_name,
            last_name=user_in.last_name,
            email=user_in.email,
            phone_number=user_in.phone_number,
            password=get_password_hash(user_in.password),
            role_id=role_id,
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError as exc:
            if is_email_conflict(exc):
                raise ConflictError("Email already in use", code="EMAIL_IN_USE", detail=str(exc)) from exc
            raise InternalError("Failed to create user", detail=str(exc)) from exc
        return user

    def verify_password(self, db: Session, email: str, password: str) -> Optional[User]:
        user = self.get_user_by_email(db, email)
        if user is None or not password_matches(password, user.password):
            return None
        return user

    def get_all_users(self, db: Session, page: int = 1, limit: int = 10) -> Page[UserRead]:
        if page < 1 or limit < 1:
            raise InvalidInputError("Page and limit must be positive integers")
        try:
            total = db.scalar(select(func.count()).select_from(User)) or 0
            users = db.scalars(
                select(User).order_by(User.created_at).offset((page - 1) * limit).limit(limit)
            ).all()
        except SQLAlchemyError as exc:
            raise InternalError("Failed to load users", detail=str(exc)) from exc
        return Page[UserRead](
            items=[UserRead.model_validate(user) for user in users],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def update_user(self, db: Session, user_id: uuid.UUID, changes: UserUpdate) -> UserRead:
        data = changes.model_dump(exclude_unset=True)
        if not data:
            raise InvalidInputError("At least one field must be provided for update")
        try:
            with transaction(db):
                user = self.get_user_by_id(db, user_id)
                if user is None:
                    raise _user_not_found(user_id)
                if data.get("role_id") is not None and db.get(Role, data["role_id"]) is None:
                    raise NotFoundError("Role not found", code="ROLE_NOT_FOUND")
                if data.get("password") is not None:
                    data["password"] = get_password_hash(data["password"])
                for field, value in data.items():
                    if value is None and field not in _NULLABLE_FIELDS:
                        continue
                    setattr(user, field, value)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to update user", detail=str(exc)) from exc

        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(data)))
        return UserRead.model_validate(user)

    def delete_user(self, db: Session, user_id: uuid.UUID) -> None:
        try:
            with transaction(db):
                user = self.get_user_by_id(db, user_id)
                if user is None:
                    raise _user_not_found(user_id)
                db.delete(user)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to delete user", detail=str(exc)) from exc
        logger.info("Deleted user %s", user_id)
