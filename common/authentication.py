"""Registration, login and token refresh."""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import TokenCodec
from .database import transaction
from .errors import ConflictError, InternalError, InvalidInputError, NotFoundError, UnauthorizedError
from .models import User
from .roles import RoleManager
from .schemas import LoginResult, ModuleAccessEntry, TokenPayload, TokenRefresh, UserRead, UserRegister
from .users import UserManager

logger = logging.getLogger(__name__)


class AuthManager:
    """Binds users to roles and issues their session tokens.

    Built once at startup from its collaborators; request handlers only pass
    in their session.
    """

    def __init__(self, role_manager: RoleManager, user_manager: UserManager, tokens: TokenCodec) -> None:
        self._roles = role_manager
        self._users = user_manager
        self._tokens = tokens

    def register(
        self,
        db: Session,
        user_in: UserRegister,
        module_access: Optional[List[ModuleAccessEntry]] = None,
    ) -> UserRead:
        """Create a user bound to an existing role or to a role synthesized from ``module_access``.

        The email check, the role synthesis and the user insert share one
        transaction, so a failed registration never leaves an orphan role.
        """

        try:
            with transaction(db):
                if self._users.get_user_by_email(db, user_in.email) is not None:
                    raise ConflictError("Email already in use", code="EMAIL_IN_USE")

                if module_access:
                    role = self._roles.add_role(
                        db,
                        f"{user_in.first_name} {user_in.last_name} Role",
                        f"Custom role for {user_in.email}",
                        module_access,
                    )
                    role_id = role.id
                elif user_in.role_id is None:
                    raise InvalidInputError("Role ID is required", code="ROLE_REQUIRED")
                elif self._roles.find_role(db, user_in.role_id) is None:
                    raise NotFoundError("Role not found", code="ROLE_NOT_FOUND")
                else:
                    role_id = user_in.role_id

                user = self._users.create_user(db, user_in, role_id)
        except SQLAlchemyError as exc:
            raise InternalError("Registration failed", detail=str(exc)) from exc

        logger.info("Registered user %s with role %s", user.id, user.role_id)
        return UserRead.model_validate(user)

    def login(self, db: Session, email: str, password: str) -> LoginResult:
        try:
            user = self._users.verify_password(db, email, password)
        except SQLAlchemyError as exc:
            raise InternalError("Login failed", detail=str(exc)) from exc
        if user is None:
            logger.warning("Rejected login for %s", email)
            raise UnauthorizedError("Invalid credentials", code="INVALID_CREDENTIALS")
        return LoginResult(user=UserRead.model_validate(user), token=self.generate_token(user))

    def refresh_token(self, db: Session, user_id: uuid.UUID) -> TokenRefresh:
        """Issue a new token from the user's current record, not from old claims."""

        try:
            user = self._users.get_user_by_id(db, user_id)
        except SQLAlchemyError as exc:
            raise InternalError("Token refresh failed", detail=str(exc)) from exc
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return TokenRefresh(token=self.generate_token(user))

    def generate_token(self, user: User) -> str:
        return self._tokens.encode(TokenPayload(user_id=user.id, email=user.email, role_id=user.role_id))

    def verify_token(self, token: str) -> TokenPayload:
        return self._tokens.decode(token)
