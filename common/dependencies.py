"""Reusable FastAPI dependencies for auth, authorization and manager access."""
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .access import has_module_access
from .authentication import AuthManager
from .container import Managers
from .database import get_db
from .errors import ForbiddenError, UnauthorizedError
from .models import AccessLevelEnum, ModuleEnum, User
from .roles import RoleManager
from .schemas import TokenPayload
from .users import UserManager

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_managers(request: Request) -> Managers:
    return request.app.state.managers


def get_role_manager(managers: Managers = Depends(get_managers)) -> RoleManager:
    return managers.roles


def get_user_manager(managers: Managers = Depends(get_managers)) -> UserManager:
    return managers.users


def get_auth_manager(managers: Managers = Depends(get_managers)) -> AuthManager:
    return managers.auth


def get_token_payload(
    token: Optional[str] = Depends(oauth_scheme),
    auth_manager: AuthManager = Depends(get_auth_manager),
) -> TokenPayload:
    if not token:
        raise UnauthorizedError("No token provided", code="MISSING_TOKEN")
    return auth_manager.verify_token(token)


def get_current_user(
    payload: TokenPayload = Depends(get_token_payload),
    db: Session = Depends(get_db),
    users: UserManager = Depends(get_user_manager),
) -> User:
    user = users.get_user_by_id(db, payload.user_id)
    if user is None:
        raise UnauthorizedError("User not found", code="USER_NOT_FOUND")
    return user


def require_module_access(module: ModuleEnum, level: AccessLevelEnum) -> Callable[[User], User]:
    """Dependency that lets the request through only with ``level`` or better on ``module``."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_module_access(current_user, module, level):
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return dependency
