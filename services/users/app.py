from contextlib import asynccontextmanager
import uuid

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from common.access import has_module_access, normalize_module_access
from common.authentication import AuthManager
from common.config import get_settings
from common.container import attach_managers
from common.database import Base, SessionLocal, engine, get_db
from common.dependencies import get_auth_manager, get_current_user, get_token_payload, get_user_manager
from common.errors import ForbiddenError, NotFoundError, install_error_handlers
from common.logging_middleware import add_audit_middleware
from common.models import AccessLevelEnum, ModuleEnum, User
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    ApiResponse,
    LoginRequest,
    LoginResult,
    Page,
    TokenPayload,
    TokenRefresh,
    UserRead,
    UserRegister,
    UserUpdate,
    UserWithRoleRead,
)
from common.seed import seed_predefined_roles
from common.users import UserManager

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    if settings.seed_predefined_roles:
        with SessionLocal() as db:
            seed_predefined_roles(db, app.state.managers.roles)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Users Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    attach_managers(fastapi_app, settings)
    install_error_handlers(fastapi_app)
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "users")
    return fastapi_app


app = create_app()


def _can_manage_user(current_user: User, user_id: uuid.UUID) -> bool:
    return current_user.id == user_id or has_module_access(current_user, ModuleEnum.ROLES, AccessLevelEnum.FULL_ACCESS)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "users"}


@app.post("/auth/register", response_model=ApiResponse[UserRead], status_code=status.HTTP_201_CREATED, tags=["auth"])
@limiter.limit(settings.auth_rate_limit)
def register_user(
    request: Request,
    user_in: UserRegister,
    db: Session = Depends(get_db),
    auth_manager: AuthManager = Depends(get_auth_manager),
) -> ApiResponse[UserRead]:
    module_access = normalize_module_access(user_in.module_access)
    user = auth_manager.register(db, user_in, module_access)
    return ApiResponse[UserRead](data=user, message="User registered successfully")


@app.post("/auth/login", response_model=ApiResponse[LoginResult], tags=["auth"])
@limiter.limit(settings.auth_rate_limit)
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    auth_manager: AuthManager = Depends(get_auth_manager),
) -> ApiResponse[LoginResult]:
    result = auth_manager.login(db, credentials.email, credentials.password)
    return ApiResponse[LoginResult](data=result, message="Login successful")


@app.post("/auth/refresh-token", response_model=ApiResponse[TokenRefresh], tags=["auth"])
def refresh_token(
    payload: TokenPayload = Depends(get_token_payload),
    db: Session = Depends(get_db),
    auth_manager: AuthManager = Depends(get_auth_manager),
) -> ApiResponse[TokenRefresh]:
    result = auth_manager.refresh_token(db, payload.user_id)
    return ApiResponse[TokenRefresh](data=result, message="Token refreshed successfully")


@app.get("/auth/me", response_model=ApiResponse[UserWithRoleRead], tags=["auth"])
def current_user_profile(current_user: User = Depends(get_current_user)) -> ApiResponse[UserWithRoleRead]:
    return ApiResponse[UserWithRoleRead](data=UserWithRoleRead.model_validate(current_user))


@app.get("/users", response_model=ApiResponse[Page[UserRead]], tags=["users"])
def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    users: UserManager = Depends(get_user_manager),
) -> ApiResponse[Page[UserRead]]:
    return ApiResponse[Page[UserRead]](data=users.get_all_users(db, page, limit))


@app.get("/users/{user_id}", response_model=ApiResponse[UserRead], tags=["users"])
def get_user(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    users: UserManager = Depends(get_user_manager),
) -> ApiResponse[UserRead]:
    user = users.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found", code="USER_NOT_FOUND")
    return ApiResponse[UserRead](data=UserRead.model_validate(user))


@app.put("/users/{user_id}", response_model=ApiResponse[UserRead], tags=["users"])
def update_user(
    user_id: uuid.UUID,
    changes: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    users: UserManager = Depends(get_user_manager),
) -> ApiResponse[UserRead]:
    if not _can_manage_user(current_user, user_id):
        raise ForbiddenError("Access denied")
    if changes.role_id is not None and not has_module_access(current_user, ModuleEnum.ROLES, AccessLevelEnum.FULL_ACCESS):
        raise ForbiddenError("Insufficient permissions to change roles")
    updated = users.update_user(db, user_id, changes)
    return ApiResponse[UserRead](data=updated, message="User updated successfully")


@app.delete("/users/{user_id}", response_model=ApiResponse[None], tags=["users"])
def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    users: UserManager = Depends(get_user_manager),
) -> ApiResponse[None]:
    if not _can_manage_user(current_user, user_id):
        raise ForbiddenError("Access denied")
    users.delete_user(db, user_id)
    return ApiResponse[None](message="User deleted successfully")
