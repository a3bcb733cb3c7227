from contextlib import asynccontextmanager
from typing import List
import uuid

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from common.config import get_settings
from common.container import attach_managers
from common.database import Base, SessionLocal, engine, get_db
from common.dependencies import get_role_manager, require_module_access
from common.errors import install_error_handlers
from common.logging_middleware import add_audit_middleware
from common.models import AccessLevelEnum, ModuleEnum, User
from common.rate_limit import apply_rate_limiter, limiter
from common.roles import RoleManager
from common.schemas import ApiResponse, RoleCreate, RoleModuleAccessUpdate, RoleRead
from common.seed import seed_predefined_roles

settings = get_settings()

can_view_roles = require_module_access(ModuleEnum.ROLES, AccessLevelEnum.VIEW_ACCESS)
can_edit_roles = require_module_access(ModuleEnum.ROLES, AccessLevelEnum.EDIT_ACCESS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    if settings.seed_predefined_roles:
        with SessionLocal() as db:
            seed_predefined_roles(db, app.state.managers.roles)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Roles Service", version="0.3.0", lifespan=lifespan)
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
    add_audit_middleware(fastapi_app, "roles")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "roles"}


@app.get("/roles", response_model=ApiResponse[List[RoleRead]], tags=["roles"])
@limiter.limit("60/minute")
def list_roles(
    request: Request,
    _: User = Depends(can_view_roles),
    db: Session = Depends(get_db),
    roles: RoleManager = Depends(get_role_manager),
) -> ApiResponse[List[RoleRead]]:
    return ApiResponse[List[RoleRead]](data=roles.get_all_roles(db))


@app.get("/roles/{role_id}", response_model=ApiResponse[RoleRead], tags=["roles"])
def get_role(
    role_id: uuid.UUID,
    _: User = Depends(can_view_roles),
    db: Session = Depends(get_db),
    roles: RoleManager = Depends(get_role_manager),
) -> ApiResponse[RoleRead]:
    return ApiResponse[RoleRead](data=roles.get_role_by_id(db, role_id))


@app.post("/roles", response_model=ApiResponse[RoleRead], status_code=status.HTTP_201_CREATED, tags=["roles"])
def create_role(
    role_in: RoleCreate,
    _: User = Depends(can_edit_roles),
    db: Session = Depends(get_db),
    roles: RoleManager = Depends(get_role_manager),
) -> ApiResponse[RoleRead]:
    role = roles.create_role(db, role_in.name, role_in.description, role_in.module_access)
    return ApiResponse[RoleRead](data=role, message="Role created successfully")


@app.put("/roles/{role_id}/module-access", response_model=ApiResponse[RoleRead], tags=["roles"])
def replace_module_access(
    role_id: uuid.UUID,
    update: RoleModuleAccessUpdate,
    _: User = Depends(can_edit_roles),
    db: Session = Depends(get_db),
    roles: RoleManager = Depends(get_role_manager),
) -> ApiResponse[RoleRead]:
    role = roles.update_module_access(db, role_id, update.module_access)
    return ApiResponse[RoleRead](data=role, message="Role module access updated successfully")
