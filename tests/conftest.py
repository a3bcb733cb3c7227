import os
from typing import Callable, Dict, Generator, Iterable, Tuple

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("AUDIT_LOG_DIR", "./logs/test")

from common.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from common.auth import TokenCodec  # noqa: E402
from common.authentication import AuthManager  # noqa: E402
from common.config import get_settings  # noqa: E402
from common.database import Base, SessionLocal, engine  # noqa: E402
from common.models import AccessLevelEnum, ModuleEnum  # noqa: E402
from common.roles import RoleManager  # noqa: E402
from common.schemas import ModuleAccessEntry, RoleRead  # noqa: E402
from common.users import UserManager  # noqa: E402
from services.roles.app import app as roles_app  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

PASSWORD = "Passw0rd!"


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def role_manager() -> RoleManager:
    return RoleManager()


@pytest.fixture()
def user_manager() -> UserManager:
    return UserManager()


@pytest.fixture()
def auth_manager(role_manager: RoleManager, user_manager: UserManager) -> AuthManager:
    return AuthManager(role_manager, user_manager, TokenCodec.from_settings(get_settings()))


@pytest.fixture()
def make_role(db_session, role_manager: RoleManager) -> Callable[..., RoleRead]:
    def factory(name: str, grants: Iterable[Tuple[str, str]]) -> RoleRead:
        entries = [ModuleAccessEntry(module=module, access_level=level) for module, level in grants]
        return role_manager.create_role(db_session, name, f"{name} role", entries)

    return factory


@pytest.fixture()
def admin_role(make_role) -> RoleRead:
    return make_role("Admin", [(module.value, AccessLevelEnum.FULL_ACCESS.value) for module in ModuleEnum])


@pytest.fixture()
def viewer_role(make_role) -> RoleRead:
    return make_role("Viewer", [("dashboard", "view_access"), ("roles", "view_access")])


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def roles_client() -> Generator[TestClient, None, None]:
    with TestClient(roles_app) as client:
        yield client


@pytest.fixture()
def register_and_login(users_client) -> Callable[..., Dict[str, str]]:
    """Register a user bound to ``role_id`` and return a bearer header for them."""

    def factory(email: str, role_id) -> Dict[str, str]:
        response = users_client.post(
            "/auth/register",
            json={
                "email": email,
                "password": PASSWORD,
                "firstName": "Test",
                "lastName": "User",
                "roleId": str(role_id),
            },
        )
        assert response.status_code == 201, response.text
        login = users_client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['data']['token']}"}

    return factory
