"""Unit tests for the role manager against the test database."""
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from common.database import SessionLocal
from common.errors import ErrorKind, InternalError, InvalidInputError, NotFoundError
from common.models import AccessLevelEnum, ModuleEnum, Role, RoleModuleAccess
from common.schemas import ModuleAccessEntry


def entries(*grants):
    return [ModuleAccessEntry(module=module, access_level=level) for module, level in grants]


def access_pairs(role):
    return {(entry.module, entry.access_level) for entry in role.module_access}


class TestCreateRole:
    """Test role creation."""

    def test_create_role_with_access(self, db_session, role_manager):
        """The role comes back joined with its access rows."""
        role = role_manager.create_role(
            db_session,
            "Inspector",
            "Field inspector",
            entries(("surveys", "edit_access"), ("dashboard", "view_access")),
        )

        assert role.name == "Inspector"
        assert role.description == "Field inspector"
        assert access_pairs(role) == {
            (ModuleEnum.SURVEYS, AccessLevelEnum.EDIT_ACCESS),
            (ModuleEnum.DASHBOARD, AccessLevelEnum.VIEW_ACCESS),
        }
        assert all(entry.role_id == role.id for entry in role.module_access)

    def test_duplicate_modules_last_write_wins(self, db_session, role_manager):
        """Repeated modules collapse to one row holding the last level."""
        role = role_manager.create_role(
            db_session,
            "Dup",
            None,
            entries(("projects", "view_access"), ("projects", "full_access")),
        )

        assert access_pairs(role) == {(ModuleEnum.PROJECTS, AccessLevelEnum.FULL_ACCESS)}

    def test_empty_access_rejected(self, db_session, role_manager):
        """A role with no access entries is refused before touching storage."""
        with pytest.raises(InvalidInputError):
            role_manager.create_role(db_session, "Nothing", None, [])

        assert db_session.scalar(select(func.count()).select_from(Role)) == 0

    def test_access_insert_failure_rolls_back_role(self, db_session, role_manager, monkeypatch):
        """If the access rows cannot be written the role row is not kept either."""
        real_flush = db_session.flush

        def failing_flush(*args, **kwargs):
            real_flush(*args, **kwargs)
            raise OperationalError("INSERT INTO role_module_access", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "flush", failing_flush)

        with pytest.raises(InternalError) as exc_info:
            role_manager.create_role(db_session, "Broken", None, entries(("roles", "view_access")))

        monkeypatch.undo()
        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert exc_info.value.status_code == 500
        assert "disk I/O error" in exc_info.value.detail
        assert db_session.scalar(select(func.count()).select_from(Role)) == 0
        assert db_session.scalar(select(func.count()).select_from(RoleModuleAccess)) == 0


class TestReadRoles:
    """Test role lookups."""

    def test_get_role_by_id(self, db_session, role_manager, admin_role):
        """A stored role is returned with every access row."""
        role = role_manager.get_role_by_id(db_session, admin_role.id)

        assert role.id == admin_role.id
        assert len(role.module_access) == len(ModuleEnum)

    def test_get_role_by_id_not_found(self, db_session, role_manager):
        """An unknown id is not found and names the id."""
        missing = uuid.uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            role_manager.get_role_by_id(db_session, missing)

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == f"Role with ID {missing} not found"

    def test_get_all_roles_resolves_each_access_list(self, db_session, role_manager, admin_role, viewer_role):
        """Every listed role carries its own access rows."""
        roles = {role.name: role for role in role_manager.get_all_roles(db_session)}

        assert set(roles) == {"Admin", "Viewer"}
        assert len(roles["Admin"].module_access) == len(ModuleEnum)
        assert access_pairs(roles["Viewer"]) == {
            (ModuleEnum.DASHBOARD, AccessLevelEnum.VIEW_ACCESS),
            (ModuleEnum.ROLES, AccessLevelEnum.VIEW_ACCESS),
        }

    def test_access_rows_keep_request_order(self, db_session, role_manager):
        """Access rows read back in a new session follow the order they were sent in."""
        modules = ["surveys", "dashboard", "reports", "calendar", "projects"]
        created = role_manager.create_role(db_session, "Ordered", None, entries(*[(m, "view_access") for m in modules]))

        fresh = SessionLocal()
        try:
            role = role_manager.get_role_by_id(fresh, created.id)
        finally:
            fresh.close()

        assert [entry.module.value for entry in role.module_access] == modules

    def test_get_all_roles_empty(self, db_session, role_manager):
        """No roles gives an empty list."""
        assert role_manager.get_all_roles(db_session) == []


class TestUpdateModuleAccess:
    """Test wholesale replacement of a role's access set."""

    def test_replace_is_total(self, db_session, role_manager, viewer_role):
        """Afterwards the access set equals exactly the submitted set."""
        new_set = entries(("projects", "full_access"), ("dashboard", "edit_access"))

        role = role_manager.update_module_access(db_session, viewer_role.id, new_set)

        expected = {(entry.module, entry.access_level) for entry in new_set}
        assert access_pairs(role) == expected
        assert len(role.module_access) == len(new_set)

        stored = db_session.scalars(select(RoleModuleAccess).where(RoleModuleAccess.role_id == viewer_role.id)).all()
        assert {(row.module, row.access_level) for row in stored} == expected

    def test_replace_same_module_with_new_level(self, db_session, role_manager, viewer_role):
        """Re-granting a module already present does not trip the uniqueness constraint."""
        role = role_manager.update_module_access(db_session, viewer_role.id, entries(("roles", "full_access")))

        assert access_pairs(role) == {(ModuleEnum.ROLES, AccessLevelEnum.FULL_ACCESS)}

    def test_replace_missing_role(self, db_session, role_manager):
        """Replacing access on an unknown role is not found."""
        with pytest.raises(NotFoundError):
            role_manager.update_module_access(db_session, uuid.uuid4(), entries(("roles", "view_access")))

    def test_replace_leaves_other_roles_alone(self, db_session, role_manager, admin_role, viewer_role):
        """Replacing one role's access does not touch another role."""
        role_manager.update_module_access(db_session, viewer_role.id, entries(("reports", "view_access")))

        admin = role_manager.get_role_by_id(db_session, admin_role.id)
        assert len(admin.module_access) == len(ModuleEnum)
