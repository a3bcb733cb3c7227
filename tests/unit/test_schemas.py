"""Unit tests for schema validation."""
import uuid

import pytest
from pydantic import ValidationError

from common.models import AccessLevelEnum, ModuleEnum
from common.schemas import ApiResponse, LoginRequest, RoleCreate, RoleModuleAccessUpdate, UserRead, UserRegister


class TestUserSchemas:
    """Test user-related schemas."""

    def test_register_accepts_camel_case(self):
        """Wire names are camelCase."""
        role_id = uuid.uuid4()
        user = UserRegister.model_validate(
            {
                "email": "john@example.com",
                "password": "SecurePass123!",
                "firstName": "John",
                "lastName": "Doe",
                "phoneNumber": "555-0100",
                "roleId": str(role_id),
            }
        )

        assert user.first_name == "John"
        assert user.role_id == role_id
        assert user.module_access is None

    def test_register_keeps_raw_module_access(self):
        """The module access map is left for the normalizer."""
        user = UserRegister.model_validate(
            {
                "email": "john@example.com",
                "password": "SecurePass123!",
                "firstName": "John",
                "lastName": "Doe",
                "moduleAccess": {"dashboard": "view_access", "bogus": 1},
            }
        )

        assert user.module_access == {"dashboard": "view_access", "bogus": 1}

    def test_register_invalid_email(self):
        with pytest.raises(ValidationError):
            UserRegister(email="invalid-email", password="Password123", first_name="A", last_name="B")

    def test_register_short_password(self):
        with pytest.raises(ValidationError):
            UserRegister(email="a@example.com", password="123", first_name="A", last_name="B")

    def test_register_malformed_role_id(self):
        with pytest.raises(ValidationError):
            UserRegister(email="a@example.com", password="Password123", first_name="A", last_name="B", role_id="nope")

    def test_user_read_has_no_password_field(self):
        """The read model cannot carry a password hash."""
        assert "password" not in UserRead.model_fields

    def test_login_requires_password(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="a@example.com", password="")


class TestRoleSchemas:
    """Test role-related schemas."""

    def test_role_create_parses_entries(self):
        role = RoleCreate.model_validate(
            {"name": "Inspector", "moduleAccess": [{"module": "surveys", "accessLevel": "edit_access"}]}
        )

        assert role.module_access[0].module is ModuleEnum.SURVEYS
        assert role.module_access[0].access_level is AccessLevelEnum.EDIT_ACCESS

    def test_role_create_requires_access(self):
        """A role with zero permissions is rejected."""
        with pytest.raises(ValidationError):
            RoleCreate.model_validate({"name": "Empty", "moduleAccess": []})

    def test_role_create_rejects_unknown_module(self):
        with pytest.raises(ValidationError):
            RoleCreate.model_validate({"name": "X", "moduleAccess": [{"module": "payroll", "accessLevel": "view_access"}]})

    def test_module_access_update_requires_entries(self):
        with pytest.raises(ValidationError):
            RoleModuleAccessUpdate.model_validate({"moduleAccess": []})


class TestEnvelope:
    def test_api_response_serializes_camel_case(self):
        body = ApiResponse[dict](data={"a": 1}, message="ok").model_dump(by_alias=True)

        assert body == {"success": True, "message": "ok", "data": {"a": 1}}
