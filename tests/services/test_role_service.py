# tests/services/test_role_service.py
import pytest
from unittest.mock import MagicMock, ANY

from rolegate.services.role_service import RoleService
from rolegate.services.exceptions import *
from rolegate.repositories.interfaces import IRoleRepository, IUserRepository, IUserRoleRepository
from rolegate.database import models

USER_ID = "4BFE1010-C11D-4739-8C24-99E1468F08F6"

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_role_repo() -> MagicMock:
    """IRoleRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IRoleRepository)

@pytest.fixture
def mock_user_role_repo() -> MagicMock:
    """IUserRoleRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IUserRoleRepository)

@pytest.fixture
def mock_user_repo() -> MagicMock:
    """IUserRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def role_service(mock_role_repo: MagicMock, mock_user_role_repo: MagicMock, mock_user_repo: MagicMock) -> RoleService:
    """모의 리포지토리를 주입한 RoleService 인스턴스를 생성합니다."""
    return RoleService(mock_role_repo, mock_user_role_repo, mock_user_repo)

def make_role(role_id=1, name="intern", is_active=True):
    return models.Role(id=role_id, name=name, is_active=is_active)

# ===================================================================
#  역할 생성 테스트
# ===================================================================
class TestCreateRole:
    @pytest.mark.parametrize("name", ["intern", "admin", "system", "ops-team", "Level_2"])
    def test_create_role_success(self, role_service: RoleService, mock_role_repo: MagicMock, name):
        """유효한 이름은 활성 역할로 저장됩니다."""
        # === Arrange ===
        mock_role_repo.create.side_effect = lambda role: role

        # === Act ===
        role = role_service.create_role(name)

        # === Assert ===
        assert role["name"] == name
        assert role["is_active"] == 1
        stored = mock_role_repo.create.call_args.args[0]
        assert stored.name == name
        assert stored.is_active is True

    @pytest.mark.parametrize("name", ["mm", "", "two words", "bad!", "1abc", "x" * 40, "intern/role"])
    def test_create_role_rejects_invalid_names(self, role_service: RoleService, mock_role_repo: MagicMock, name):
        """규칙에 맞지 않는 이름은 실패하고 아무 것도 저장되지 않습니다."""
        with pytest.raises(InvalidRoleNameError, match="Role name invalid"):
            role_service.create_role(name)
        mock_role_repo.create.assert_not_called()

    def test_create_role_duplicate_is_rejected_by_store(self, role_service: RoleService, mock_role_repo: MagicMock):
        """저장소의 중복 오류가 그대로 전파되며, 서비스는 사전 조회를 하지 않습니다."""
        # === Arrange ===
        mock_role_repo.create.side_effect = RoleAlreadyExistsError("Role 'intern' already exists.")

        # === Act & Assert ===
        with pytest.raises(RoleAlreadyExistsError):
            role_service.create_role("intern")
        mock_role_repo.find_by_name.assert_not_called()

    def test_custom_name_pattern(self, mock_role_repo, mock_user_role_repo, mock_user_repo):
        service = RoleService(mock_role_repo, mock_user_role_repo, mock_user_repo, name_pattern=r"^[a-z]{2}$")
        mock_role_repo.create.side_effect = lambda role: role

        assert service.create_role("mm")["name"] == "mm"
        with pytest.raises(InvalidRoleNameError):
            service.create_role("intern")

# ===================================================================
#  삭제 및 활성화 테스트
# ===================================================================
class TestRoleLifecycle:
    def test_delete_unbound_role_sets_deleted_at(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        # === Arrange ===
        role = make_role()
        mock_role_repo.find_by_name.return_value = role
        mock_user_role_repo.count_for_role.return_value = 0
        mock_role_repo.save.side_effect = lambda r: r

        # === Act ===
        result = role_service.delete_role("intern")

        # === Assert ===
        assert result["deleted_at"] is not None
        assert role.state is models.RoleState.DELETED
        mock_user_role_repo.count_for_role.assert_called_once_with(1)
        mock_role_repo.save.assert_called_once_with(role)

    def test_delete_bound_role_is_refused(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        """사용자에게 할당된 역할은 변경되지 않습니다."""
        # === Arrange ===
        role = make_role()
        mock_role_repo.find_by_name.return_value = role
        mock_user_role_repo.count_for_role.return_value = 2

        # === Act & Assert ===
        with pytest.raises(RoleInUseError):
            role_service.delete_role("intern")
        assert role.deleted_at is None
        mock_role_repo.save.assert_not_called()

    def test_delete_missing_role(self, role_service: RoleService, mock_role_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = None

        with pytest.raises(RoleNotFoundError):
            role_service.delete_role("ghost")

    def test_deactivate_then_activate(self, role_service: RoleService, mock_role_repo: MagicMock):
        # === Arrange ===
        role = make_role()
        mock_role_repo.find_by_name.return_value = role
        mock_role_repo.save.side_effect = lambda r: r

        # === Act & Assert ===
        assert role_service.deactivate_role("intern")["is_active"] == 0
        assert role.state is models.RoleState.DEACTIVATED
        assert role_service.activate_role("intern")["is_active"] == 1
        assert role.state is models.RoleState.ACTIVE

    def test_activation_is_idempotent(self, role_service: RoleService, mock_role_repo: MagicMock):
        """이미 활성인 역할을 활성화하면 저장하지 않습니다."""
        mock_role_repo.find_by_name.return_value = make_role(is_active=True)

        assert role_service.activate_role("intern")["is_active"] == 1
        assert role_service.activate_role("intern")["is_active"] == 1
        mock_role_repo.save.assert_not_called()

    @pytest.mark.parametrize("operation", ["activate_role", "deactivate_role", "get_role", "users_for_role"])
    def test_operations_on_missing_role(self, role_service: RoleService, mock_role_repo: MagicMock, operation):
        mock_role_repo.find_by_name.return_value = None

        with pytest.raises(RoleNotFoundError):
            getattr(role_service, operation)("ghost")

# ===================================================================
#  역할 할당 / 회수 테스트
# ===================================================================
class TestBindings:
    def test_assign_role_success(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock, mock_user_repo: MagicMock):
        # === Arrange ===
        mock_role_repo.find_by_name.return_value = make_role(role_id=7)
        mock_user_repo.find_by_id.return_value = models.User(id=USER_ID, username="tester")
        mock_user_role_repo.assign.return_value = True

        # === Act ===
        result = role_service.assign_role(USER_ID, "intern")

        # === Assert ===
        assert result is True
        mock_user_role_repo.assign.assert_called_once_with(USER_ID, 7)

    def test_assign_deactivated_role_is_allowed(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock, mock_user_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = make_role(is_active=False)
        mock_user_repo.find_by_id.return_value = models.User(id=USER_ID, username="tester")

        assert role_service.assign_role(USER_ID, "intern") is True
        mock_user_role_repo.assign.assert_called_once_with(USER_ID, 1)

    def test_assign_existing_binding_is_noop(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock, mock_user_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = make_role()
        mock_user_repo.find_by_id.return_value = models.User(id=USER_ID, username="tester")
        mock_user_role_repo.assign.return_value = False

        assert role_service.assign_role(USER_ID, "intern") is True

    def test_assign_unknown_role(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = None

        with pytest.raises(RoleNotFoundError):
            role_service.assign_role(USER_ID, "ghost")
        mock_user_role_repo.assign.assert_not_called()

    def test_assign_unknown_user(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock, mock_user_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = make_role()
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            role_service.assign_role(USER_ID, "intern")
        mock_user_role_repo.assign.assert_not_called()

    def test_revoke_missing_binding_is_noop(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        """두 번 회수해도 예외가 발생하지 않습니다."""
        # === Arrange ===
        mock_role_repo.find_by_name.return_value = make_role()
        mock_user_role_repo.revoke.side_effect = [True, False]

        # === Act & Assert ===
        assert role_service.revoke_role(USER_ID, "intern") is True
        assert role_service.revoke_role(USER_ID, "intern") is True
        assert mock_user_role_repo.revoke.call_count == 2

    def test_revoke_unknown_role_token(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = None

        with pytest.raises(RoleNotFoundError):
            role_service.revoke_role(USER_ID, "ghost")
        mock_user_role_repo.revoke.assert_not_called()

# ===================================================================
#  조회 테스트
# ===================================================================
class TestQueries:
    def test_roles_for_user_includes_inactive(self, role_service: RoleService, mock_user_role_repo: MagicMock):
        mock_user_role_repo.list_roles_for_user.return_value = [
            make_role(1, "admin"), make_role(2, "intern", is_active=False)
        ]

        roles = role_service.roles_for_user(USER_ID)

        assert [(r["name"], r["is_active"]) for r in roles] == [("admin", 1), ("intern", 0)]
        mock_user_role_repo.list_roles_for_user.assert_called_once_with(USER_ID)

    def test_active_role_names_filters_inactive(self, role_service: RoleService, mock_user_role_repo: MagicMock):
        mock_user_role_repo.list_roles_for_user.return_value = [make_role(1, "admin")]

        assert role_service.active_role_names(USER_ID) == {"admin"}
        mock_user_role_repo.list_roles_for_user.assert_called_once_with(USER_ID, active_only=True)

    def test_list_roles_passes_include_deleted(self, role_service: RoleService, mock_role_repo: MagicMock):
        mock_role_repo.list_all.return_value = [make_role()]

        assert role_service.list_roles(include_deleted=True)[0]["name"] == "intern"
        mock_role_repo.list_all.assert_called_once_with(include_deleted=True)

    def test_users_for_role(self, role_service: RoleService, mock_role_repo: MagicMock, mock_user_role_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = make_role(role_id=3, name="admin")
        mock_user_role_repo.list_users_for_role.return_value = [models.User(id=USER_ID, username="tester")]

        assert role_service.users_for_role("admin") == [{"id": USER_ID, "username": "tester"}]
        mock_user_role_repo.list_users_for_role.assert_called_once_with(3)

    def test_resolve_roles_keys_by_name(self, role_service: RoleService, mock_role_repo: MagicMock):
        mock_role_repo.find_by_names.return_value = [make_role(1, "system"), make_role(2, "intern")]

        resolved = role_service.resolve_roles(("system", "intern", "ghost"))

        assert set(resolved) == {"system", "intern"}
        mock_role_repo.find_by_names.assert_called_once_with(ANY)
