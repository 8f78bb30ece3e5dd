import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Set

from rolegate.config import DEFAULT_ROLE_NAME_PATTERN
from rolegate.database import models
from rolegate.logging_config import get_logger
from rolegate.repositories.interfaces import (
    IRoleRepository, IUserRepository, IUserRoleRepository
)
from rolegate.services.exceptions import (
    InvalidRoleNameError, RoleInUseError, RoleNotFoundError, UserNotFoundError
)

logger = get_logger(__name__)


def _isoformat(dt) -> Any:
    return dt.isoformat() if dt is not None else None


def role_to_dict(role: models.Role) -> Dict[str, Any]:
    return {
        "id": role.id,
        "name": role.name,
        "is_active": 1 if role.is_active else 0,
        "created_at": _isoformat(role.created_at),
        "deleted_at": _isoformat(role.deleted_at),
    }


class RoleService:
    """역할 생명주기와 사용자-역할 바인딩 관리 서비스를 제공합니다."""

    def __init__(self, role_repo: IRoleRepository, user_role_repo: IUserRoleRepository,
                 user_repo: IUserRepository, name_pattern: str = DEFAULT_ROLE_NAME_PATTERN):
        """
        RoleService를 초기화합니다.

        Args:
            role_repo: 역할 데이터에 접근하기 위한 리포지토리.
            user_role_repo: 사용자-역할 바인딩에 접근하기 위한 리포지토리.
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리 (바인딩 대상 검증용).
            name_pattern: 역할 이름이 전체 일치해야 하는 정규식.
        """
        self.role_repo = role_repo
        self.user_role_repo = user_role_repo
        self.user_repo = user_repo
        self.name_pattern = re.compile(name_pattern)

    def is_valid_name(self, name: str) -> bool:
        return bool(name) and self.name_pattern.fullmatch(name) is not None

    def _get_live_role(self, name: str) -> models.Role:
        role = self.role_repo.find_by_name(name)
        if not role:
            raise RoleNotFoundError(f"Role '{name}' not found.")
        return role

    # --- 역할 생명주기 ---

    def create_role(self, name: str) -> Dict[str, Any]:
        """
        새로운 활성 역할을 생성합니다.

        Args:
            name: 생성할 역할의 이름.

        Returns:
            생성된 역할 정보를 담은 딕셔너리.

        Raises:
            InvalidRoleNameError: 이름이 허용된 규칙에 맞지 않을 때.
            RoleAlreadyExistsError: 같은 이름의 역할이 이미 존재할 때 (저장소에서 발생).
        """
        if not self.is_valid_name(name):
            raise InvalidRoleNameError("Role name invalid")
        created = self.role_repo.create(models.Role(name=name, is_active=True))
        logger.info("Role created", role=name, role_id=created.id)
        return role_to_dict(created)

    def get_role(self, name: str) -> Dict[str, Any]:
        return role_to_dict(self._get_live_role(name))

    def delete_role(self, name: str) -> Dict[str, Any]:
        """
        어떤 사용자에게도 할당되지 않은 역할을 소프트 삭제합니다.

        Raises:
            RoleNotFoundError: 해당 이름의 역할을 찾을 수 없을 때.
            RoleInUseError: 역할이 사용자에게 할당되어 있을 때. 역할은 변경되지 않습니다.
        """
        role = self._get_live_role(name)
        bindings = self.user_role_repo.count_for_role(role.id)
        if bindings > 0:
            logger.info("Role delete refused, role in use", role=name, bindings=bindings)
            raise RoleInUseError(f"Role '{name}' is assigned to {bindings} user(s).")
        role.deleted_at = datetime.now(timezone.utc)
        deleted = self.role_repo.save(role)
        logger.info("Role deleted", role=name)
        return role_to_dict(deleted)

    def activate_role(self, name: str) -> Dict[str, Any]:
        return self._set_active(name, True)

    def deactivate_role(self, name: str) -> Dict[str, Any]:
        return self._set_active(name, False)

    def _set_active(self, name: str, active: bool) -> Dict[str, Any]:
        role = self._get_live_role(name)
        if bool(role.is_active) != active:
            role.is_active = active
            role = self.role_repo.save(role)
            logger.info("Role activated" if active else "Role deactivated", role=name)
        return role_to_dict(role)

    # --- 역할 할당 ---

    def assign_role(self, user_id: str, role_name: str) -> bool:
        """
        사용자에게 역할을 할당합니다. 비활성화된 역할도 할당할 수 있습니다.

        Raises:
            RoleNotFoundError: 해당 이름의 역할을 찾을 수 없을 때.
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        role = self._get_live_role(role_name)
        if not self.user_repo.find_by_id(user_id):
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        if self.user_role_repo.assign(user_id, role.id):
            logger.info("Role assigned", role=role_name, user_id=user_id)
        return True

    def revoke_role(self, user_id: str, role_name: str) -> bool:
        """
        사용자의 역할을 회수합니다. 바인딩이 없으면 아무 것도 하지 않습니다.

        Raises:
            RoleNotFoundError: 해당 이름의 역할을 찾을 수 없을 때.
        """
        role = self._get_live_role(role_name)
        if self.user_role_repo.revoke(user_id, role.id):
            logger.info("Role revoked", role=role_name, user_id=user_id)
        return True

    # --- 조회 ---

    def list_roles(self, include_deleted: bool = False) -> List[Dict[str, Any]]:
        return [role_to_dict(r) for r in self.role_repo.list_all(include_deleted=include_deleted)]

    def roles_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자에게 할당된 역할을 생성 순서로 조회합니다. 비활성 역할도 포함합니다."""
        return [role_to_dict(r) for r in self.user_role_repo.list_roles_for_user(user_id)]

    def users_for_role(self, role_name: str) -> List[Dict[str, Any]]:
        role = self._get_live_role(role_name)
        users = self.user_role_repo.list_users_for_role(role.id)
        return [{"id": u.id, "username": u.username} for u in users]

    # --- 접근 검사 지원 ---

    def resolve_roles(self, names: Iterable[str]) -> Dict[str, models.Role]:
        """삭제되지 않은 역할(활성 여부 무관)을 이름별로 반환합니다. 없는 이름은 결과에서 빠집니다."""
        return {role.name: role for role in self.role_repo.find_by_names(names)}

    def active_role_names(self, user_id: str) -> Set[str]:
        roles = self.user_role_repo.list_roles_for_user(user_id, active_only=True)
        return {role.name for role in roles}
