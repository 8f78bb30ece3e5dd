from abc import ABC, abstractmethod
from typing import List
from rolegate.database import models

class IUserRoleRepository(ABC):
    @abstractmethod
    def assign(self, user_id: str, role_id: int) -> bool:
        """사용자에게 역할을 바인딩합니다. 이미 있으면 False를 반환합니다."""
        pass

    @abstractmethod
    def revoke(self, user_id: str, role_id: int) -> bool:
        """바인딩을 제거합니다. 제거할 것이 없으면 False를 반환합니다."""
        pass

    @abstractmethod
    def count_for_role(self, role_id: int) -> int:
        pass

    @abstractmethod
    def list_roles_for_user(self, user_id: str, active_only: bool = False) -> List[models.Role]:
        """
        사용자에게 바인딩된 삭제되지 않은 역할을 역할 생성 순서로 조회합니다.

        Args:
            user_id: 바인딩을 조회할 사용자의 ID.
            active_only: 비활성화된 역할 제외 (접근 검사용).
        """
        pass

    @abstractmethod
    def list_users_for_role(self, role_id: int) -> List[models.User]:
        pass
