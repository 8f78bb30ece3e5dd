from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
from rolegate.database import models

class IRoleRepository(ABC):
    @abstractmethod
    def create(self, role_model: models.Role) -> models.Role:
        """
        새 역할을 저장합니다.

        Raises:
            RoleAlreadyExistsError: 같은 이름의 삭제되지 않은 역할이 있을 때.
                사전 조회가 아니라 저장소의 유니크 인덱스로 검사합니다.
        """
        pass

    @abstractmethod
    def find_by_name(self, name: str, include_deleted: bool = False) -> Optional[models.Role]:
        """이름으로 역할을 조회합니다. include_deleted이면 가장 최근 행을 반환합니다."""
        pass

    @abstractmethod
    def find_by_names(self, names: Iterable[str]) -> List[models.Role]:
        """names에 포함된 이름의 삭제되지 않은 역할을 반환합니다."""
        pass

    @abstractmethod
    def list_all(self, include_deleted: bool = False) -> List[models.Role]:
        """생성 순서대로 역할 목록을 조회합니다."""
        pass

    @abstractmethod
    def save(self, role: models.Role) -> models.Role:
        """역할의 변경 사항(활성화 여부, deleted_at)을 저장합니다."""
        pass
