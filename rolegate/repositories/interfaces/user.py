from abc import ABC, abstractmethod
from typing import Optional
from rolegate.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새 사용자를 저장합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[models.User]:
        """ID로 특정 사용자를 조회합니다."""
        pass
