from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from rolegate.database import models
from rolegate.repositories.interfaces import IUserRoleRepository

class SqlalchemyUserRoleRepository(IUserRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _find(self, user_id: str, role_id: int):
        return self.db.query(models.UserRole).filter(
            models.UserRole.user_id == user_id,
            models.UserRole.role_id == role_id
        ).first()

    def assign(self, user_id: str, role_id: int) -> bool:
        if self._find(user_id, role_id):
            return False
        self.db.add(models.UserRole(user_id=user_id, role_id=role_id))
        try:
            self.db.commit()
        except IntegrityError:
            # 동시 요청이 같은 바인딩을 먼저 삽입한 경우
            self.db.rollback()
            return False
        return True

    def revoke(self, user_id: str, role_id: int) -> bool:
        association = self._find(user_id, role_id)
        if not association:
            return False
        self.db.delete(association)
        self.db.commit()
        return True

    def count_for_role(self, role_id: int) -> int:
        return self.db.query(models.UserRole).filter(models.UserRole.role_id == role_id).count()

    def list_roles_for_user(self, user_id: str, active_only: bool = False) -> List[models.Role]:
        query = self.db.query(models.Role).join(
            models.UserRole, models.UserRole.role_id == models.Role.id
        ).filter(
            models.UserRole.user_id == user_id,
            models.Role.deleted_at.is_(None)
        )
        if active_only:
            query = query.filter(models.Role.is_active.is_(True))
        return query.order_by(models.Role.id.asc()).all()

    def list_users_for_role(self, role_id: int) -> List[models.User]:
        return self.db.query(models.User).join(
            models.UserRole, models.UserRole.user_id == models.User.id
        ).filter(models.UserRole.role_id == role_id).order_by(models.User.username.asc()).all()
