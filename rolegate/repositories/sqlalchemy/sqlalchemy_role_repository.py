from typing import Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from rolegate.database import models
from rolegate.repositories.interfaces import IRoleRepository
from rolegate.services.exceptions import RoleAlreadyExistsError

class SqlalchemyRoleRepository(IRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, role_model: models.Role) -> models.Role:
        self.db.add(role_model)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise RoleAlreadyExistsError(f"Role '{role_model.name}' already exists.") from e
        self.db.refresh(role_model)
        return role_model

    def find_by_name(self, name: str, include_deleted: bool = False) -> Optional[models.Role]:
        query = self.db.query(models.Role).filter(models.Role.name == name)
        if not include_deleted:
            query = query.filter(models.Role.deleted_at.is_(None))
        return query.order_by(models.Role.id.desc()).first()

    def find_by_names(self, names: Iterable[str]) -> List[models.Role]:
        names = list(names)
        if not names:
            return []
        return self.db.query(models.Role).filter(
            models.Role.name.in_(names),
            models.Role.deleted_at.is_(None)
        ).all()

    def list_all(self, include_deleted: bool = False) -> List[models.Role]:
        query = self.db.query(models.Role)
        if not include_deleted:
            query = query.filter(models.Role.deleted_at.is_(None))
        return query.order_by(models.Role.id.asc()).all()

    def save(self, role: models.Role) -> models.Role:
        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)
        return role
