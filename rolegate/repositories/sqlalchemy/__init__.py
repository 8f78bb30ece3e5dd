from .sqlalchemy_role_repository import SqlalchemyRoleRepository
from .sqlalchemy_user_repository import SqlalchemyUserRepository
from .sqlalchemy_user_role_repository import SqlalchemyUserRoleRepository

__all__ = ["SqlalchemyRoleRepository", "SqlalchemyUserRepository", "SqlalchemyUserRoleRepository"]
