from .role import IRoleRepository
from .user import IUserRepository
from .user_role import IUserRoleRepository

__all__ = ["IRoleRepository", "IUserRepository", "IUserRoleRepository"]
