from .association import UserRole
from .role import Role, RoleState
from .user import User

__all__ = ["Role", "RoleState", "User", "UserRole"]
