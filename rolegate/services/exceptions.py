# rolegate/services/exceptions.py

# --- Not Found Exceptions ---
class RoleNotFoundError(Exception):
    """역할을 찾을 수 없을 때"""
    pass

class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

# --- Validation / Conflict Exceptions ---
class InvalidRoleNameError(ValueError):
    """역할 이름이 허용된 규칙에 맞지 않을 때"""
    pass

class RoleAlreadyExistsError(Exception):
    """같은 이름의 역할이 이미 존재할 때"""
    pass

class RoleInUseError(Exception):
    """사용자에게 할당된 역할이라 삭제할 수 없을 때"""
    pass
