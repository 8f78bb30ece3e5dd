from .roles import (
    AccessDecision, Caller, RequiredRoles, RoleMiddleware, decide_access, header_caller_resolver
)

__all__ = [
    "AccessDecision", "Caller", "RequiredRoles", "RoleMiddleware", "decide_access", "header_caller_resolver",
]
