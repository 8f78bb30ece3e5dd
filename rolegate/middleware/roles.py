"""
역할 기반으로 보호되는 라우트 그룹의 접근 결정.

라우트 그룹은 필요한 역할 이름 집합(``roles:system,intern``)을 선언합니다.
호출자의 *활성* 역할 중 하나라도 이 집합에 있으면 통과합니다. 존재하지 않는
역할을 요구하는 설정은 운영자 오류이며, 단순 거부와 구분하여 보고합니다.
"""

import enum
import json
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from rolegate.config import DEFAULT_ROLE_NAME_PATTERN
from rolegate.logging_config import get_logger

logger = get_logger(__name__)

ROLES_PREFIX = "roles"

DENY_STATUS = "401 Unauthorized"
DENY_BODY = json.dumps({"error": "Incorrect Role"}, separators=(",", ":"))
MISCONFIGURED_STATUS = "500 Internal Server Error"
MISCONFIGURED_BODY = json.dumps({"error": "Invalid Role ID"}, separators=(",", ":"))


class AccessDecision(enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    MISCONFIGURED = "misconfigured"


@dataclass(frozen=True)
class Caller:
    """현재 요청의 인증된 호출자. 인증되지 않았으면 익명입니다."""

    user_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Caller":
        return cls(user_id=None)

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id


@dataclass(frozen=True)
class RequiredRoles:
    """
    라우트 그룹이 요구하는 역할 이름 목록 (순서 유지, 중복 제거, 하나만 있으면 통과).

    시작 시 :meth:`parse` 또는 :meth:`of` 로 한 번 만들며, 잘못된 토큰은 첫 요청이
    아니라 이 시점에 ``ValueError`` 로 실패합니다.
    """

    names: Tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str], name_pattern: str = DEFAULT_ROLE_NAME_PATTERN) -> "RequiredRoles":
        pattern = re.compile(name_pattern)
        unique = []
        for name in names:
            name = name.strip()
            if not name or name in unique:
                continue
            if not pattern.fullmatch(name):
                raise ValueError(f"Invalid role token in route requirement: '{name}'")
            unique.append(name)
        return cls(names=tuple(unique))

    @classmethod
    def parse(cls, requirement: Optional[str], name_pattern: str = DEFAULT_ROLE_NAME_PATTERN) -> "RequiredRoles":
        """
        ``"roles:system,intern"`` 을 파싱합니다. ``roles`` 접두사는 생략할 수 있고,
        ``"roles"`` 만 있거나 빈 문자열이면 제한이 없습니다.
        """
        requirement = (requirement or "").strip()
        head, sep, tail = requirement.partition(":")
        if head.strip() == ROLES_PREFIX:
            requirement = tail if sep else ""
        return cls.of(requirement.split(","), name_pattern=name_pattern)

    def __bool__(self) -> bool:
        return bool(self.names)

    def __str__(self) -> str:
        return f"{ROLES_PREFIX}:{','.join(self.names)}" if self.names else ROLES_PREFIX


def decide_access(required: RequiredRoles, caller: Caller, role_service) -> AccessDecision:
    """
    ``required`` 로 보호되는 라우트에 ``caller`` 가 접근할 수 있는지 결정합니다.

    Args:
        required: 라우트 그룹의 역할 요구 조건.
        caller: 요청의 호출자. 익명 호출자는 역할이 없습니다.
        role_service: RoleService (resolve_roles/active_role_names만 사용).

    Returns:
        ALLOW 또는 DENY. 요구한 역할이 존재하지 않으면 MISCONFIGURED.
    """
    if not required:
        return AccessDecision.ALLOW

    resolved = role_service.resolve_roles(required.names)
    missing = [name for name in required.names if name not in resolved]
    if missing:
        logger.error("Route requires unknown roles", required=str(required), missing=missing)
        return AccessDecision.MISCONFIGURED

    if caller.is_anonymous:
        logger.info("Access denied, anonymous caller", required=str(required))
        return AccessDecision.DENY

    held = role_service.active_role_names(caller.user_id)
    if held.intersection(required.names):
        return AccessDecision.ALLOW

    logger.info("Access denied, no matching active role", user_id=caller.user_id, required=str(required))
    return AccessDecision.DENY


def decision_response(decision: AccessDecision) -> Optional[Tuple[str, str]]:
    """거부 결정에 대한 (status, body). ALLOW이면 None."""
    if decision is AccessDecision.DENY:
        return DENY_STATUS, DENY_BODY
    if decision is AccessDecision.MISCONFIGURED:
        return MISCONFIGURED_STATUS, MISCONFIGURED_BODY
    return None


# --------------------------------------------------------------------------
## 호출자 식별
# --------------------------------------------------------------------------

CallerResolver = Callable[[Dict], Caller]


def header_caller_resolver(header_name: str) -> CallerResolver:
    """
    인증 프록시가 설정한 헤더에서 호출자 ID를 읽는 resolver를 만듭니다.
    헤더가 없거나 비어 있으면 익명입니다.

    헤더 값을 그대로 신뢰하므로, 반드시 클라이언트가 보낸 같은 이름의 헤더를
    제거하거나 덮어쓰는 인증 프록시 뒤에 배치해야 합니다. 외부에 직접 노출하면
    누구나 임의의 사용자 ID로 요청할 수 있습니다.
    """
    environ_key = "HTTP_" + header_name.upper().replace("-", "_")

    def resolve(environ: Dict) -> Caller:
        user_id = (environ.get(environ_key) or "").strip()
        return Caller(user_id=user_id) if user_id else Caller.anonymous()

    return resolve


# --------------------------------------------------------------------------
## WSGI 미들웨어
# --------------------------------------------------------------------------

class RoleMiddleware:
    """
    역할 요구 조건으로 WSGI 앱을 보호합니다.

    ``environ['services']['roles']`` 에 요청의 RoleService가 있어야 하며,
    rolegate 애플리케이션이 마운트된 앱에 위임하기 전에 설정합니다.
    """

    def __init__(self, app, required: RequiredRoles, caller_resolver: CallerResolver):
        self.app = app
        self.required = required
        self.caller_resolver = caller_resolver

    def __call__(self, environ, start_response):
        caller = self.caller_resolver(environ)
        decision = decide_access(self.required, caller, environ['services']['roles'])
        rejection = decision_response(decision)
        if rejection is None:
            return self.app(environ, start_response)

        status, body = rejection
        start_response(status, [("Content-Type", "application/json")])
        return [body.encode("utf-8")]
