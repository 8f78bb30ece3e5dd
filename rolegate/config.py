"""
rolegate 서비스 설정 관리.

모든 값은 ``ROLEGATE_*`` 환경 변수로 덮어쓸 수 있습니다
(예: ``ROLEGATE_DATABASE_URL``, ``ROLEGATE_ADMIN_ROLES``).
"""

import uuid
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 영문자로 시작, 3~32자, 영문자/숫자/밑줄/하이픈
DEFAULT_ROLE_NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_-]{2,31}$"


class Settings(BaseSettings):
    """rolegate 기본 설정."""

    model_config = SettingsConfigDict(
        env_prefix="ROLEGATE_",
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///rolegate.db")

    # 로깅
    json_logs: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    role_name_pattern: str = Field(default=DEFAULT_ROLE_NAME_PATTERN)

    # 인증 프록시가 호출자의 사용자 ID를 담아 보내는 헤더.
    # 클라이언트가 직접 보낸 값은 프록시에서 덮어쓰거나 제거해야 합니다.
    caller_header: str = Field(default="X-User-Id")

    # 역할 관리 라우트 그룹의 역할 요구 조건
    admin_roles: str = Field(default="roles:admin")

    # 빈 DB에 db_init이 삽입하는 기본 데이터
    bootstrap_roles: List[str] = Field(default_factory=lambda: ["admin"])
    # 설정하지 않으면 프로세스마다 새로 생성되며, 시드 시 로그로 남습니다
    bootstrap_admin_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    bootstrap_admin_username: str = Field(default="admin")

    # 개발 서버
    host: str = Field(default="")
    port: int = Field(default=8000)


settings = Settings()
