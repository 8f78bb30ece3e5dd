import enum

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, func, text, true
from ..database import Base


class RoleState(str, enum.Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"
    DELETED = "deleted"


class Role(Base):
    """
    사용자가 가질 수 있는 이름 있는 역할 (예: 'admin', 'intern').

    역할은 실제로 삭제되지 않습니다. ``deleted_at`` 이 설정된 행은 소프트 삭제된
    것으로, 이름은 재사용할 수 있고 기록은 감사용으로 남습니다. 삭제된 행에도
    ``is_active`` 를 유지하여 삭제 포함 목록에서 그대로 보여줍니다.
    """
    __tablename__ = "roles"
    __table_args__ = (
        Index(
            "uq_roles_live_name",
            "name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)

    @property
    def state(self) -> RoleState:
        if self.deleted_at is not None:
            return RoleState.DELETED
        # flush 전의 transient 인스턴스는 is_active가 None
        if self.is_active is False:
            return RoleState.DEACTIVATED
        return RoleState.ACTIVE
