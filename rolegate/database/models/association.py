from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from ..database import Base


class UserRole(Base):
    """
    사용자와 역할의 바인딩. 복합 기본 키로 한 사용자가 같은 역할을 두 번 가질 수 없습니다.
    """
    __tablename__ = 'user_roles'
    user_id = Column(String(36), ForeignKey('users.id'), primary_key=True)
    role_id = Column(Integer, ForeignKey('roles.id'), primary_key=True, index=True)

    user = relationship("User", back_populates="role_associations")
    role = relationship("Role")
