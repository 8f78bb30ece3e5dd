from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from ..database import Base


class User(Base):
    """
    UUID 형태의 ID로 식별되는 사용자.
    인증은 rolegate 밖에서 처리하며, 여기서는 역할 바인딩 대상으로만 존재합니다.
    """
    __tablename__ = "users"
    id = Column(String(36), primary_key=True)
    username = Column(String, unique=True, nullable=False, index=True)

    role_associations = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
