# tests/conftest.py
import os

# 모듈 수준 엔진을 메모리 DB로 유지 (rolegate 임포트 전에 실행되어야 함)
os.environ.setdefault("ROLEGATE_DATABASE_URL", "sqlite://")
os.environ.setdefault("ROLEGATE_JSON_LOGS", "false")
os.environ.setdefault("ROLEGATE_LOG_LEVEL", "DEBUG")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rolegate.database.database import Base
from rolegate.database import models


@pytest.fixture
def engine():
    """테스트마다 새 인메모리 SQLite DB. StaticPool로 모든 세션이 공유합니다."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    """사용자를 삽입하고 반환합니다."""
    def _make_user(user_id: str, username: str) -> models.User:
        user = models.User(id=user_id, username=username)
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user
