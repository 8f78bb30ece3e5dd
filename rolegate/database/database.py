from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from rolegate.config import settings


def build_engine(database_url: str):
    """
    DB URL로 SQLAlchemy 엔진을 생성합니다.
    SQLite 세션은 여러 서버 스레드에서 열릴 수 있으므로 check_same_thread를 끕니다.
    """
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


# 설정된 DB에 대한 엔진과 세션 팩토리
# autocommit/autoflush는 끄고, 리포지토리가 변경마다 직접 커밋
engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
