import re

from .database import Base, SessionLocal, engine as default_engine
from .models import Role, User, UserRole
from rolegate.config import settings
from rolegate.logging_config import configure_logging, get_logger
from rolegate.services.exceptions import InvalidRoleNameError

logger = get_logger(__name__)


def validate_bootstrap_roles(config):
    """
    시드 역할 이름을 역할 생성과 같은 이름 규칙으로 검증합니다.

    Raises:
        InvalidRoleNameError: 규칙에 맞지 않는 이름이 하나라도 있을 때.
    """
    pattern = re.compile(config.role_name_pattern)
    invalid = [name for name in config.bootstrap_roles if not name or not pattern.fullmatch(name)]
    if invalid:
        raise InvalidRoleNameError(f"Invalid bootstrap role names: {invalid}")


def initialize_db(engine=None, session_factory=None, config=None):
    """
    테이블을 생성하고, 기본 역할과 관리자 사용자를 삽입합니다.

    사용자가 없는 DB에서만 시드를 수행합니다. 역할 관리 라우트에 접근할 수 있도록
    관리자 사용자는 첫 번째 기본 역할에 바인딩됩니다.
    """
    engine = engine or default_engine
    session_factory = session_factory or SessionLocal
    config = config or settings

    # 잘못된 시드 설정은 테이블을 건드리기 전에 시작 단계에서 실패
    validate_bootstrap_roles(config)

    Base.metadata.create_all(bind=engine)
    logger.info("Tables created")

    db = session_factory()
    try:
        # 기본 데이터가 이미 있는지 확인
        if db.query(User).first():
            logger.info("Seed data already present, skipping")
            return

        roles = [Role(name=name, is_active=True) for name in config.bootstrap_roles]
        db.add_all(roles)

        admin_user = User(id=config.bootstrap_admin_id, username=config.bootstrap_admin_username)
        db.add(admin_user)

        # 역할 ID를 얻기 위해 먼저 커밋
        db.commit()

        if roles:
            db.add(UserRole(user_id=admin_user.id, role_id=roles[0].id))
            db.commit()
        logger.info(
            "Seed data inserted",
            roles=config.bootstrap_roles,
            admin=admin_user.username,
            admin_id=admin_user.id,
        )

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    initialize_db()
