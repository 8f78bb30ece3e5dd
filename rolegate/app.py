# rolegate/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs
import json
import re

from rolegate.config import settings as default_settings
from rolegate.database.database import SessionLocal
from rolegate.logging_config import configure_logging, get_logger
from rolegate.middleware.roles import (
    RequiredRoles, RoleMiddleware, decide_access, decision_response, header_caller_resolver
)
from rolegate.repositories.sqlalchemy import (
    SqlalchemyRoleRepository, SqlalchemyUserRepository, SqlalchemyUserRoleRepository
)
from rolegate.services.role_service import RoleService
from rolegate.services.exceptions import *

logger = get_logger(__name__)

JSON = "application/json"
TEXT = "text/plain; charset=utf-8"

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def to_json(payload):
    # 기존 클라이언트와 바이트 단위로 호환되도록 공백 없는 구분자 사용
    return json.dumps(payload, separators=(",", ":"))

def normalize_path(path):
    """중복 슬래시를 하나로 합치고 끝의 슬래시를 제거합니다."""
    path = re.sub(r"/{2,}", "/", path or "/")
    return path.rstrip("/") or "/"

def query_flag(environ, name):
    values = parse_qs(environ.get("QUERY_STRING", "")).get(name, [])
    return bool(values) and values[-1].lower() in ("1", "true", "yes")

def handle_exception(e):
    """서비스 예외를 (status, body, content type)으로 변환합니다."""
    if isinstance(e, InvalidRoleNameError):
        return "400 Bad Request", str(e), TEXT
    error_map = {
        RoleNotFoundError: "404 Not Found",
        UserNotFoundError: "404 Not Found",
        RoleAlreadyExistsError: "409 Conflict",
        RoleInUseError: "409 Conflict",
        ValueError: "400 Bad Request",
    }
    status = error_map.get(type(e))
    if status is None:
        logger.error("Unhandled exception", exc_info=e)
        status = "500 Internal Server Error"
    return status, to_json({"error": str(e)}), JSON

# --------------------------------------------------------------------------
## 핸들러 함수 (역할 조회 API 및 역할 관리)
# --------------------------------------------------------------------------

def list_roles_handler(environ, *args):
    roles = environ['services']['roles'].list_roles(include_deleted=query_flag(environ, "include_deleted"))
    return '200 OK', to_json(roles)

def get_role_handler(environ, role_name):
    try:
        role = environ['services']['roles'].get_role(role_name)
    except RoleNotFoundError:
        return '404 Not Found', to_json({"error": "Invalid Role ID"})
    return '200 OK', to_json(role)

def create_role_handler(environ, role_name):
    role = environ['services']['roles'].create_role(role_name)
    return '201 Created', to_json(role)

def delete_role_handler(environ, role_name):
    service = environ['services']['roles']
    try:
        role = service.delete_role(role_name)
    except RoleInUseError:
        # 사용 중인 역할은 에러 없이 그대로 유지
        role = service.get_role(role_name)
    return '200 OK', to_json(role)

def activate_role_handler(environ, role_name):
    return '200 OK', to_json(environ['services']['roles'].activate_role(role_name))

def deactivate_role_handler(environ, role_name):
    return '200 OK', to_json(environ['services']['roles'].deactivate_role(role_name))

def list_role_users_handler(environ, role_name):
    return '200 OK', to_json(environ['services']['roles'].users_for_role(role_name))

def list_user_roles_handler(environ, user_id):
    return '200 OK', to_json(environ['services']['roles'].roles_for_user(user_id))

def assign_role_handler(environ, user_id, role_name):
    environ['services']['roles'].assign_role(user_id, role_name)
    return '204 No Content', ''

def revoke_role_handler(environ, user_id, role_name):
    environ['services']['roles'].revoke_role(user_id, role_name)
    return '204 No Content', ''

ADMIN_ROUTES = [
    ('GET', r'^/roles$', list_roles_handler),
    ('GET', r'^/roles/([^/]+)$', get_role_handler),
    ('POST', r'^/roles/([^/]+)$', create_role_handler),
    ('DELETE', r'^/roles/([^/]+)$', delete_role_handler),
    ('POST', r'^/roles/([^/]+)/activate$', activate_role_handler),
    ('POST', r'^/roles/([^/]+)/deactivate$', deactivate_role_handler),
    ('GET', r'^/roles/([^/]+)/users$', list_role_users_handler),
    ('GET', r'^/users/([^/]+)/roles$', list_user_roles_handler),
    ('POST', r'^/users/([^/]+)/roles/assign/([^/]+)$', assign_role_handler),
    ('POST', r'^/users/([^/]+)/roles/revoke/([^/]+)$', revoke_role_handler),
]

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

class ClosingIterator:
    """
    마운트된 앱의 응답 iterable을 감싸, 서버가 close()를 호출할 때 세션을 닫습니다.

    응답 본문이 지연 생성되는 동안에도 ``environ['services']`` 의 세션을 쓸 수 있습니다.
    """

    def __init__(self, iterable, on_close):
        self.iterable = iterable
        self.on_close = on_close

    def __iter__(self):
        return iter(self.iterable)

    def close(self):
        try:
            if hasattr(self.iterable, "close"):
                self.iterable.close()
        finally:
            self.on_close()


class Application:
    """
    역할 관리 API를 제공하는 WSGI 애플리케이션.

    모든 라우트는 역할 요구 조건을 가진 라우트 그룹에 속합니다. 기본 라우트는
    ``settings.admin_roles`` 를 사용하고, 호스트 애플리케이션은 :meth:`mount` 와
    :meth:`mount_app` 으로 자신의 그룹을 추가합니다.
    """

    def __init__(self, settings=None, session_factory=None, caller_resolver=None):
        self.settings = settings or default_settings
        self.session_factory = session_factory or SessionLocal
        self.caller_resolver = caller_resolver or header_caller_resolver(self.settings.caller_header)
        self.routes = []
        self.apps = []

        admin_roles = self.required_roles(self.settings.admin_roles)
        for method, pattern, handler in ADMIN_ROUTES:
            self.mount(method, pattern, handler, admin_roles)

    def required_roles(self, roles):
        if isinstance(roles, RequiredRoles):
            return roles
        return RequiredRoles.parse(roles, name_pattern=self.settings.role_name_pattern)

    def mount(self, method, pattern, handler, roles=None):
        """
        ``roles`` (예: ``"roles:system,intern"``, 제한이 없으면 None)로 보호되는 라우트를 추가합니다.
        핸들러는 environ과 패턴 그룹을 인자로 받아 (status, body)를 반환합니다.
        """
        self.routes.append((method, re.compile(pattern), handler, self.required_roles(roles)))

    def mount_app(self, prefix, app, roles=None):
        """``prefix`` 하위의 모든 경로를 ``roles`` 로 보호되는 WSGI 앱에 위임합니다."""
        guarded = RoleMiddleware(app, self.required_roles(roles), self.caller_resolver)
        self.apps.append((normalize_path(prefix), guarded))

    def build_services(self, db_session):
        role_repo = SqlalchemyRoleRepository(db_session)
        user_role_repo = SqlalchemyUserRoleRepository(db_session)
        user_repo = SqlalchemyUserRepository(db_session)
        role_service = RoleService(
            role_repo, user_role_repo, user_repo, name_pattern=self.settings.role_name_pattern
        )
        return {'roles': role_service}

    def match(self, method, path):
        for route_method, pattern, route_handler, required in self.routes:
            if method == route_method and (match := pattern.match(path)):
                return route_handler, match.groups(), required
        return None, (), None

    def match_app(self, path):
        for prefix, app in self.apps:
            if path == prefix or path.startswith(prefix + "/"):
                return app
        return None

    def delegate(self, app, environ, start_response, db_session):
        """
        마운트된 앱을 호출합니다.

        앱이 이미 start_response를 호출했을 수 있으므로 예외는 handle_exception으로
        변환하지 않고 서버로 전파합니다. 세션은 응답 iterable의 close()에서 닫힙니다.
        """
        try:
            body = app(environ, start_response)
        except Exception:
            db_session.rollback()
            db_session.close()
            raise
        return ClosingIterator(body, db_session.close)

    def __call__(self, environ, start_response):
        db_session = self.session_factory()
        environ['services'] = self.build_services(db_session)

        path = normalize_path(environ.get("PATH_INFO", ""))
        method = environ.get("REQUEST_METHOD", "")

        mounted = self.match_app(path)
        if mounted:
            return self.delegate(mounted, environ, start_response, db_session)

        content_type = JSON
        try:
            handler, path_args, required = self.match(method, path)
            if handler:
                caller = self.caller_resolver(environ)
                rejection = decision_response(decide_access(required, caller, environ['services']['roles']))
                if rejection:
                    status, response_body = rejection
                else:
                    environ['rolegate.caller'] = caller
                    status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', to_json({'error': 'Not Found'})

        except Exception as e:
            db_session.rollback()
            status, response_body, content_type = handle_exception(e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", content_type)])
        return [response_body.encode("utf-8")]


def create_app(settings=None, session_factory=None, caller_resolver=None):
    return Application(settings=settings, session_factory=session_factory, caller_resolver=caller_resolver)

application = create_app()

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    from rolegate.database.db_init import initialize_db

    configure_logging(json_logs=default_settings.json_logs, log_level=default_settings.log_level)
    initialize_db()
    try:
        with make_server(default_settings.host, default_settings.port, application) as httpd:
            logger.info("Serving rolegate", port=default_settings.port)
            httpd.serve_forever()
    except OSError as e:
        logger.error("Error starting server", error=str(e))
