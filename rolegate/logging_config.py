"""
rolegate 로깅 설정.

운영 환경에서는 JSON, 개발 환경에서는 콘솔 형식으로 structlog를 설정합니다.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """로그 이벤트에 애플리케이션 정보를 추가합니다."""
    event_dict["app"] = "rolegate"
    return event_dict


def utc_timestamper(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """로그 이벤트에 ISO8601 UTC 타임스탬프를 추가합니다."""
    now = datetime.now(timezone.utc)
    event_dict["timestamp"] = now.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return event_dict


def configure_logging(json_logs: bool = True, log_level: str = "INFO") -> None:
    """애플리케이션 전체의 로깅을 설정합니다."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        utc_timestamper,
        add_app_context,
    ]

    if json_logs:
        renderers: List[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + renderers,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # INFO 레벨에서는 엔진 로그가 너무 많음
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """구조화 로거를 반환합니다."""
    return structlog.get_logger(name)
