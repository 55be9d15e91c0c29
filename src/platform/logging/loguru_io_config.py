from contextvars import ContextVar
from datetime import datetime
from enum import StrEnum
import logging
import os
import sys

from loguru import logger as loguru_logger

from src.platform.config.core_setting import settings
from src.platform.constant.path import LOG_DIR as DEFAULT_LOG_DIR
from src.platform.logging.service_context import get_service_context


# Test runs write into their own directory
LOG_DIR = os.environ.get('TEST_LOG_DIR', DEFAULT_LOG_DIR)

# Keys whose values never reach a log line
SENSITIVE_KEYWORDS = {
    'password',
    'session_token',
    'access_token',
}

chain_start_time_var: ContextVar[float] = ContextVar('chain_start_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


# Chatty at DEBUG, only worth seeing when debugging the library itself
_QUIET_LIBRARIES = ('asyncio', 'redis', 'httpcore', 'httpx', 'sse_starlette')

io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


class InterceptHandler(logging.Handler):
    """Routes stdlib ``logging`` records (uvicorn, redis, ...) into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno <= logging.DEBUG and record.name.startswith(_QUIET_LIBRARIES):
            return

        try:
            level: str | int = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the record points at the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        custom_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _log_file_path() -> str:
    stamp = datetime.now().strftime('%Y-%m-%d_%H')
    prefix = 'test_' if os.environ.get('TEST_LOG_DIR') else ''
    return f'{LOG_DIR}/{prefix}{stamp}.log'


def _configure_sinks(level: str) -> None:
    custom_logger.add(sys.stdout, format=io_log_format, level=level, enqueue=True)

    # Hourly files are a local debugging aid; deployed instances log to stdout only
    if settings.DEBUG:
        custom_logger.add(
            _log_file_path(),
            format=io_log_format,
            rotation='1 hour',
            retention='7 days',
            compression='gz',
            enqueue=True,
            level=level,
        )


loguru_logger.remove()
custom_logger = loguru_logger.bind(
    **{
        ExtraField.SERVICE_CONTEXT: get_service_context(),
        ExtraField.CHAIN_START_TIME: '',
        ExtraField.CALL_TARGET: '',
    }
)
_configure_sinks('DEBUG' if settings.DEBUG else 'INFO')

logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
