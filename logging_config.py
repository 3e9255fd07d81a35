"""
Logging Configuration Module

One 'poster' logger tree for the whole service:
- poster.<module> children per module, request-scoped adapters for API calls
- daily rotating file under LOG_DIR plus console output
- timing helper for pipeline stages
"""
import os
import time
import uuid
import logging
from contextlib import contextmanager
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

APP_NAME = 'poster'

LOG_DIR = os.getenv('LOG_DIR', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs'))
LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'true').lower() not in ('0', 'false', 'no')
LOG_BACKUP_DAYS = int(os.getenv('LOG_BACKUP_DAYS', '7'))

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-30s | %(request_id)-8s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

SYSTEM_REQUEST_ID = 'system'


class RequestIdFilter(logging.Filter):
    """Fills in request_id for records logged outside a request."""

    def filter(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = SYSTEM_REQUEST_ID
        return True


class RequestAdapter(logging.LoggerAdapter):
    """Tags every record with the adapter's request_id."""

    def process(self, msg, kwargs):
        kwargs.setdefault('extra', {})['request_id'] = self.extra.get('request_id', SYSTEM_REQUEST_ID)
        return msg, kwargs


_initialized = False


def _build_handlers(app_name: str, formatter: logging.Formatter) -> list:
    handlers = []

    if LOG_TO_FILE:
        Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=os.path.join(LOG_DIR, f'{app_name}.log'),
            when='midnight',
            interval=1,
            backupCount=LOG_BACKUP_DAYS,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    handlers.append(console_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
    return handlers


def setup_logging(app_name: str = APP_NAME) -> logging.Logger:
    """
    Configure the application logger once; later calls return it unchanged.

    Args:
        app_name: Logger name and log file base name

    Returns:
        The configured application logger
    """
    global _initialized

    logger = logging.getLogger(app_name)
    if _initialized:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.DEBUG))
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in _build_handlers(app_name, formatter):
        logger.addHandler(handler)

    # Keep records out of the root logger (Flask/werkzeug configure it too)
    logger.propagate = False

    _initialized = True
    target = LOG_DIR if LOG_TO_FILE else 'console only'
    logger.info(f"Logging initialized: level={LOG_LEVEL}, output={target}")

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Child logger 'poster.<module_name>'."""
    return logging.getLogger(f'{APP_NAME}.{module_name}')


def new_request_id() -> str:
    """Short id used to correlate the log lines of one API call."""
    return uuid.uuid4().hex[:8]


def get_request_logger(module_name: str, request_id: str) -> RequestAdapter:
    """
    Get a logger adapter that tags records with a request id.

    Args:
        module_name: Name of the module
        request_id: Id from new_request_id()

    Returns:
        RequestAdapter over the module logger
    """
    return RequestAdapter(get_logger(module_name), {'request_id': request_id})


class StageTimer:
    """Elapsed wall time of a pipeline stage, filled in when the stage ends."""

    def __init__(self):
        self.started = time.perf_counter()
        self.elapsed_ms = 0.0


@contextmanager
def log_duration(logger, stage: str, level: int = logging.DEBUG):
    """
    Time a block and log its duration.

    Usage:
        with log_duration(logger, 'parse ssd') as timer:
            ...
        timer.elapsed_ms
    """
    timer = StageTimer()
    try:
        yield timer
    finally:
        timer.elapsed_ms = (time.perf_counter() - timer.started) * 1000
        logger.log(level, f"{stage} took {timer.elapsed_ms:.2f}ms")
