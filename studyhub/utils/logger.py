import sys
import logging
import pathlib
import contextvars
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger

from .config import get_settings

_request_ctx_var = contextvars.ContextVar('request_ctx', default={})


def set_request_context(request_id: str, user_id: str = None):
    _request_ctx_var.set({'request_id': request_id, 'user_id': user_id})


def get_request_context():
    return _request_ctx_var.get()


def _inject_request_context(record):
    ctx = get_request_context()
    record.request_id = ctx.get('request_id')
    record.user_id = ctx.get('user_id')
    return True


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == 'json':
        return jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(user_id)s')
    return logging.Formatter('%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s')


def _log_dir(log_file_path: str) -> pathlib.Path:
    log_dir = pathlib.Path(log_file_path).expanduser()
    if not log_dir.is_absolute():
        log_dir = pathlib.Path.cwd() / log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_logger(name: str = 'studyhub'):
    """Logger configured from ``Settings`` on first use.

    Records go to stdout and, unless ``LOG_FILE_PATH`` is empty, to
    ``reviews.log`` plus an error-only ``errors.log`` in that directory.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    settings = get_settings()
    logger.setLevel(settings.LOG_LEVEL.upper())
    fmt = _formatter(settings.LOG_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE_PATH:
        log_dir = _log_dir(settings.LOG_FILE_PATH)
        handlers.append(RotatingFileHandler(log_dir / 'reviews.log', maxBytes=settings.LOG_MAX_SIZE, backupCount=settings.LOG_MAX_FILES))
        errors = RotatingFileHandler(log_dir / 'errors.log', maxBytes=settings.LOG_MAX_SIZE, backupCount=settings.LOG_MAX_FILES)
        errors.setLevel(logging.ERROR)
        handlers.append(errors)

    for handler in handlers:
        handler.setFormatter(fmt)
        handler.addFilter(_inject_request_context)
        logger.addHandler(handler)

    logging.captureWarnings(True)

    return logger


def log_request(request_id: str, method: str, path: str, status_code: int, duration_ms: float, ip: str = None):
    logger = get_logger()
    logger.info('http_request', extra={'request_id': request_id, 'method': method, 'path': path, 'status_code': status_code, 'duration_ms': duration_ms, 'ip': ip})


def log_error(error: Exception, context: dict = None):
    logger = get_logger()
    logger.exception('error', exc_info=error, extra=context or {})


def log_review(flashcard_id: int, learner_id: str, is_correct: bool, interval_days: int, ease_factor: float, repetition_count: int):
    logger = get_logger()
    logger.info('review_recorded', extra={
        'flashcard_id': flashcard_id,
        'learner_id': learner_id,
        'is_correct': is_correct,
        'interval_days': interval_days,
        'ease_factor': round(ease_factor, 4),
        'repetition_count': repetition_count,
    })


def log_snapshot(operation: str, store_name: str, backend: str, duration_ms: float, flashcard_count: int = None, review_count: int = None):
    logger = get_logger()
    logger.info('snapshot_' + operation, extra={
        'store_name': store_name,
        'backend': backend,
        'duration_ms': duration_ms,
        'flashcard_count': flashcard_count,
        'review_count': review_count,
    })


def log_export(export_format: str, card_count: int, payload_size: int):
    logger = get_logger()
    logger.info('flashcards_exported', extra={
        'format': export_format,
        'card_count': card_count,
        'payload_size': payload_size,
    })
