import os
import sys
import logging
import pathlib
import contextvars
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger

_request_ctx_var = contextvars.ContextVar('request_ctx', default={})


def set_request_context(request_id: str, session_id: str = None):
    _request_ctx_var.set({'request_id': request_id, 'session_id': session_id})


def get_request_context():
    return _request_ctx_var.get()


def _inject_request_context(record):
    ctx = get_request_context()
    if not hasattr(record, 'request_id'):
        record.request_id = ctx.get('request_id')
    record.session_id = ctx.get('session_id')
    return True


def get_logger(name: str = 'resource_service'):
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    # default to a relative logs directory so local dev doesn't require /app
    LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', 'logs')
    LOG_MAX_SIZE = int(os.getenv('LOG_MAX_SIZE', str(10 * 1024 * 1024)))
    LOG_MAX_FILES = int(os.getenv('LOG_MAX_FILES', '7'))

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL.upper())
    log_path = pathlib.Path(LOG_FILE_PATH)
    if not log_path.is_absolute():
        log_path = pathlib.Path(os.getcwd()) / log_path
    log_path.mkdir(parents=True, exist_ok=True)

    ch = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT == 'json':
        fmt = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s')
    else:
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    combined = RotatingFileHandler(log_path / 'combined.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
    combined.setFormatter(fmt)
    logger.addHandler(combined)

    errors = RotatingFileHandler(log_path / 'error.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
    errors.setLevel(logging.ERROR)
    errors.setFormatter(fmt)
    logger.addHandler(errors)

    f = logging.Filter()
    f.filter = _inject_request_context
    logger.addFilter(f)

    logging.captureWarnings(True)

    return logger


def log_request(request_id: str, method: str, path: str, status_code: int, duration_ms: float, ip: str = None):
    logger = get_logger()
    logger.info('http_request', extra={'request_id': request_id, 'method': method, 'path': path, 'status_code': status_code, 'duration_ms': duration_ms, 'ip': ip})


def log_error(error: Exception, context: dict = None):
    logger = get_logger()
    logger.exception('error', exc_info=True, extra=context or {})


def log_llm_call(request_id: str, model: str, prompt_tokens: int, completion_tokens: int, duration_ms: float, cost: float = None):
    logger = get_logger()
    logger.info('llm_call', extra={'request_id': request_id, 'model': model, 'prompt_tokens': prompt_tokens, 'completion_tokens': completion_tokens, 'duration_ms': duration_ms, 'cost': cost})


def log_transcript_analysis(request_id: str, category: str, resource_type: str, slots: dict, transcript_length: int):
    logger = get_logger()
    logger.info('transcript_analysis', extra={
        'request_id': request_id,
        'category': category,
        'resource_type': resource_type,
        'slots': slots,
        'transcript_length': transcript_length,
    })


def log_generation(request_id: str, resource_type: str, subject: str, format: str, item_count: int, duration_ms: float, cost: float = None):
    logger = get_logger()
    logger.info('resource_generation', extra={
        'request_id': request_id,
        'resource_type': resource_type,
        'subject': subject,
        'format': format,
        'item_count': item_count,
        'duration_ms': duration_ms,
        'cost': cost,
    })


def log_reconciliation(request_id: str, items_key: str, requested: int, received: int, action: str):
    logger = get_logger()
    logger.warning('count_mismatch', extra={
        'request_id': request_id,
        'items_key': items_key,
        'requested': requested,
        'received': received,
        'action': action,
    })
