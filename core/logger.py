"""
Logging for the assistant server: console output plus a rotating log file
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional
from .config import settings

CONSOLE_FORMAT = '%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s'

# Third-party loggers that flood INFO with per-request noise
QUIET_LOGGERS = ("httpx", "gtts", "faster_whisper", "edge_tts")

# One handler per file so rotation is never done twice
_file_handlers = {}

def _file_handler(log_file: Optional[str]) -> logging.Handler:
    file_name = log_file or settings.LOG_FILE_NAME
    if file_name in _file_handlers:
        return _file_handlers[file_name]

    settings.LOGS_PATH.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        settings.LOGS_PATH / file_name,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    _file_handlers[file_name] = handler
    return handler

def setup_logger(name: str, log_file: Optional[str] = None) -> logging.Logger:
    """
    Create a configured logger instance

    Every module shares one rotating file (``LOG_FILE_NAME``) unless
    ``log_file`` names another; file output is skipped when
    ``LOG_TO_FILE`` is off.

    Args:
        name: Logger name (usually __name__)
        log_file: Optional specific log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    logger.addHandler(console_handler)

    if settings.LOG_TO_FILE:
        logger.addHandler(_file_handler(log_file))

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
