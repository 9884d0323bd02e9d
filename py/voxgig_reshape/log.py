# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Logging setup for the command line. The library itself only creates
# loggers (logging.getLogger(__name__)) and never installs handlers.


import logging
import os
import sys
from typing import Optional, TextIO

from yachalk import chalk


ENV_LOG_LEVEL = 'VOXGIG_RESHAPE_LOG_LEVEL'

LOG_FORMAT = '[%(levelname)s] %(message)s'
DEBUG_LOG_FORMAT = '[%(levelname)s] [%(name)s:%(lineno)d] %(message)s'

LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
    'FATAL': logging.CRITICAL,
    'NOTSET': logging.NOTSET,
}


class ChalkFormatter(logging.Formatter):
    """Color log records by severity."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        level = record.levelno

        if level >= logging.CRITICAL:
            return chalk.red_bright(message)
        elif level >= logging.ERROR:
            return chalk.red(message)
        elif level >= logging.WARNING:
            return chalk.yellow(message)
        elif level >= logging.INFO:
            return chalk.green(message)
        return chalk.gray(message)


def resolve_env_log_level() -> Optional[int]:
    """
    Log level from the VOXGIG_RESHAPE_LOG_LEVEL environment variable, as a
    level name ("DEBUG") or number ("10"). None if unset or unknown.
    """
    val = os.environ.get(ENV_LOG_LEVEL)
    if not val:
        return None

    val = val.strip().upper()
    if val.isdigit():
        return int(val)

    return LEVELS.get(val)


def resolve_level(verbose: int = 0, quiet: int = 0) -> int:
    """
    Log level from counted -v/-q flags, starting at WARNING. The environment
    variable wins when no flag is given.
    """
    if 0 == verbose and 0 == quiet:
        env_level = resolve_env_log_level()
        if env_level is not None:
            return env_level

    level = logging.WARNING - 10 * verbose + 10 * quiet
    return max(logging.DEBUG, min(logging.CRITICAL, level))


def setup_logging(level: int = logging.WARNING, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with colored output. Logs go to stderr by
    default, leaving stdout for the transform output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplicate log messages.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setFormatter(
        ChalkFormatter(LOG_FORMAT if level >= logging.INFO else DEBUG_LOG_FORMAT))
    root_logger.addHandler(handler)
