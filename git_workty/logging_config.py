"""Logging configuration for git-workty"""
import logging
import os
import sys
from pathlib import Path

LOG_DIR = Path.home() / '.git-workty'
LOG_FILE = LOG_DIR / 'git-workty.log'

DEBUG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class LevelColorFormatter(logging.Formatter):
    """Formatter that colours the level name when its stream is a terminal."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt=None, datefmt=None, stream=None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        stream = stream or sys.stderr
        self.use_color = (
            hasattr(stream, 'isatty') and stream.isatty() and 'NO_COLOR' not in os.environ
        )

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelname) if self.use_color else None
        if color:
            # Copy so other handlers see the plain level name
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _level_for(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure logging for the application.

    All log output goes to stderr: stdout carries only data (tables, JSON,
    and the switch target that shell wrappers capture).

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and keep a log file of the run
    """
    level = _level_for(verbose, debug)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(LevelColorFormatter(
        fmt=DEBUG_FORMAT if debug else '%(levelname)s [%(name)s] %(message)s',
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
    ))
    root_logger.addHandler(stderr_handler)

    if debug:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE, mode='w')  # One run per file
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=DEBUG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # GitPython logs every command it runs; only useful when debugging
    logging.getLogger('git.cmd').setLevel(logging.NOTSET if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger named without the package prefix, e.g. "registry_service"
    """
    for prefix in ('git_workty.', 'services.'):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
