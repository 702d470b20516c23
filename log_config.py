"""
Logging configuration for the nixmap CLI.

Only the CLI calls configure_logging(); library modules log through
logging.getLogger(__name__). Calling it again replaces the handlers it added
earlier and leaves other handlers alone.
"""

import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging options.

    - level: "DEBUG" | "INFO" | "WARNING" | "ERROR" | "CRITICAL"
    - console: log to stderr
    - log_file: optional path for a rotating log file
    """
    level: str = "WARNING"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 3

    console_fmt: str = "%(levelname)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


_HANDLER_TAG_ATTR = "_nixmap_handler"

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_level(level: Optional[str]) -> int:
    if not level:
        return logging.WARNING
    return _LEVEL_MAP.get(str(level).strip().upper(), logging.WARNING)


def level_for_verbosity(verbosity: int, default: str = "WARNING") -> str:
    """Map the number of -v flags to a level name."""
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    return default


def _remove_our_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG_ATTR, False):
            root.removeHandler(handler)
            handler.close()


def _add_handler(root: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_TAG_ATTR, True)
    root.addHandler(handler)


def configure_logging(cfg: LoggingConfig) -> logging.Logger:
    """
    Configure the root logger.

    A log file that cannot be opened is reported on the console instead of
    failing the run.

    Returns:
        The root logger.
    """
    root = logging.getLogger()
    level = parse_level(cfg.level)
    root.setLevel(level)
    _remove_our_handlers(root)

    if cfg.console:
        _add_handler(root, logging.StreamHandler(sys.stderr), level, logging.Formatter(cfg.console_fmt))

    if cfg.log_file:
        try:
            parent = os.path.dirname(os.path.abspath(cfg.log_file))
            os.makedirs(parent, exist_ok=True)
            handler = RotatingFileHandler(
                cfg.log_file,
                maxBytes=cfg.max_bytes,
                backupCount=cfg.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            if not cfg.console:
                _add_handler(root, logging.StreamHandler(sys.stderr), level, logging.Formatter(cfg.console_fmt))
            root.warning("Cannot open log file %s (%s); logging to console only", cfg.log_file, e)
        else:
            _add_handler(root, handler, level, logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt))

    return root
