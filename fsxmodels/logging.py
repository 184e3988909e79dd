"""Loguru sinks for the fsxmodels CLI.

The package logger stays silent until setup_logging is called. Records bound
with ``component`` (the mount manager) or ``artifact`` (fetches) get that context
rendered as a tag in front of the message, so interleaved fetch lines remain
attributable when downloads run on the thread pool.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from fsxmodels.config import Settings

logger.disable("fsxmodels")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

_PACKAGE = "fsxmodels"
_CONTEXT_KEYS = ("component", "artifact")


def _context(record: dict[str, Any]) -> str:
    extra = record["extra"]
    tags = [str(extra[key]) for key in _CONTEXT_KEYS if key in extra]
    return f"[{'/'.join(tags)}] " if tags else ""


def _console_format(record: dict[str, Any]) -> str:
    record["extra"]["_tag"] = _context(record)
    return (
        "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> "
        "<cyan>{extra[_tag]}</cyan><level>{message}</level>\n{exception}"
    )


def _file_format(record: dict[str, Any]) -> str:
    record["extra"]["_tag"] = _context(record)
    return (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | "
        "{name}:{line} | {extra[_tag]}{message}\n{exception}"
    )


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where log records go.

    The console honours ``level``; the file sink always records DEBUG so
    every mount attempt and fetch is kept for later inspection.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> LogConfig:
        return cls(level=settings.log_level, file=settings.log_file)  # type: ignore[arg-type]


def setup_logging(config: LogConfig) -> list[int]:
    """Enable the package logger and attach sinks.

    Returns:
        Handler ids to pass to teardown_logging.
    """
    logger.enable(_PACKAGE)
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level=config.level,
                format=_console_format,
                colorize=True,
                filter=_PACKAGE,
            )
        )

    if config.file:
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                format=_file_format,
                rotation=config.rotation,
                retention=config.retention,
                compression="zip",
                diagnose=False,  # tracebacks may carry the registry token
                enqueue=True,  # fetch threads share the file
                filter=_PACKAGE,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable(_PACKAGE)


def warn_if_root() -> bool:
    """Log a warning when running with root privileges.

    Returns:
        True if the effective user is root.
    """
    if os.geteuid() != 0:
        return False
    logger.warning("Running as root. Consider running as a regular user with sudo access.")
    return True
