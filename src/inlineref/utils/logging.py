"""Logging setup for the resource input, driven by :class:`InputSettings`."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

from ..services.settings import InputSettings

__all__ = ["setup_logging"]

_DEFAULT_LOG_DIR = Path.home() / ".inlineref" / "logs"
_LOG_FILE_NAME = "inlineref.log"
# Subscription bookkeeping on the event bus drowns out edit diagnostics.
_NOISY_LOGGERS: tuple[str, ...] = ("inlineref.ui.events",)
# Loggers that trace traffic with the embedding host.
_HOST_MESSAGE_LOGGERS: tuple[str, ...] = ("inlineref.services.bridge", "inlineref.services.transport")


def setup_logging(
    settings: InputSettings | None = None,
    *,
    debug: bool = False,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """Configure root logging for the input and return the log file path.

    ``debug`` (or ``settings.debug_logging``) lowers the root level to
    ``DEBUG``. ``settings.log_host_messages`` traces every host message at
    ``DEBUG`` even when the root level stays at ``INFO``. Calling this again
    replaces the handlers installed by the previous call.
    """

    settings = settings or InputSettings()
    level = logging.DEBUG if debug or settings.debug_logging else logging.INFO

    target_dir = Path(log_dir or os.environ.get("INLINEREF_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILE_NAME

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Handlers accept everything; logger levels decide what is recorded.
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING if level < logging.WARNING else level)
    host_level = logging.DEBUG if settings.log_host_messages else logging.NOTSET
    for logger_name in _HOST_MESSAGE_LOGGERS:
        logging.getLogger(logger_name).setLevel(host_level)

    logging.getLogger(__name__).debug("Logging to %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path
