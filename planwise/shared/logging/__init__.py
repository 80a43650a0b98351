"""Logging setup: structlog rendering for both structlog and stdlib loggers."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

# Chatty client libraries, capped at WARNING unless running at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "ollama")


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(
    level: str = "INFO",
    file_path: str = "",
    rotation_max_mb: int = 5,
    rotation_backups: int = 3,
    json_output: bool | None = None,
) -> None:
    """Route all logging through one structlog ProcessorFormatter.

    Console output is JSON unless level is DEBUG (or json_output says otherwise).
    A non-empty file_path adds a size-rotated file handler; failing to open it
    keeps stdout logging only.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json_output is None:
        json_output = log_level != logging.DEBUG

    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if file_path and file_path.strip():
        path = Path(file_path.strip()).resolve()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path,
                maxBytes=rotation_max_mb * 1024 * 1024,
                backupCount=rotation_backups,
                encoding="utf-8",
            )
        except OSError as e:
            sys.stderr.write(f"File logging disabled, cannot open {path}: {e}\n")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
