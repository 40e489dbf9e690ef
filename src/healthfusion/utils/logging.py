# utils/logging.py
import logging
import logging.config
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_log_dir

APP = "healthfusion"
SUMMARY = f"{APP}.summary"


def default_log_dir() -> Path:
    """Per-user log directory for the healthfusion CLI."""
    return Path(user_log_dir(APP))


def _handlers(log_path: str, console: bool, console_level: Optional[str]) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "run_file": {
            "class": "logging.FileHandler",
            "formatter": "detailed",
            "filename": log_path,
            "encoding": "utf-8",
            "mode": "w",
            "level": "DEBUG",
        },
        "summary_file": {
            "class": "logging.FileHandler",
            "formatter": "summary",
            "filename": log_path,
            "encoding": "utf-8",
            "mode": "a",
            "level": "INFO",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "brief",
            "level": console_level,
        }
    return handlers


def setup_logging(
    log_dir: Optional[str] = None,
    console: bool = True,
    level: str = "INFO",
    quiet_console: bool = False,
    console_level: Optional[str] = None,
) -> tuple:
    """
    Configure the ``healthfusion`` and ``healthfusion.summary`` loggers.

    Both write to one timestamped file in ``log_dir``. With ``console`` the
    main logger also echoes to stderr; ``quiet_console`` limits the console
    to errors reported through the summary channel.

    Returns:
        ``(logger, summary_logger)``
    """
    directory = Path(log_dir) if log_dir else default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = str(directory / f"{APP}_{stamp}.log")

    level = level.upper()
    if quiet_console:
        console_level = "ERROR"
    else:
        console_level = (console_level or level).upper()

    main_handlers = ["run_file"]
    summary_handlers = ["summary_file"]
    if console:
        summary_handlers.append("console")
        if not quiet_console:
            main_handlers.append("console")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {"format": "{asctime} {levelname:<7} {name} - {message}", "style": "{"},
            "summary": {"format": "{asctime} SUMMARY - {message}", "style": "{"},
            "brief": {"format": "{levelname:<7} {message}", "style": "{"},
        },
        "handlers": _handlers(log_path, console, console_level),
        "loggers": {
            APP: {"level": level, "handlers": main_handlers, "propagate": False},
            SUMMARY: {"level": "INFO", "handlers": summary_handlers, "propagate": False},
        },
        "root": {"handlers": []},
    })
    logging.captureWarnings(True)

    logger = logging.getLogger(APP)
    logger.info("Logging initialised. File: %s", log_path)
    return logger, logging.getLogger(SUMMARY)
