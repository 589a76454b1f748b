"""
Logging utilities for the Matrix text client.

Console output goes through rich (colour, timestamps); a rotating log file under
the config directory is added unless disabled in the ``logging`` section.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .constants import (
    COMPONENT_LOGGERS,
    CONFIG_KEY_LOGGING,
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_FILENAME,
    DEFAULT_LOG_SIZE_MB,
    LOG_DATE_FORMAT,
    LOG_FILE_FORMAT,
    LOG_SIZE_BYTES_MULTIPLIER,
    LOGGER_NAME,
)

console = Console()

# Full configuration dict, set by configure_logging()
config = None

# Path of the application log file once get_logger(LOGGER_NAME) has created it
log_file_path = None

_component_debug_configured = False


def _logging_section() -> dict:
    if config is None:
        return {}
    section = config.get(CONFIG_KEY_LOGGING)
    return section if isinstance(section, dict) else {}


def configure_component_debug_logging():
    """
    Apply ``logging.debug`` settings to third-party loggers such as aiohttp.

    For each component: a falsy or missing entry silences it, ``true`` enables
    DEBUG, a string is taken as a level name (unknown names mean DEBUG). Runs
    once per process and does nothing until a config has been set.
    """
    global _component_debug_configured

    if _component_debug_configured or config is None:
        return

    debug_config = _logging_section().get("debug") or {}

    for component, loggers in COMPONENT_LOGGERS.items():
        setting = debug_config.get(component)
        if setting:
            level = logging.DEBUG
            if isinstance(setting, str):
                level = getattr(logging, setting.upper(), logging.DEBUG)
        else:
            level = logging.CRITICAL + 1
        for logger_name in loggers:
            logging.getLogger(logger_name).setLevel(level)

    _component_debug_configured = True


def get_log_dir() -> Path:
    """Return ``<config dir>/logs`` (not created here)."""
    from .config import get_config_dir

    return get_config_dir() / "logs"


def _console_handler(color_enabled: bool) -> logging.Handler:
    if color_enabled:
        handler = RichHandler(
            rich_tracebacks=True,
            console=console,
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
            log_time_format=LOG_DATE_FORMAT,
            omit_repeated_times=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, LOG_DATE_FORMAT))
    return handler


def _max_log_bytes(value) -> int:
    """Accept a size in MB (int/float) or in bytes as a string ending in 'B'."""
    if isinstance(value, (int, float)):
        return int(value * LOG_SIZE_BYTES_MULTIPLIER)
    if isinstance(value, str) and value.lower().endswith("b"):
        return int(value[:-1])
    return DEFAULT_LOG_SIZE_MB * LOG_SIZE_BYTES_MULTIPLIER


def _file_handler(name: str, settings: dict):
    global log_file_path

    if settings.get("filename"):
        log_file = Path(settings["filename"])
    else:
        log_file = get_log_dir() / DEFAULT_LOG_FILENAME

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=_max_log_bytes(settings.get("max_log_size")),
            backupCount=settings.get("backup_count", DEFAULT_LOG_BACKUP_COUNT),
            encoding="utf-8",
        )
    except OSError as e:
        console.print(
            f"[yellow]Warning: Could not create log file at {log_file}: {e}[/yellow]"
        )
        logging.getLogger(__name__).debug("File logging setup failed", exc_info=True)
        return None

    handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, LOG_DATE_FORMAT))
    if name == LOGGER_NAME:
        log_file_path = str(log_file)
    return handler


def get_logger(name):
    """
    Create or return a configured logger.

    The level and colour come from the ``logging`` config section (INFO and
    colour by default). Handlers are only attached the first time a name is
    requested.

    Parameters:
        name (str): Logger name.

    Returns:
        logging.Logger: The configured logger.
    """
    settings = _logging_section()
    logger = logging.getLogger(name)

    level_name = str(settings.get("level", "info")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.propagate = False

    if logger.handlers:
        return logger

    logger.addHandler(_console_handler(settings.get("color_enabled", True)))

    if settings.get("log_to_file", True):
        file_handler = _file_handler(name, settings)
        if file_handler is not None:
            logger.addHandler(file_handler)

    return logger


def configure_logging(config_dict=None):
    """
    Store the full configuration for later get_logger() calls and apply
    component log levels.

    Parameters:
        config_dict (dict | None): Parsed configuration; its ``logging`` section
            may hold ``level``, ``color_enabled``, ``log_to_file``, ``filename``,
            ``max_log_size``, ``backup_count`` and a per-component ``debug`` map.
    """
    global config
    config = config_dict
    configure_component_debug_logging()
