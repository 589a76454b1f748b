"""Constants for logging configuration."""

__all__ = [
    "COMPONENT_LOGGERS",
    "DEFAULT_LOG_BACKUP_COUNT",
    "DEFAULT_LOG_FILENAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_SIZE_MB",
    "LOG_DATE_FORMAT",
    "LOG_FILE_FORMAT",
    "LOG_LEVELS",
    "LOG_SIZE_BYTES_MULTIPLIER",
    "SYNC_DUMP_DIRNAME",
]

# Third-party loggers, silenced unless enabled under logging.debug
COMPONENT_LOGGERS = {
    "aiohttp": ("aiohttp", "aiohttp.client", "aiohttp.access"),
    "asyncio": ("asyncio",),
}

DEFAULT_LOG_FILENAME = "textclient.log"
DEFAULT_LOG_SIZE_MB = 10
DEFAULT_LOG_BACKUP_COUNT = 5
LOG_SIZE_BYTES_MULTIPLIER = 1024 * 1024

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")
DEFAULT_LOG_LEVEL = "info"

LOG_FILE_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SYNC_DUMP_DIRNAME = "sync"
