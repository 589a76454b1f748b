"""Constants for configuration files, sections and environment variables."""

import os
from pathlib import Path

from .app import APP_NAME

__all__ = [
    "CONFIG_DIR",
    "CONFIG_DIR_PERMISSIONS",
    "CONFIG_KEY_BOT",
    "CONFIG_KEY_LOGGING",
    "CONFIG_KEY_MATRIX",
    "CONFIG_BOT_COMMAND",
    "CONFIG_BOT_DEBUG_SYNC_DUMP",
    "CONFIG_BOT_RESPONSE",
    "CONFIG_MATRIX_DEVICE_ID",
    "CONFIG_MATRIX_DEVICE_NAME",
    "CONFIG_MATRIX_USER_ID",
    "DEFAULT_BOT_COMMAND",
    "DEFAULT_BOT_RESPONSE",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_ENV_FILENAME",
    "ENV_MATRIX_DEVICE_ID",
    "ENV_MATRIX_PASSWORD",
    "ENV_MATRIX_USER_ID",
    "SAMPLE_CONFIG_FILENAME",
]

_CONFIG_HOME = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_DIR = _CONFIG_HOME / APP_NAME
CONFIG_DIR_PERMISSIONS = 0o700

DEFAULT_CONFIG_FILENAME = "config.yaml"
SAMPLE_CONFIG_FILENAME = "sample_config.yaml"
DEFAULT_ENV_FILENAME = ".env"

# Top-level sections
CONFIG_KEY_MATRIX = "matrix"
CONFIG_KEY_BOT = "bot"
CONFIG_KEY_LOGGING = "logging"

# matrix: section
CONFIG_MATRIX_USER_ID = "user_id"
CONFIG_MATRIX_DEVICE_ID = "device_id"
CONFIG_MATRIX_DEVICE_NAME = "device_name"

# bot: section
CONFIG_BOT_COMMAND = "command"
CONFIG_BOT_RESPONSE = "response"
CONFIG_BOT_DEBUG_SYNC_DUMP = "debug_sync_dump"
DEFAULT_BOT_COMMAND = "ping"
DEFAULT_BOT_RESPONSE = "pong!"

ENV_MATRIX_USER_ID = "MATRIX_USER_ID"
ENV_MATRIX_PASSWORD = "MATRIX_PASSWORD"
ENV_MATRIX_DEVICE_ID = "MATRIX_DEVICE_ID"
