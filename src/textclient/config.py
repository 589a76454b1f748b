"""Configuration loading: YAML settings plus credentials from the environment or a .env file."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .constants import (
    CONFIG_BOT_COMMAND,
    CONFIG_BOT_DEBUG_SYNC_DUMP,
    CONFIG_BOT_RESPONSE,
    CONFIG_DIR,
    CONFIG_DIR_PERMISSIONS,
    CONFIG_KEY_BOT,
    CONFIG_KEY_MATRIX,
    CONFIG_MATRIX_DEVICE_ID,
    CONFIG_MATRIX_DEVICE_NAME,
    CONFIG_MATRIX_USER_ID,
    DEFAULT_BOT_COMMAND,
    DEFAULT_BOT_RESPONSE,
    DEFAULT_ENV_FILENAME,
    ENV_MATRIX_DEVICE_ID,
    ENV_MATRIX_PASSWORD,
    ENV_MATRIX_USER_ID,
    ERROR_CONFIG_NOT_FOUND,
    ERROR_INVALID_YAML,
    FILE_ENCODING_UTF8,
    LOGGER_NAME,
    MATRIX_DEVICE_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class Credentials:
    user_id: Optional[str] = None
    password: Optional[str] = None
    device_id: Optional[str] = None
    device_name: str = MATRIX_DEVICE_NAME

    def is_complete(self) -> bool:
        return bool(self.user_id and self.password and self.device_id)

    def __repr__(self):
        # never log the password
        return (
            f"Credentials(user_id={self.user_id!r}, device_id={self.device_id!r}, "
            f"device_name={self.device_name!r})"
        )


@dataclass
class BotSettings:
    command: str = DEFAULT_BOT_COMMAND
    response: str = DEFAULT_BOT_RESPONSE
    debug_sync_dump: bool = False


def get_config_dir() -> Path:
    """
    Create the application's config directory if needed and return it.

    Failing to tighten the directory permissions is logged at debug level only.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(CONFIG_DIR, CONFIG_DIR_PERMISSIONS)
    except OSError:
        logger.debug(
            f"Could not set config dir perms to {oct(CONFIG_DIR_PERMISSIONS)}",
            exc_info=True,
        )
    return CONFIG_DIR


def load_config(config_file):
    """
    Read the YAML configuration file.

    Parameters:
        config_file (str | Path): Path to the YAML file.

    Returns:
        dict | None: The parsed configuration, or None when the file is missing,
        is not valid YAML, or does not contain a mapping. Each failure is logged.
    """
    try:
        with open(config_file, "r", encoding=FILE_ENCODING_UTF8) as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(f"{ERROR_CONFIG_NOT_FOUND}: {config_file}")
        return None
    except yaml.YAMLError:
        logger.exception(f"{ERROR_INVALID_YAML}: {config_file}")
        return None
    except OSError:
        logger.exception(f"Could not read config file {config_file}")
        return None

    if not isinstance(config, dict):
        logger.error(f"Config file {config_file} must contain a mapping")
        return None

    for section in (CONFIG_KEY_MATRIX, CONFIG_KEY_BOT):
        if section in config and not isinstance(config[section], dict):
            logger.error(f"'{section}' must be a mapping in {config_file}")
            return None

    logger.info(f"Loaded configuration from {config_file}")
    return config


def load_environment(config: Optional[dict], config_path) -> Credentials:
    """
    Resolve Matrix credentials.

    A ``.env`` file next to the config file (or else in the working directory) is
    loaded first without overriding variables already set. ``MATRIX_USER_ID``,
    ``MATRIX_PASSWORD`` and ``MATRIX_DEVICE_ID`` then take precedence over the
    ``matrix`` section of the config. The password is only read from the environment.

    Parameters:
        config (dict | None): Parsed configuration.
        config_path (str | Path): Path of the active config file.

    Returns:
        Credentials: Possibly incomplete; check is_complete().
    """
    env_paths = [
        Path(config_path).parent / DEFAULT_ENV_FILENAME,
        Path.cwd() / DEFAULT_ENV_FILENAME,
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment from {env_path}")
            break
    else:
        logger.debug("No .env file found")

    matrix = (config or {}).get(CONFIG_KEY_MATRIX) or {}
    return Credentials(
        user_id=os.getenv(ENV_MATRIX_USER_ID) or matrix.get(CONFIG_MATRIX_USER_ID),
        password=os.getenv(ENV_MATRIX_PASSWORD),
        device_id=os.getenv(ENV_MATRIX_DEVICE_ID)
        or matrix.get(CONFIG_MATRIX_DEVICE_ID),
        device_name=matrix.get(CONFIG_MATRIX_DEVICE_NAME) or MATRIX_DEVICE_NAME,
    )


def get_bot_settings(config: Optional[dict]) -> BotSettings:
    """Return the ``bot`` section with defaults filled in."""
    section = (config or {}).get(CONFIG_KEY_BOT) or {}
    return BotSettings(
        command=str(section.get(CONFIG_BOT_COMMAND) or DEFAULT_BOT_COMMAND),
        response=str(section.get(CONFIG_BOT_RESPONSE) or DEFAULT_BOT_RESPONSE),
        debug_sync_dump=bool(section.get(CONFIG_BOT_DEBUG_SYNC_DUMP, False)),
    )
