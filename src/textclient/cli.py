#!/usr/bin/env python3
"""Command-line interface: runs a command/response bot on top of the text client."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Awaitable, Optional, TypeVar

from . import __version__
from .client import MatrixTextClient
from .config import (
    BotSettings,
    get_bot_settings,
    load_config,
    load_environment,
)
from .constants import (
    CLI_DESCRIPTION,
    CLI_HELP_CONFIG,
    CLI_HELP_LOG_LEVEL,
    CONFIG_DIR,
    CONFIG_KEY_LOGGING,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_LOG_LEVEL,
    ERROR_MISSING_CREDENTIALS,
    EXECUTABLE_NAME,
    LOG_LEVELS,
    LOGGER_NAME,
    MSG_CONFIG_EXISTS,
    MSG_GENERATED_CONFIG,
    SYNC_DUMP_DIRNAME,
)
from .errors import MatrixError
from .identifiers import MatrixId
from .log_utils import configure_logging, get_log_dir, get_logger
from .rooms import ReceivedTextMessage
from .tools import copy_sample_config_to

logger = logging.getLogger(LOGGER_NAME)

T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """Run a coroutine with asyncio.run; tests patch this wrapper."""
    return asyncio.run(coro)


def get_default_config_path():
    return CONFIG_DIR / DEFAULT_CONFIG_FILENAME


def generate_config(config_path) -> bool:
    """
    Copy the bundled sample config to config_path.

    Returns:
        bool: True if the file was written, False if one already existed.
    """
    if os.path.exists(config_path):
        print(MSG_CONFIG_EXISTS)
        print(f"  {config_path}")
        print("Delete it first if you want to regenerate it.")
        return False

    written = copy_sample_config_to(str(config_path))
    os.chmod(written, 0o600)
    print(MSG_GENERATED_CONFIG.format(written))
    print(
        "Set MATRIX_PASSWORD (and optionally MATRIX_USER_ID, MATRIX_DEVICE_ID) "
        "in a .env file next to it."
    )
    return True


def make_command_handler(settings: BotSettings, own_user_id: Optional[MatrixId]):
    """
    Build a message handler that answers ``settings.command`` with ``settings.response``.

    The bot's own messages are ignored. Matching is case-insensitive on the
    stripped message body; a typing notification is sent before the reply.
    """
    command = settings.command.strip().lower()

    async def handle(message: ReceivedTextMessage):
        logger.info(f"[{message.room.get_display_name()}] {message}")
        if own_user_id is not None and message.sender.user_id == own_user_id:
            return
        if message.body.strip().lower() != command:
            return
        await message.room.send_typing_notification()
        await message.send_response(settings.response)

    return handle


async def run_bot(config_path, config: dict, cancellation: Optional[asyncio.Event] = None):
    """
    Connect with the configured credentials and run the sync loop until it stops.

    Raises:
        RuntimeError: Credentials are missing.
        MatrixError: Connecting or syncing failed.
    """
    credentials = load_environment(config, config_path)
    if not credentials.is_complete():
        logger.error(ERROR_MISSING_CREDENTIALS)
        raise RuntimeError(ERROR_MISSING_CREDENTIALS)

    settings = get_bot_settings(config)
    dump_dir = get_log_dir() / SYNC_DUMP_DIRNAME if settings.debug_sync_dump else None

    logger.info(f"Connecting as {credentials.user_id}...")
    client = await MatrixTextClient.connect(
        credentials.user_id,
        credentials.password,
        credentials.device_id,
        cancellation=cancellation,
        device_name=credentials.device_name,
        debug_dump_dir=dump_dir,
    )
    try:
        await client.sync(make_command_handler(settings, client.context.user_id))
    finally:
        await client.close()


def _run(config_path, log_level: Optional[str]):
    config = load_config(config_path)
    if config is None:
        logger.error(f"Failed to load configuration from {config_path}")
        logger.error("Run 'textclient config generate' to create one.")
        sys.exit(1)

    if log_level:
        logging_section = dict(config.get(CONFIG_KEY_LOGGING) or {})
        logging_section["level"] = log_level
        config[CONFIG_KEY_LOGGING] = logging_section
    configure_logging(config)
    run_logger = get_logger(LOGGER_NAME)

    try:
        run_async(run_bot(config_path, config))
    except KeyboardInterrupt:
        run_logger.info("Stopped by user.")
    except (RuntimeError, MatrixError) as e:
        run_logger.error(f"Bot stopped: {e}")
        sys.exit(1)


def create_parser() -> argparse.ArgumentParser:
    default_config_path = get_default_config_path()
    parser = argparse.ArgumentParser(
        prog=EXECUTABLE_NAME,
        description=CLI_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  textclient                        # Run the bot
  textclient config generate        # Generate a sample config file
  textclient config validate        # Check the config file
        """,
    )
    parser.add_argument(
        "--config",
        default=str(default_config_path),
        help=CLI_HELP_CONFIG.format(default_config_path),
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help=CLI_HELP_LOG_LEVEL.format(DEFAULT_LOG_LEVEL),
    )
    parser.add_argument(
        "--version", action="version", version=f"{EXECUTABLE_NAME} {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("run", help="Connect and run the bot (default)")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_action")
    config_subparsers.add_parser("generate", help="Generate a sample config file")
    config_subparsers.add_parser("validate", help="Validate the config file")
    return parser


def main(argv=None):
    """Entry point of the ``textclient`` console script."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "config":
        if args.config_action == "generate":
            sys.exit(0 if generate_config(args.config) else 1)
        if args.config_action == "validate":
            config = load_config(args.config)
            if config is None:
                sys.exit(1)
            credentials = load_environment(config, args.config)
            if not credentials.is_complete():
                print(ERROR_MISSING_CREDENTIALS)
                sys.exit(1)
            print(f"Configuration is valid for {credentials.user_id}")
            return
        parser.parse_args(["config", "--help"])
        return

    _run(args.config, args.log_level)


if __name__ == "__main__":
    main()
