"""Constants for error messages and CLI output."""

__all__ = [
    "CLI_DESCRIPTION",
    "CLI_HELP_CONFIG",
    "CLI_HELP_LOG_LEVEL",
    "ERROR_CONFIG_NOT_FOUND",
    "ERROR_EMPTY_ACCESS_TOKEN",
    "ERROR_EMPTY_FILTER_ID",
    "ERROR_INVALID_USER_ID",
    "ERROR_INVALID_YAML",
    "ERROR_MISSING_CREDENTIALS",
    "ERROR_NO_BASE_URL",
    "ERROR_NO_PASSWORD_LOGIN",
    "ERROR_NO_VERSIONS",
    "ERROR_NOT_BLANK",
    "MSG_CONFIG_EXISTS",
    "MSG_GENERATED_CONFIG",
]

ERROR_NOT_BLANK = "{} cannot be null or empty."
ERROR_INVALID_USER_ID = (
    "The user id seems invalid, it should look like: '@user:example.org'."
)
ERROR_NO_BASE_URL = "The well-known document does not contain a homeserver base URL."
ERROR_NO_VERSIONS = "The server did not report any supported spec versions."
ERROR_NO_PASSWORD_LOGIN = "The server does not support password based authentication."
ERROR_EMPTY_ACCESS_TOKEN = "The server did not return an access token."
ERROR_EMPTY_FILTER_ID = "The server did not return a filter id."

ERROR_CONFIG_NOT_FOUND = "Config file not found"
ERROR_INVALID_YAML = "Invalid YAML in config file"
ERROR_MISSING_CREDENTIALS = (
    "Missing Matrix credentials. Set MATRIX_USER_ID, MATRIX_PASSWORD and "
    "MATRIX_DEVICE_ID in the environment or a .env file."
)

CLI_DESCRIPTION = "Matrix text client - runs a simple command/response bot"
CLI_HELP_CONFIG = "Path to config file (default: {})"
CLI_HELP_LOG_LEVEL = "Set logging level (default: {})"
MSG_CONFIG_EXISTS = "A config file already exists at:"
MSG_GENERATED_CONFIG = "Generated sample config file at: {}"
