"""Application-level constants."""

__all__ = [
    "APP_NAME",
    "EXECUTABLE_NAME",
    "FILE_ENCODING_UTF8",
    "LOGGER_NAME",
    "USER_AGENT",
]

APP_NAME = "matrix-textclient"
LOGGER_NAME = "TextClient"
EXECUTABLE_NAME = "textclient"

USER_AGENT = APP_NAME

FILE_ENCODING_UTF8 = "utf-8"
