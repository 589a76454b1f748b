"""Exceptions raised by the Matrix text client."""

from typing import Optional


class MatrixError(Exception):
    """Base class for every failure raised by this library."""

    pass


class InvalidArgumentError(MatrixError, ValueError):
    """Raised before any network activity when an argument is unusable."""

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.argument = argument


class InvalidIdentifierError(InvalidArgumentError):
    """Raised when a string is not a valid user/room/event/alias identifier."""

    pass


class InvalidSpecVersionError(MatrixError, ValueError):
    """Raised when a spec version string does not match the version grammar."""

    pass


class RateLimitExceededError(MatrixError):
    """Raised by the gateway when the rate limiter denies a request."""

    def __init__(self, path: str):
        super().__init__(f"Rate limit exceeded, request to {path} was not sent")
        self.path = path


class MatrixRequestError(MatrixError):
    """
    Generic failure of a request to the homeserver.

    Carries the request path and, when a response was received, its HTTP status.
    """

    def __init__(self, message: str, path: str, status: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.status = status


class MatrixHttpError(MatrixRequestError):
    """Non-success status without a parseable error envelope."""

    def __init__(self, path: str, status: int, reason: Optional[str] = None):
        message = f"HTTP {status} from {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, path, status)
        self.reason = reason


class EmptyResponseError(MatrixRequestError):
    """Successful status with an empty body."""

    def __init__(self, path: str, status: Optional[int] = None):
        super().__init__(f"Empty response from {path}", path, status)


class DeserializationError(MatrixRequestError):
    """Successful status with a body that could not be decoded into the expected shape."""

    def __init__(self, path: str, detail: str, status: Optional[int] = None):
        super().__init__(
            f"Failed to deserialize response from {path}: {detail}", path, status
        )


class MatrixResponseError(MatrixRequestError):
    """The homeserver answered with an ``{errcode, error}`` envelope."""

    def __init__(self, path: str, status: int, errcode: str, error: str):
        super().__init__(f"{errcode}: {error}", path, status)
        self.errcode = errcode
        self.error = error


class ConnectError(MatrixError):
    """Raised when the connection bootstrap cannot complete."""

    pass
