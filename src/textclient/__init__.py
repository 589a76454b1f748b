"""Matrix text client: sync loop, event dispatch and rate-limited requests."""

__version__ = "0.1.0"

from .client import MatrixTextClient
from .identifiers import IdKind, MatrixId, SpecVersion, parse_identifier
from .rate_limiter import LeakyBucketRateLimiter
from .rooms import ReceivedTextMessage, Room, RoomUser, User

__all__ = [
    "IdKind",
    "LeakyBucketRateLimiter",
    "MatrixId",
    "MatrixTextClient",
    "ReceivedTextMessage",
    "Room",
    "RoomUser",
    "SpecVersion",
    "User",
    "__version__",
    "parse_identifier",
]
