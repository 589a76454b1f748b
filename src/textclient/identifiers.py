"""
Matrix identifiers and spec versions.

Users, rooms, events and room aliases share one grammar: a sigil, a localpart,
a colon and a domain. The domain is everything after the first colon, so
server names with ports (or further colons) are kept verbatim.
"""

import functools
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import InvalidIdentifierError, InvalidSpecVersionError

# Matched with fullmatch(); "$" would also accept a trailing newline.
_LOCALPART_RE = re.compile(r"[A-Za-z0-9._=+/-]+")
_DOMAIN_RE = re.compile(r"[A-Za-z0-9._=+/:-]+")
_SPEC_VERSION_RE = re.compile(r"(v|r)(\d+)\.(\d+)(?:\.(\d+))?(?:-(\w+))?")

MIN_IDENTIFIER_LENGTH = 4


class IdKind(Enum):
    """Identifier kinds, valued by their sigil."""

    USER = "@"
    ROOM = "!"
    EVENT = "$"
    ROOM_ALIAS = "#"

    @property
    def sigil(self) -> str:
        return self.value


@dataclass(frozen=True)
class MatrixId:
    """
    A parsed identifier. Two ids are equal when their full strings are equal.

    Build instances with parse_identifier(); the constructor does not validate.
    """

    full: str
    kind: IdKind = field(compare=False)
    localpart: str = field(compare=False)
    domain: str = field(compare=False)

    def __str__(self):
        return self.full


def _check_identifier(value: str, kind: IdKind) -> Optional[str]:
    """Return the reason value is not a valid identifier of kind, or None when it is."""
    if value is None or not value.strip():
        return "identifier is empty"
    if len(value) < MIN_IDENTIFIER_LENGTH:
        return "identifier is too short"
    if value[0] != kind.sigil:
        return f"identifier must start with '{kind.sigil}'"
    separator = value.find(":")
    if separator < 0:
        return "identifier has no ':' separator"
    if separator < 2:
        return "localpart is empty"
    if separator == len(value) - 1:
        return "domain is empty"
    if not _LOCALPART_RE.fullmatch(value[1:separator]):
        return "localpart contains invalid characters"
    if not _DOMAIN_RE.fullmatch(value[separator + 1 :]):
        return "domain contains invalid characters"
    return None


def parse_identifier(value: str, kind: IdKind) -> MatrixId:
    """
    Parse and validate an identifier of the given kind.

    Parameters:
        value (str): Full identifier, e.g. ``@user:example.org``.
        kind (IdKind): Expected kind; the first character must be its sigil.

    Returns:
        MatrixId: The parsed identifier.

    Raises:
        InvalidIdentifierError: If value is blank, shorter than 4 characters, has the
            wrong sigil, no colon, an empty localpart or domain, or a disallowed character.
    """
    reason = _check_identifier(value, kind)
    if reason is not None:
        raise InvalidIdentifierError(f"Invalid {kind.name.lower()} id {value!r}: {reason}")
    separator = value.index(":")
    return MatrixId(
        full=value,
        kind=kind,
        localpart=value[1:separator],
        domain=value[separator + 1 :],
    )


def try_parse_identifier(value, kind: IdKind) -> Optional[MatrixId]:
    """Like parse_identifier() but returns None for anything invalid, including non-strings."""
    if not isinstance(value, str):
        return None
    if _check_identifier(value, kind) is not None:
        return None
    return parse_identifier(value, kind)


@functools.total_ordering
class SpecVersion:
    """
    A client-server spec version: ``rX.Y.Z[-meta]`` (legacy releases) or ``vX.Y[-meta]``.

    Versions order by X, Y, then Z (missing Z counts as 0). For equal numbers a
    version without metadata sorts after one with metadata; two metadata strings
    compare ordinally.
    """

    __slots__ = ("is_legacy", "major", "minor", "patch", "metadata")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: Optional[int] = None,
        metadata: Optional[str] = None,
    ):
        self.is_legacy = patch is not None
        self.major = major
        self.minor = minor
        self.patch = patch
        self.metadata = metadata

    @classmethod
    def parse(cls, value: str) -> "SpecVersion":
        """
        Parse a version string.

        Raises:
            InvalidSpecVersionError: If value does not match the grammar, if an ``r``
                version lacks its patch number, or a ``v`` version carries one.
        """
        match = _SPEC_VERSION_RE.fullmatch(value or "")
        if not match:
            raise InvalidSpecVersionError(f"Invalid spec version: {value!r}")
        prefix, major, minor, patch, metadata = match.groups()
        if prefix == "r" and patch is None:
            raise InvalidSpecVersionError(
                f"Legacy spec version needs a patch number: {value!r}"
            )
        if prefix == "v" and patch is not None:
            raise InvalidSpecVersionError(
                f"Spec version must not have a patch number: {value!r}"
            )
        return cls(
            int(major),
            int(minor),
            int(patch) if patch is not None else None,
            metadata,
        )

    @classmethod
    def try_parse(cls, value: str) -> Optional["SpecVersion"]:
        try:
            return cls.parse(value)
        except InvalidSpecVersionError:
            return None

    def _key(self):
        return (
            self.major,
            self.minor,
            self.patch or 0,
            self.metadata is None,
            self.metadata or "",
        )

    def __eq__(self, other):
        if not isinstance(other, SpecVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, SpecVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self):
        if self.is_legacy:
            text = f"r{self.major}.{self.minor}.{self.patch}"
        else:
            text = f"v{self.major}.{self.minor}"
        if self.metadata:
            text = f"{text}-{self.metadata}"
        return text

    def __repr__(self):
        return f"SpecVersion({str(self)!r})"
