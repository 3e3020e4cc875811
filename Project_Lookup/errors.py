"""Error taxonomy for employee project lookups.

Every failure surfaced by the lookup client is one of these classes. Raw
socket and JSON exceptions are chained onto them with ``from`` and never
escape on their own.
"""

from __future__ import annotations


class ProjectLookupError(Exception):
    """Base class for classified lookup failures."""

    kind = "lookup_error"

    def __init__(self, message: str, identifier: int | None = None) -> None:
        self.identifier = identifier
        super().__init__(message)


class TransportUnavailable(ProjectLookupError):
    """Raised when connecting, writing or reading fails.

    Covers refused or timed out connections, resets, and a peer that closes
    in the middle of a length-prefixed frame.
    """

    kind = "transport_unavailable"


class DecodeError(ProjectLookupError):
    """Raised when a response cannot be interpreted as a project list."""

    kind = "decode_error"


class Cancelled(ProjectLookupError):
    """Raised when an in-flight lookup is aborted by the caller."""

    kind = "cancelled"
