"""Framing strategies for reading one response off a stream session.

The lookup protocol has no explicit framing: the server writes a JSON
array and closes. ``AvailabilityFraming`` reproduces the legacy client's
end-of-message guess and is the default so that it pairs with existing
servers. The other strategies give deterministic boundaries and can be
swapped in without touching the rest of the client.

A strategy talks to the session only through ``recv``, ``data_available``
and ``sendall``; those already raise ``TransportUnavailable`` on socket
failure.
"""

from __future__ import annotations

import logging
import struct
from typing import TYPE_CHECKING, Dict, Optional, Type

from .errors import TransportUnavailable

if TYPE_CHECKING:
    from .session import TransportSession

logger = logging.getLogger("ProjectLookup")

BUFFER_SIZE = 1024

_LENGTH = struct.Struct('>I')


class FramingStrategy:
    """Base class: how a request is written and a response is delimited."""

    name = ""

    def write_message(self, session: TransportSession, payload: bytes) -> None:
        """Write the request payload as-is."""
        session.sendall(payload)

    def read_message(self, session: TransportSession) -> bytes:
        raise NotImplementedError


class AvailabilityFraming(FramingStrategy):
    """Stop reading as soon as no more bytes are immediately available.

    After every non-empty read the socket is polled without blocking; if
    nothing is queued the accumulated bytes are returned. A zero-byte read
    (peer closed) also ends the message. This is a heuristic: a response
    whose tail is still in flight when the poll fires is truncated.
    """

    name = "availability"

    def __init__(self, buffer_size: int = BUFFER_SIZE) -> None:
        self.buffer_size = buffer_size

    def read_message(self, session: TransportSession) -> bytes:
        data = b''
        while True:
            chunk = session.recv(self.buffer_size)
            if not chunk:
                break
            data += chunk
            if not session.data_available():
                break
        logger.debug(f"Availability framing read {len(data)} bytes")
        return data


class ReadToCloseFraming(FramingStrategy):
    """Read until the peer closes the connection.

    Correct for this protocol because every connection carries exactly one
    response and the server closes after writing it.
    """

    name = "close"

    def __init__(self, buffer_size: int = BUFFER_SIZE) -> None:
        self.buffer_size = buffer_size

    def read_message(self, session: TransportSession) -> bytes:
        data = b''
        while True:
            chunk = session.recv(self.buffer_size)
            if not chunk:
                return data
            data += chunk


class LengthPrefixedFraming(FramingStrategy):
    """4-byte big-endian length prefix in both directions.

    Both client and server must be configured with this strategy.
    """

    name = "length"

    def __init__(self, max_size: Optional[int] = 16 * 1024 * 1024) -> None:
        self.max_size = max_size

    def write_message(self, session: TransportSession, payload: bytes) -> None:
        session.sendall(_LENGTH.pack(len(payload)) + payload)

    def read_message(self, session: TransportSession) -> bytes:
        header = recv_exact(session, _LENGTH.size)
        (length,) = _LENGTH.unpack(header)
        if self.max_size is not None and length > self.max_size:
            raise TransportUnavailable(
                f"Frame of {length} bytes exceeds limit of {self.max_size} bytes"
            )
        return recv_exact(session, length)


def recv_exact(session: TransportSession, n: int) -> bytes:
    """Receive exactly n bytes from the session, handling partial reads.

    Raises:
        TransportUnavailable: If the peer closes before n bytes arrive
    """
    data = b''
    while len(data) < n:
        chunk = session.recv(n - len(data))
        if not chunk:
            raise TransportUnavailable(
                f"Connection closed after {len(data)} of {n} expected bytes"
            )
        data += chunk
    return data


FRAMINGS: Dict[str, Type[FramingStrategy]] = {
    AvailabilityFraming.name: AvailabilityFraming,
    ReadToCloseFraming.name: ReadToCloseFraming,
    LengthPrefixedFraming.name: LengthPrefixedFraming,
}


def get_framing(name: str) -> FramingStrategy:
    """Return a new framing strategy by its configuration name.

    Raises:
        ValueError: If no strategy is registered under name
    """
    try:
        return FRAMINGS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown framing {name!r}. Choose one of: {', '.join(sorted(FRAMINGS))}"
        ) from None
