"""Single-use TCP session backing one lookup request."""

from __future__ import annotations

import logging
import select
import socket
import time
from dataclasses import dataclass, field
from typing import Optional

from .errors import TransportUnavailable
from .framing import AvailabilityFraming, FramingStrategy

logger = logging.getLogger("ProjectLookup")


@dataclass
class TransportSession:
    """One connect -> send -> receive -> close cycle.

    Sessions are never reused: open a new one for every request. Use it as a
    context manager so the socket is closed on every exit path.
    """

    host: str
    port: int
    framing: FramingStrategy = field(default_factory=AvailabilityFraming)
    timeout: Optional[float] = None
    sock: Optional[socket.socket] = None

    @classmethod
    def open(cls, host: str, port: int, framing: Optional[FramingStrategy] = None,
             timeout: Optional[float] = None) -> "TransportSession":
        """Create a session and connect it.

        Raises:
            TransportUnavailable: If the connection cannot be established
        """
        session = cls(host, port, framing or AvailabilityFraming(), timeout)
        session.connect()
        return session

    @property
    def closed(self) -> bool:
        return self.sock is None

    def connect(self) -> None:
        """Connect to the lookup server"""
        if self.sock:
            return
        try:
            self.sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            logger.error(f"Failed to connect to {self.host}:{self.port}: {str(e)}")
            self.sock = None
            raise TransportUnavailable(f"Could not connect to {self.host}:{self.port}: {e}") from e
        logger.info(f"Connected to {self.host}:{self.port}")

    def _require_sock(self) -> socket.socket:
        if self.sock is None:
            raise TransportUnavailable("Session is closed")
        return self.sock

    def sendall(self, data: bytes) -> None:
        sock = self._require_sock()
        try:
            sock.sendall(data)
        except OSError as e:
            raise TransportUnavailable(f"Write failed: {e}") from e

    def recv(self, n: int) -> bytes:
        sock = self._require_sock()
        try:
            return sock.recv(n)
        except OSError as e:
            raise TransportUnavailable(f"Read failed: {e}") from e

    def data_available(self) -> bool:
        """Return True if a read would not block right now."""
        sock = self._require_sock()
        try:
            readable, _, _ = select.select([sock], [], [], 0)
        except (OSError, ValueError) as e:
            raise TransportUnavailable(f"Poll failed: {e}") from e
        return bool(readable)

    def send(self, payload: bytes) -> None:
        """Write one request using the session's framing."""
        self.framing.write_message(self, payload)
        logger.debug(f"Sent {len(payload)} bytes")

    def receive_all(self) -> bytes:
        """Read one response using the session's framing."""
        data = self.framing.read_message(self)
        logger.debug(f"Received {len(data)} bytes")
        return data

    def abort(self) -> None:
        """Shut the socket down so a blocked read in another thread returns.

        The owning thread still closes the session.
        """
        sock = self.sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Shutdown during abort failed: {str(e)}")

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self.sock:
            try:
                self.sock.close()
            except OSError as e:
                logger.error(f"Error closing connection to {self.host}:{self.port}: {str(e)}")
            finally:
                self.sock = None
                logger.info(f"Disconnected from {self.host}:{self.port}")

    def __enter__(self) -> "TransportSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def wait_for_server(
    host: str,
    port: int,
    timeout: float = 10.0,
    poll_interval: float = 0.5,
) -> bool:
    """Wait until the lookup server accepts TCP connections.

    Polls host:port until a connection can be established or the timeout
    expires. The probe connection sends nothing and is closed immediately.

    Returns:
        True if the server is accepting connections, False if timeout expired.
    """
    start_time = time.monotonic()

    while True:
        try:
            sock = socket.create_connection((host, port), timeout=1.0)
            sock.close()
            return True
        except OSError:
            # Not accepting yet - keep polling
            if time.monotonic() - start_time >= timeout:
                return False
            time.sleep(poll_interval)
