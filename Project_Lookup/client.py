"""Lookup client: one fresh connection per employee project lookup."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .config import ClientConfig
from .errors import Cancelled, DecodeError, ProjectLookupError, TransportUnavailable
from .framing import FramingStrategy
from .protocol import LookupResult, decode_projects, encode_identifier
from .session import TransportSession

logger = logging.getLogger("ProjectLookup")

SessionFactory = Callable[[str, int, FramingStrategy, Optional[float]], TransportSession]


class LookupClient:
    """Look up the projects assigned to an employee.

    Each ``lookup`` opens its own session, sends the id, drains one response
    with the configured framing, closes the session and decodes. Failures
    come back as ``TransportUnavailable``, ``DecodeError`` or ``Cancelled``;
    nothing is retried.
    """

    def __init__(self, config: Optional[ClientConfig] = None,
                 session_factory: Optional[SessionFactory] = None) -> None:
        self.config = config or ClientConfig()
        self._session_factory = session_factory or TransportSession.open
        self._lock = threading.Lock()
        self._active: Optional[TransportSession] = None
        self._cancelled = False

    def lookup(self, identifier: int) -> LookupResult:
        """Return the employee's project assignments, possibly empty.

        Raises:
            TypeError: If identifier is not an integer
            TransportUnavailable: If the server cannot be reached or the
                connection fails mid-request
            DecodeError: If the response is not a valid project list
            Cancelled: If cancel() was called while the request was in flight
        """
        payload = encode_identifier(identifier)
        cfg = self.config
        logger.info(f"Looking up projects for employee {identifier} at {cfg.host}:{cfg.port}")

        try:
            session = self._session_factory(cfg.host, cfg.port, cfg.make_framing(), cfg.timeout)
        except TransportUnavailable as e:
            self._log_failure(e, identifier)
            raise

        with session:
            with self._lock:
                self._active = session
                self._cancelled = False
            try:
                session.send(payload)
                data = session.receive_all()
            except TransportUnavailable as e:
                if self._take_cancelled():
                    err = Cancelled(f"Lookup for employee {identifier} was cancelled", identifier)
                    self._log_failure(err, identifier)
                    raise err from e
                self._log_failure(e, identifier)
                raise
            finally:
                with self._lock:
                    self._active = None

        if self._take_cancelled():
            err = Cancelled(f"Lookup for employee {identifier} was cancelled", identifier)
            self._log_failure(err, identifier)
            raise err

        try:
            projects = decode_projects(data)
        except DecodeError as e:
            self._log_failure(e, identifier)
            raise

        logger.info(f"Employee {identifier}: {len(projects)} project(s)")
        return projects

    def cancel(self) -> bool:
        """Abort the in-flight lookup, if any. Safe to call from another thread.

        Returns:
            True if a lookup was in flight and has been aborted
        """
        with self._lock:
            session = self._active
            if session is None:
                return False
            self._cancelled = True
        logger.info("Cancelling in-flight lookup")
        session.abort()
        return True

    def _take_cancelled(self) -> bool:
        with self._lock:
            cancelled, self._cancelled = self._cancelled, False
            return cancelled

    @staticmethod
    def _log_failure(error: ProjectLookupError, identifier: int) -> None:
        if error.identifier is None:
            error.identifier = identifier
        logger.error(f"Lookup failed for employee {identifier} [{error.kind}]: {str(error)}")
