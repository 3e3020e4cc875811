"""Shared fixtures for project lookup tests.

Two transport boundaries are provided:
- FakeSession / FakeTransport: in-memory stand-ins for TransportSession,
  scripted chunk by chunk, counting opens and closes
- companion: a real CompanionServer on an ephemeral localhost port
"""

import socket

import pytest

from Project_Lookup.companion import CompanionServer
from Project_Lookup.errors import TransportUnavailable
from Project_Lookup.framing import AvailabilityFraming
from Project_Lookup.protocol import AssociationRecord


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

class FakeSession:
    """Scripted session: recv() returns chunks in order, then b''.

    ``available`` scripts data_available() answers; when omitted it reports
    whether scripted chunks remain.
    """

    def __init__(self, chunks=(), available=None, framing=None,
                 read_error=None, write_error=None):
        self.chunks = list(chunks)
        self.available = list(available) if available is not None else None
        self.framing = framing or AvailabilityFraming()
        self.read_error = read_error
        self.write_error = write_error
        self.sent = b''
        self.recv_sizes = []
        self.close_calls = 0
        self.aborted = False

    @property
    def closed(self):
        return self.close_calls > 0

    def recv(self, n):
        self.recv_sizes.append(n)
        if self.read_error:
            raise TransportUnavailable(self.read_error)
        if not self.chunks:
            return b''
        chunk = self.chunks.pop(0)
        if len(chunk) > n:
            self.chunks.insert(0, chunk[n:])
            chunk = chunk[:n]
        return chunk

    def data_available(self):
        if self.available is not None:
            return self.available.pop(0)
        return bool(self.chunks)

    def sendall(self, data):
        if self.write_error:
            raise TransportUnavailable(self.write_error)
        self.sent += data

    def send(self, payload):
        self.framing.write_message(self, payload)

    def receive_all(self):
        return self.framing.read_message(self)

    def abort(self):
        self.aborted = True

    def close(self):
        self.close_calls += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeTransport:
    """Session factory for LookupClient that hands out FakeSessions.

    ``responses`` is consumed one entry per opened session.
    """

    def __init__(self, responses=(), connect_error=None, **session_kwargs):
        self.responses = list(responses)
        self.connect_error = connect_error
        self.session_kwargs = session_kwargs
        self.open_calls = []
        self.sessions = []

    def __call__(self, host, port, framing, timeout):
        self.open_calls.append((host, port, framing, timeout))
        if self.connect_error:
            raise TransportUnavailable(self.connect_error)
        response = self.responses.pop(0) if self.responses else b''
        session = FakeSession([response] if response else [], framing=framing,
                              **self.session_kwargs)
        self.sessions.append(session)
        return session

    @property
    def close_calls(self):
        return sum(s.close_calls for s in self.sessions)


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_transport():
    return FakeTransport


# ---------------------------------------------------------------------------
# Live companion server
# ---------------------------------------------------------------------------

APOLLO = AssociationRecord(project_id=10, employee_id=7, title="Apollo",
                           description="Infra", position="Lead")
GEMINI = AssociationRecord(project_id=11, employee_id=7, title="Gemini",
                           description=None, position="Reviewer")

PROJECTS = {
    7: (APOLLO,),
    8: (APOLLO, GEMINI, APOLLO),
    42: (),
}


@pytest.fixture
def projects():
    """The table every default companion server answers from."""
    return PROJECTS


@pytest.fixture
def make_companion():
    """Start CompanionServers on free ports; all are stopped at teardown."""
    servers = []

    def factory(projects=PROJECTS, **kwargs):
        server = CompanionServer(projects, host="127.0.0.1", port=0, **kwargs)
        server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()


@pytest.fixture
def companion(make_companion):
    return make_companion()


@pytest.fixture
def unused_port():
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
