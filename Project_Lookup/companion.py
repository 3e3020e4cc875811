"""Companion lookup server for local runs and end-to-end tests.

Speaks the server side of the lookup protocol from an in-memory table:
read one employee id per connection, write the JSON array of that
employee's projects, close. It has no storage of its own.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
import time
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_HOST, DEFAULT_PORT
from .framing import AvailabilityFraming, FramingStrategy, LengthPrefixedFraming
from .protocol import AssociationRecord, decode_projects, encode_projects
from .session import TransportSession

logger = logging.getLogger("ProjectLookup")


def load_projects(path: str) -> Dict[int, Tuple[AssociationRecord, ...]]:
    """Load a table from a JSON object mapping employee id to wire records.

    Example file: ``{"7": [{"EmployeeId": 7, "Id": 10, "Title": "Apollo"}]}``
    """
    with open(path, encoding='utf-8') as f:
        raw = json.load(f)
    return {
        int(employee_id): decode_projects(json.dumps(records).encode('utf-8'))
        for employee_id, records in raw.items()
    }


class CompanionServer:
    """Threaded TCP server answering one lookup per connection.

    Args:
        projects: Employee id -> records to return. Unknown ids get ``[]``.
        host: Address to bind.
        port: Port to bind; 0 picks a free one (see ``address``).
        framing: Must match the client's framing. Only
            ``LengthPrefixedFraming`` changes what goes on the wire.
        chunk_size: If set, write the response in chunks of this many bytes.
        chunk_delay: Seconds to sleep between chunks.
    """

    def __init__(
        self,
        projects: Optional[Mapping[int, Sequence[AssociationRecord]]] = None,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        framing: Optional[FramingStrategy] = None,
        chunk_size: Optional[int] = None,
        chunk_delay: float = 0.0,
    ) -> None:
        self.projects = dict(projects or {})
        self.host = host
        self.port = port
        self.framing = framing or AvailabilityFraming()
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.connections = 0
        self.requests: List[int] = []

        self.server: Optional[socket.socket] = None
        self.server_thread: Optional[threading.Thread] = None
        self.client_threads: List[threading.Thread] = []
        self.running = False

    @property
    def address(self) -> Tuple[str, int]:
        if self.server is None:
            return self.host, self.port
        return self.server.getsockname()[:2]

    def start(self) -> None:
        """Bind, listen and start accepting on a background thread"""
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind((self.host, self.port))
        self.server.listen(5)

        self.running = True
        self.server_thread = threading.Thread(target=self._server_thread, daemon=True)
        self.server_thread.start()
        logger.info(f"Companion server listening on {self.address[0]}:{self.address[1]}")

    def stop(self) -> None:
        """Stop accepting and wait for the accept and client threads to exit"""
        self.running = False
        if self.server_thread and self.server_thread.is_alive():
            self.server_thread.join(2.0)
        for client_thread in self.client_threads:
            client_thread.join(1.0)
        self.client_threads = []
        if self.server:
            self.server.close()
            self.server = None
        logger.info("Companion server stopped")

    def serve_forever(self) -> None:
        self.start()
        try:
            while self.running:
                time.sleep(0.5)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.stop()

    def __enter__(self) -> "CompanionServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _server_thread(self) -> None:
        # Timeout lets the loop notice stop()
        self.server.settimeout(0.2)
        while self.running:
            try:
                client, address = self.server.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"Companion accept error: {str(e)}")
                break

            self.connections += 1
            logger.debug(f"Connection accepted from {address}")
            client_thread = threading.Thread(target=self._handle_client, args=(client, address), daemon=True)
            client_thread.start()
            self.client_threads = [t for t in self.client_threads if t.is_alive()]
            self.client_threads.append(client_thread)

    def _read_request(self, session: TransportSession) -> bytes:
        if isinstance(self.framing, LengthPrefixedFraming):
            return self.framing.read_message(session)
        # Unframed request: the id is small enough to arrive in one read
        return session.recv(1024)

    def _handle_client(self, client: socket.socket, address: Tuple[str, int]) -> None:
        host, port = address[:2]
        client.settimeout(5.0)
        session = TransportSession(host, port, self.framing, sock=client)
        with session:
            try:
                request = self._read_request(session)
                if not request:
                    logger.debug("Empty request, closing")
                    return

                text = request.decode('utf-8', errors='replace').strip()
                try:
                    employee_id = int(text)
                except ValueError:
                    logger.error(f"Invalid employee id {text!r}")
                    response = b'[]'
                else:
                    self.requests.append(employee_id)
                    response = encode_projects(self.projects.get(employee_id, ()))

                self._write_response(session, response)
            except Exception as e:
                logger.error(f"Error handling lookup request: {str(e)}")

    def _write_response(self, session: TransportSession, response: bytes) -> None:
        if isinstance(self.framing, LengthPrefixedFraming) or not self.chunk_size:
            self.framing.write_message(session, response)
            return
        for offset in range(0, len(response), self.chunk_size):
            if offset:
                time.sleep(self.chunk_delay)
            session.sendall(response[offset:offset + self.chunk_size])


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the companion server until interrupted."""
    import argparse

    from .config import add_connection_arguments
    from .framing import get_framing

    parser = argparse.ArgumentParser(description="Employee project lookup companion server")
    add_connection_arguments(parser, timeout=False)
    parser.add_argument("--data", help="JSON file mapping employee id to project records")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    projects = load_projects(args.data) if args.data else {}
    server = CompanionServer(projects, host=args.host, port=args.port,
                             framing=get_framing(args.framing))
    server.serve_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
