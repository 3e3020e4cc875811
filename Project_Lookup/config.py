"""Connection settings for the lookup client and the companion server."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Optional, Union

from .framing import FRAMINGS, FramingStrategy, get_framing

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2000
DEFAULT_TIMEOUT = 5.0
DEFAULT_FRAMING = "availability"


@dataclass(frozen=True)
class ClientConfig:
    """Where and how a LookupClient connects.

    Attributes:
        host: Server host name or address.
        port: Server TCP port.
        timeout: Connect and read timeout in seconds. None blocks forever,
            which matches the legacy client exactly.
        framing: Framing name (see ``framing.FRAMINGS``) or a strategy instance.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: Optional[float] = DEFAULT_TIMEOUT
    framing: Union[str, FramingStrategy] = DEFAULT_FRAMING

    def make_framing(self) -> FramingStrategy:
        if isinstance(self.framing, FramingStrategy):
            return self.framing
        return get_framing(self.framing)


def add_connection_arguments(parser: argparse.ArgumentParser, timeout: bool = True) -> None:
    """Add --host/--port/--framing (and optionally --timeout) to a parser."""
    parser.add_argument("--host", default=DEFAULT_HOST,
                        help=f"Lookup server host (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT,
                        help=f"Lookup server port (default: {DEFAULT_PORT})")
    parser.add_argument("--framing", choices=sorted(FRAMINGS), default=DEFAULT_FRAMING,
                        help=f"Response framing (default: {DEFAULT_FRAMING})")
    if timeout:
        parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                            help="Connect/read timeout in seconds, 0 to wait forever "
                                 f"(default: {DEFAULT_TIMEOUT})")


def config_from_args(args: argparse.Namespace) -> ClientConfig:
    timeout = args.timeout if args.timeout and args.timeout > 0 else None
    return ClientConfig(host=args.host, port=args.port, timeout=timeout, framing=args.framing)
