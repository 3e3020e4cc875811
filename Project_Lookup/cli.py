"""Interactive employee project lookup."""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Sequence

from .client import LookupClient
from .errors import ProjectLookupError
from .protocol import LookupResult

logger = logging.getLogger("ProjectLookup")

PROMPT = "Enter employee ID: "
INVALID_INPUT = "Invalid input! Please enter a valid integer."
SERVER_DOWN = "server is not running. Please try again later"

_INTEGER = re.compile(r"\s*[+-]?[0-9]+\s*")


def parse_identifier(text: str) -> Optional[int]:
    """Parse operator input as an employee id, or return None if invalid."""
    if not _INTEGER.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        # Longer than the interpreter's int conversion limit
        return None


def format_projects(identifier: int, projects: LookupResult) -> str:
    if not projects:
        return f"No project found for employee ID {identifier}"

    lines = [f"Project for employee ID {identifier}", ""]
    for p in projects:
        lines.append(f"ID: {p.project_id}")
        lines.append(f"Title: {p.title or ''}")
        lines.append(f"Description: {p.description or ''}")
        lines.append(f"Position: {p.position or ''}")
        lines.append("---")
    return "\n".join(lines)


def run_loop(
    client: LookupClient,
    read_line: Optional[Callable[[str], str]] = None,
    write: Optional[Callable[[str], None]] = None,
    verbose: bool = False,
) -> int:
    """Prompt for ids until empty input or end of input.

    Lookup failures are reported and the loop keeps going; they never end
    the process.

    Returns:
        Process exit status (always 0)
    """
    read_line = read_line or input
    write = write or print

    write("Client started. Enter an employee ID (integer) or press Enter to exit.")
    while True:
        try:
            text = read_line(PROMPT)
        except EOFError:
            break
        if not text:
            break

        identifier = parse_identifier(text)
        if identifier is None:
            write(INVALID_INPUT)
            continue

        try:
            projects = client.lookup(identifier)
        except ProjectLookupError as e:
            write(SERVER_DOWN)
            if verbose:
                write(f"  [{e.kind}] {e}")
            continue

        write(format_projects(identifier, projects))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the interactive lookup loop."""
    import argparse

    from .config import add_connection_arguments, config_from_args

    parser = argparse.ArgumentParser(description="Employee project lookup client")
    add_connection_arguments(parser)
    parser.add_argument("--verbose", action="store_true",
                        help="Show the failure kind after the generic error message")
    args = parser.parse_args(argv)

    # The loop prints its own failure line; keep log records off the prompt
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.CRITICAL,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    client = LookupClient(config_from_args(args))
    return run_loop(client, verbose=args.verbose)


if __name__ == "__main__":
    raise SystemExit(main())
