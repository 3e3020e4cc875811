# project_lookup_mcp_server.py
from mcp.server.fastmcp import FastMCP, Context
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any, Optional

from .client import LookupClient
from .config import ClientConfig
from .errors import ProjectLookupError
from .session import wait_for_server

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("ProjectLookupMCPServer")


@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[Dict[str, Any]]:
    """Log startup and shutdown.

    No connection is held between tool calls: every lookup opens its own.
    """
    try:
        logger.info("ProjectLookup MCP server starting up")
        yield {}
    finally:
        logger.info("ProjectLookup MCP server shut down")

mcp = FastMCP(
    "ProjectLookup",
    instructions="Look up the projects an employee is assigned to",
    lifespan=server_lifespan
)

_client_config = ClientConfig()
_lookup_client: Optional[LookupClient] = None


def configure(config: ClientConfig) -> None:
    """Point the tools at a different lookup server"""
    global _client_config, _lookup_client
    _client_config = config
    _lookup_client = None


def get_lookup_client() -> LookupClient:
    """Get or create the lookup client used by the tools"""
    global _lookup_client
    if _lookup_client is None:
        _lookup_client = LookupClient(_client_config)
        logger.info(f"Lookup client targets {_client_config.host}:{_client_config.port} "
                    f"with {_lookup_client.config.make_framing().name} framing")
    return _lookup_client


@mcp.tool()
def get_employee_projects(ctx: Context, employee_id: int) -> str:
    """
    Get the projects an employee is assigned to.

    The server does not tell an unknown employee apart from one with no
    projects; both come back as "No project found".

    Parameters:
    - employee_id: The employee's integer ID
    """
    try:
        projects = get_lookup_client().lookup(employee_id)
        if not projects:
            return f"No project found for employee ID {employee_id}"
        return json.dumps([p.to_dict() for p in projects], indent=2)
    except ProjectLookupError as e:
        logger.error(f"Error looking up projects [{e.kind}]: {str(e)}")
        return f"Error looking up projects: {str(e)}"


@mcp.tool()
def check_lookup_server(ctx: Context, timeout: float = 2.0) -> str:
    """
    Check whether the lookup server is accepting connections.

    Parameters:
    - timeout: Seconds to keep trying before giving up (default: 2.0)
    """
    host, port = _client_config.host, _client_config.port
    if wait_for_server(host, port, timeout=timeout, poll_interval=0.2):
        return f"Lookup server at {host}:{port} is accepting connections"
    return f"Lookup server at {host}:{port} is not running"


# Main execution
def main():
    """Run the MCP server over stdio."""
    import argparse

    from .config import add_connection_arguments, config_from_args

    parser = argparse.ArgumentParser(description="Employee project lookup MCP server")
    add_connection_arguments(parser)
    args = parser.parse_args()

    configure(config_from_args(args))
    mcp.run()

if __name__ == "__main__":
    main()
