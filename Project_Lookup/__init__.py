"""Employee project lookup over a one-request-per-connection TCP protocol."""

__version__ = "0.1.0"

# Lookup client and its configuration
from .client import LookupClient
from .config import ClientConfig

# Error taxonomy
from .errors import (
    ProjectLookupError,
    TransportUnavailable,
    DecodeError,
    Cancelled,
)

# Wire codec
from .protocol import (
    AssociationRecord,
    LookupResult,
    encode_identifier,
    decode_projects,
    encode_projects,
)

# Framing strategies
from .framing import (
    FramingStrategy,
    AvailabilityFraming,
    ReadToCloseFraming,
    LengthPrefixedFraming,
    get_framing,
)

# Transport
from .session import TransportSession, wait_for_server

# Development server
from .companion import CompanionServer, load_projects
