"""NotebookLM batchexecute transport.

Example usage:
    from notebooklm_rpc import Dispatcher, ActOnSourcesRequest

    with Dispatcher.from_env(auth_token, cookie_header) as client:
        payload = client.call_json(
            "act_on_sources",
            ActOnSourcesRequest(source_ids=[source_id], action="interactive_mindmap"),
            scope_id=notebook_id,
        )
"""

__version__ = "0.1.0"

from .config import ClientConfig, enable_debug_logging
from .dispatcher import Dispatcher
from .encoder import NULL, ArgumentEncoder, Const, Field, Group, Nested, SlotTemplate
from .errors import (
    BatchExecuteError,
    EncodeError,
    FramingError,
    HandlerError,
    HTTPStatusError,
    PayloadTypeError,
    RequestTimeoutError,
    RPCStatusError,
    TransportError,
)
from .framing import ChunkPolicy, FrameAccumulator, ResponseFramer
from .operations import (
    OPERATIONS,
    ActOnSourcesRequest,
    Envelope,
    GenerateFreeFormStreamedRequest,
    Operation,
    get_operation,
)
from .session import SessionContext, SessionContextProvider
from .transport import Deadline, EncodedRequest, FramedResponse, RequestIdCounter, RequestTransport

__all__ = [
    "__version__",
    "ClientConfig",
    "enable_debug_logging",
    "Dispatcher",
    "NULL",
    "ArgumentEncoder",
    "Const",
    "Field",
    "Group",
    "Nested",
    "SlotTemplate",
    "BatchExecuteError",
    "EncodeError",
    "FramingError",
    "HandlerError",
    "HTTPStatusError",
    "PayloadTypeError",
    "RequestTimeoutError",
    "RPCStatusError",
    "TransportError",
    "ChunkPolicy",
    "FrameAccumulator",
    "ResponseFramer",
    "OPERATIONS",
    "ActOnSourcesRequest",
    "Envelope",
    "GenerateFreeFormStreamedRequest",
    "Operation",
    "get_operation",
    "SessionContext",
    "SessionContextProvider",
    "Deadline",
    "EncodedRequest",
    "FramedResponse",
    "RequestIdCounter",
    "RequestTransport",
]
