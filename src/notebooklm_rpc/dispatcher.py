"""Dispatcher: one entry point per remote call.

Resolves the session context, encodes the operation's arguments, sends them
and returns the de-framed payload. Errors come back bound to the operation
(and notebook scope) that triggered them.
"""

import json
import logging
from dataclasses import is_dataclass
from typing import Any, Mapping

from .config import ClientConfig, enable_debug_logging
from .encoder import ArgumentEncoder
from .errors import BatchExecuteError, EncodeError
from .operations import Operation, get_operation
from .session import SessionContextProvider
from .transport import ChunkHandler, Deadline, RequestTransport

logger = logging.getLogger("notebooklm_rpc.dispatcher")
logger.setLevel(logging.WARNING)


def source_path_for(scope_id: str | None) -> str:
    """The source-path query value for a call scoped to a notebook."""
    if scope_id:
        return f"/notebook/{scope_id}"
    return "/"


class Dispatcher:
    """Client for NotebookLM batchexecute calls.

    Args:
        auth_token: Opaque CSRF token (``at`` form field), obtained elsewhere
        cookies: Cookie header value, or dict of Google auth cookies
        sessions: Session context provider; share one between dispatchers
            that talk to the same account
        transport: Request transport (owns the HTTP client)
    """

    def __init__(
        self,
        auth_token: str,
        cookies: str | dict[str, str],
        sessions: SessionContextProvider | None = None,
        transport: RequestTransport | None = None,
        encoder: ArgumentEncoder | None = None,
        config: ClientConfig | None = None,
    ):
        self.config = config or ClientConfig.from_env()
        self.auth_token = auth_token
        self.cookies = cookies
        self.sessions = sessions or SessionContextProvider(self.config)
        self.transport = transport or RequestTransport(self.config)
        self.encoder = encoder or ArgumentEncoder()

    @classmethod
    def from_env(cls, auth_token: str, cookies: str | dict[str, str]) -> "Dispatcher":
        """Build a dispatcher configured from NOTEBOOKLM_* environment variables."""
        config = ClientConfig.from_env()
        if config.debug:
            enable_debug_logging()
        return cls(auth_token, cookies, config=config)

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def invalidate_session(self) -> None:
        """Force the next call to re-resolve bl / f.sid (e.g. after an auth failure)."""
        self.sessions.invalidate()

    def encode(self, operation: Operation, args: Any) -> str:
        """Build the ``f.req`` value for ``operation``.

        ``args`` is either a mapping / request dataclass realised through the
        operation's slot template, or a pre-built positional list sent as is.
        """
        if isinstance(args, (list, tuple)):
            positional = list(args)
        elif operation.template is not None:
            request = {} if args is None else args
            if not isinstance(request, Mapping) and not is_dataclass(request):
                raise EncodeError(
                    f"expected a mapping or request dataclass, got {type(request).__name__}",
                    operation.id,
                )
            positional = self.encoder.encode(operation.template, request, operation.id)
        elif args is None:
            positional = []
        else:
            raise EncodeError("operation has no slot template; pass positional args", operation.id)
        return operation.build_f_req(self.encoder, positional)

    def call(
        self,
        operation: str | Operation,
        args: Any = None,
        scope_id: str | None = None,
        deadline: Deadline | None = None,
    ) -> bytes:
        """Execute an RPC call and return the raw payload JSON bytes."""
        op = get_operation(operation)
        try:
            context = self.sessions.resolve(self.cookies)
            f_req = self.encode(op, args)
            response = self.transport.send(
                op,
                f_req,
                self.auth_token,
                self.cookies,
                context,
                source_path=source_path_for(scope_id),
                deadline=deadline,
            )
        except BatchExecuteError as e:
            e.bind(op.id, scope_id)
            logger.debug(f"RPC {op.id} failed: {e}")
            raise
        return response.payload

    def call_json(
        self,
        operation: str | Operation,
        args: Any = None,
        scope_id: str | None = None,
        deadline: Deadline | None = None,
    ) -> Any:
        """Execute an RPC call and decode its payload JSON."""
        return json.loads(self.call(operation, args, scope_id, deadline))

    def stream(
        self,
        operation: str | Operation,
        args: Any,
        on_chunk: ChunkHandler,
        scope_id: str | None = None,
        deadline: Deadline | None = None,
    ) -> None:
        """Execute a streaming call, feeding raw body blocks to ``on_chunk``."""
        op = get_operation(operation)
        try:
            context = self.sessions.resolve(self.cookies)
            f_req = self.encode(op, args)
            self.transport.stream(
                op,
                f_req,
                self.auth_token,
                self.cookies,
                context,
                on_chunk,
                source_path=source_path_for(scope_id) if scope_id else None,
                deadline=deadline,
            )
        except BatchExecuteError as e:
            e.bind(op.id, scope_id)
            logger.debug(f"Streaming RPC {op.id} failed: {e}")
            raise
