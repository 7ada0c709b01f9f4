"""Exceptions raised by the batchexecute transport.

Every error carries the operation it was raised for once the dispatcher or
transport has bound it. Nothing in this package retries: callers that see
``is_auth_failure`` should invalidate the session context and retry the call
themselves.
"""

from .constants import RPC_ERROR_AUTH_EXPIRED

FRAGMENT_LIMIT = 200


def truncate(fragment: str, limit: int = FRAGMENT_LIMIT) -> str:
    """Shorten a response fragment for inclusion in an error message."""
    if len(fragment) > limit:
        return fragment[:limit] + "... (truncated)"
    return fragment


class BatchExecuteError(Exception):
    """Base class for all transport errors."""

    is_auth_failure = False

    def __init__(self, message: str, operation_id: str | None = None, scope_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation_id = operation_id
        self.scope_id = scope_id

    def bind(self, operation_id: str, scope_id: str | None = None) -> "BatchExecuteError":
        """Attach the triggering operation (and scope) if not already set."""
        if self.operation_id is None:
            self.operation_id = operation_id
        if scope_id and self.scope_id is None:
            self.scope_id = scope_id
        return self

    def __str__(self) -> str:
        if self.operation_id is None:
            return self.message
        if self.scope_id:
            return f"{self.operation_id} (notebook {self.scope_id}): {self.message}"
        return f"{self.operation_id}: {self.message}"


class EncodeError(BatchExecuteError):
    """Raised when request arguments cannot be realised or serialized."""


class TransportError(BatchExecuteError):
    """Raised on connection or I/O failure talking to the server."""


class RequestTimeoutError(TransportError):
    """Raised when a request deadline expires or is cancelled."""


class HTTPStatusError(BatchExecuteError):
    """Raised for non-2xx responses. Carries the status code and body verbatim."""

    def __init__(self, status_code: int, body: str, operation_id: str | None = None):
        super().__init__(f"request failed with status {status_code}: {body}", operation_id)
        self.status_code = status_code
        self.body = body

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)


class FramingError(BatchExecuteError):
    """Raised when the response body does not have the expected framing."""

    def __init__(self, step: str, detail: str, fragment: str = "", operation_id: str | None = None):
        message = f"{step}: {detail}"
        if fragment:
            message += f" (got: {truncate(fragment)})"
        super().__init__(message, operation_id)
        self.step = step
        self.fragment = fragment


class PayloadTypeError(FramingError):
    """Raised when the envelope's payload position is not a string."""


class RPCStatusError(PayloadTypeError):
    """Raised when the envelope carries a server-side RPC status instead of a payload.

    Signature: ["wrb.fr", "RPC_ID", null, null, null, [16], "generic"]
    """

    def __init__(self, codes: list, fragment: str = "", operation_id: str | None = None):
        super().__init__("payload", f"server returned RPC error {codes}", fragment, operation_id)
        self.codes = codes

    @property
    def is_auth_failure(self) -> bool:
        return RPC_ERROR_AUTH_EXPIRED in self.codes


class HandlerError(BatchExecuteError):
    """Raised when a streaming chunk handler fails. The original is ``__cause__``."""

    def __init__(self, original: BaseException, operation_id: str | None = None):
        super().__init__(f"handler error: {original}", operation_id)
        self.original = original
