"""HTTP transport for the NotebookLM data endpoints.

Builds the POST request shared by every operation and sends it either as a
unary call (whole body buffered, then de-framed) or as a stream (raw blocks
handed to a caller-supplied handler as they arrive).
"""

import itertools
import json
import logging
import threading
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from . import constants
from .config import ClientConfig
from .errors import (
    BatchExecuteError,
    HandlerError,
    HTTPStatusError,
    RequestTimeoutError,
    TransportError,
)
from .framing import ResponseFramer
from .operations import Operation
from .session import SessionContext, cookie_header

# Configure logger (API internals only logged at DEBUG level, usually disabled)
logger = logging.getLogger("notebooklm_rpc.transport")
logger.setLevel(logging.WARNING)


def _format_debug_json(data: Any, max_length: int = 2000) -> str:
    """Render a value for DEBUG logs, capped at ``max_length`` characters."""
    try:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        text = str(data)
    if len(text) <= max_length:
        return text
    return text[:max_length] + "\n  ... (truncated)"


def _decode_request_body(body: str) -> dict[str, Any]:
    """Decode URL-encoded request body and parse JSON structures."""
    result: dict[str, Any] = {}
    parsed = urllib.parse.parse_qs(body.rstrip("&"))

    if "f.req" in parsed:
        f_req_raw = parsed["f.req"][0]
        try:
            f_req = json.loads(f_req_raw)
        except json.JSONDecodeError:
            result["f.req"] = f_req_raw
        else:
            result["f.req"] = f_req
            # batchexecute: [[[rpc_id, "<params>", null, "generic"]]]
            # streamed:     [null, "<params>"]
            params_str = None
            if isinstance(f_req, list) and len(f_req) == 2 and f_req[0] is None:
                params_str = f_req[1]
            elif isinstance(f_req, list) and f_req and isinstance(f_req[0], list) and f_req[0]:
                rpc_call = f_req[0][0]
                if isinstance(rpc_call, list) and len(rpc_call) >= 2:
                    result["rpc_id"] = rpc_call[0]
                    params_str = rpc_call[1]
            if isinstance(params_str, str):
                try:
                    result["params"] = json.loads(params_str)
                except json.JSONDecodeError:
                    result["params"] = params_str

    # Include CSRF token reference (don't log actual value)
    if "at" in parsed:
        result["at"] = "(csrf_token)"

    return result


class RequestIdCounter:
    """Thread-safe source of monotonically increasing ``_reqid`` values."""

    def __init__(self, start: int = constants.REQUEST_ID_SEED):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


# Shared by every transport in the process unless one is injected
_default_counter = RequestIdCounter()


class Deadline:
    """A point in time after which an in-flight request is abandoned.

    Can also be cancelled explicitly from another thread.
    """

    def __init__(self, seconds: float):
        self.expires_at = time.monotonic() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.cancelled or self.remaining() <= 0.0

    def check(self, operation_id: str) -> None:
        """Raise RequestTimeoutError if the deadline has passed or was cancelled."""
        if self.cancelled:
            raise RequestTimeoutError("request cancelled", operation_id)
        if self.remaining() <= 0.0:
            raise RequestTimeoutError("deadline exceeded", operation_id)


@dataclass
class EncodedRequest:
    """A fully built request. Created fresh for every call."""

    url: str
    query_params: dict[str, str]
    form_fields: dict[str, str]

    @property
    def full_url(self) -> str:
        return f"{self.url}?{urllib.parse.urlencode(self.query_params)}"

    @property
    def body(self) -> str:
        # URL encode (safe='' encodes all characters including /)
        body_parts = [
            f"{key}={urllib.parse.quote(value, safe='')}"
            for key, value in self.form_fields.items()
        ]
        # Add trailing & to match NotebookLM's format
        return "&".join(body_parts) + "&"


@dataclass
class FramedResponse:
    """The embedded payload JSON extracted from a response envelope."""

    payload: bytes

    def json(self) -> Any:
        return json.loads(self.payload)


ChunkHandler = Callable[[bytes], None]


class RequestTransport:
    """Sends encoded calls to the NotebookLM data endpoints."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
        framer: ResponseFramer | None = None,
        counter: RequestIdCounter | None = None,
    ):
        self.config = config or ClientConfig.from_env()
        self.framer = framer or ResponseFramer()
        self.counter = counter or _default_counter
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.timeout)
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def build_request(
        self,
        operation: Operation,
        f_req: str,
        auth_token: str,
        context: SessionContext,
        source_path: str | None = None,
    ) -> EncodedRequest:
        """Build the URL, query parameters and form fields for one call."""
        params = {
            **operation.query_params(),
            "bl": context.build_version,
            "f.sid": context.session_id,
            "hl": "en",
            "_reqid": str(self.counter.next()),
            "rt": "c",
        }
        if source_path is not None:
            params["source-path"] = source_path

        return EncodedRequest(
            url=f"{constants.DATA_URL}{operation.route}",
            query_params=params,
            form_fields={"f.req": f_req, "at": auth_token},
        )

    def _headers(self, cookies: str | dict[str, str] | None) -> dict[str, str]:
        return {**constants.RPC_HEADERS, "Cookie": cookie_header(cookies)}

    def _timeout(self, default: float, deadline: Deadline | None) -> float:
        if deadline is None:
            return default
        return min(default, deadline.remaining())

    def _log_request(self, operation: Operation, request: EncodedRequest) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        method_name = constants.RPC_NAMES.get(operation.rpc_id or "", operation.name)
        logger.debug("=" * 70)
        logger.debug(f"RPC Call: {operation.id} ({method_name})")
        logger.debug("-" * 70)
        logger.debug("URL Parameters:")
        for key, value in request.query_params.items():
            logger.debug(f"  {key}: {value}")
        logger.debug("-" * 70)
        logger.debug("Request Params:")
        decoded_body = _decode_request_body(request.body)
        if "params" in decoded_body:
            logger.debug(_format_debug_json(decoded_body["params"]))
        else:
            logger.debug(_format_debug_json(decoded_body))

    def _log_status(self, status_code: int, body: str | None = None) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("-" * 70)
        logger.debug(f"Response Status: {status_code}")
        if body is not None:
            logger.debug("Error Response Body:")
            logger.debug(body[:2000] if len(body) > 2000 else body)
            logger.debug("=" * 70)

    def send(
        self,
        operation: Operation,
        f_req: str,
        auth_token: str,
        cookies: str | dict[str, str] | None,
        context: SessionContext,
        source_path: str | None = None,
        deadline: Deadline | None = None,
    ) -> FramedResponse:
        """POST one call and return its de-framed payload."""
        request = self.build_request(operation, f_req, auth_token, context, source_path)
        self._log_request(operation, request)

        if deadline is not None:
            deadline.check(operation.id)

        try:
            response = self._get_client().post(
                request.full_url,
                content=request.body,
                headers=self._headers(cookies),
                timeout=self._timeout(self.config.timeout, deadline),
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"request timed out: {e}", operation.id) from e
        except httpx.HTTPError as e:
            raise TransportError(f"failed to send request: {e}", operation.id) from e

        if not response.is_success:
            self._log_status(response.status_code, response.text)
            raise HTTPStatusError(response.status_code, response.text, operation.id)
        self._log_status(response.status_code)

        try:
            payload = self.framer.unframe(response.content)
        except BatchExecuteError as e:
            e.bind(operation.id)
            raise

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Response Data:")
            logger.debug(payload.decode("utf-8", errors="replace")[:2000])
            logger.debug("=" * 70)

        return FramedResponse(payload=payload)

    def stream(
        self,
        operation: Operation,
        f_req: str,
        auth_token: str,
        cookies: str | dict[str, str] | None,
        context: SessionContext,
        on_chunk: ChunkHandler,
        source_path: str | None = None,
        deadline: Deadline | None = None,
    ) -> None:
        """POST one call and hand the raw response body to ``on_chunk`` block by block.

        No framing is applied. Returns normally at end of body.
        """
        request = self.build_request(operation, f_req, auth_token, context, source_path)
        self._log_request(operation, request)

        if deadline is not None:
            deadline.check(operation.id)

        try:
            with self._get_client().stream(
                "POST",
                request.full_url,
                content=request.body,
                headers=self._headers(cookies),
                timeout=self._timeout(self.config.query_timeout, deadline),
            ) as response:
                if not response.is_success:
                    response.read()
                    self._log_status(response.status_code, response.text)
                    raise HTTPStatusError(response.status_code, response.text, operation.id)
                self._log_status(response.status_code)

                for block in response.iter_bytes(chunk_size=constants.STREAM_BLOCK_SIZE):
                    if deadline is not None:
                        deadline.check(operation.id)
                    try:
                        on_chunk(block)
                    except Exception as e:
                        raise HandlerError(e, operation.id) from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"read timed out: {e}", operation.id) from e
        except httpx.HTTPError as e:
            raise TransportError(f"read error: {e}", operation.id) from e
