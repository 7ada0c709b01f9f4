"""Response de-framing.

Response format:
)]}'
<byte_count>
[["wrb.fr", null, "<payload_json_string>", ...]]
<byte_count>
...more chunks...

The byte counts are not trusted: chunks are delimited by newlines, exactly
as the browser client reads them.
"""

import enum
import json
from typing import Iterator

from . import constants
from .errors import FramingError, PayloadTypeError, RPCStatusError


class ChunkPolicy(enum.Enum):
    """What ``unframe`` does with bodies carrying more than one envelope chunk.

    Trailer chunks ([["di", ...], ["af.httprm", ...]] and [["e", ...]]) are
    not envelopes and never count.
    """

    FIRST = "first"    # consume the first chunk, ignore the rest
    SINGLE = "single"  # treat additional envelope chunks as a framing error


def _as_text(raw: bytes | str) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FramingError("decode", f"body is not valid UTF-8: {e}") from e


def _is_envelope_item(item) -> bool:
    return isinstance(item, list) and bool(item) and item[0] == constants.ENVELOPE_TAG


def strip_prefix(text: str) -> str:
    """Remove the anti-XSSI prefix and the newlines that follow it."""
    if text.startswith(constants.ANTI_HIJACK_PREFIX):
        text = text[len(constants.ANTI_HIJACK_PREFIX):].lstrip("\n")
    return text


class ResponseFramer:
    """Extracts the embedded payload JSON from a raw response body."""

    def __init__(self, chunk_policy: ChunkPolicy = ChunkPolicy.FIRST):
        self.chunk_policy = chunk_policy

    def unframe(self, raw: bytes | str) -> bytes:
        """Return the payload of the first chunk as UTF-8 bytes."""
        text = strip_prefix(_as_text(raw))

        if self.chunk_policy is ChunkPolicy.SINGLE:
            count = sum(1 for _ in self.iter_envelope_chunks(text))
            if count > 1:
                raise FramingError("chunk", f"expected a single envelope chunk, found {count}", text)

        # <length>\n<chunk>\n... - the second field is the first chunk
        fields = text.split("\n", 2)
        if len(fields) >= 2:
            text = fields[1]

        return self.extract_payload(text)

    def iter_chunks(self, raw: bytes | str) -> Iterator[str]:
        """Yield the text of every chunk in the body, in order."""
        lines = strip_prefix(_as_text(raw)).split("\n")
        i = 0
        while i < len(lines):
            line = lines[i].strip()
            if not line:
                i += 1
                continue

            # Try to parse as byte count (indicates next line is JSON)
            try:
                int(line)
            except ValueError:
                # Not a byte count, the line is the chunk itself
                yield line
                i += 1
                continue

            i += 1
            if i < len(lines):
                yield lines[i]
            i += 1

    def iter_envelope_chunks(self, raw: bytes | str) -> Iterator[str]:
        """Yield the chunks that carry a ``wrb.fr`` item, skipping trailers.

        Chunks that are not valid JSON are yielded as-is so that
        ``extract_payload`` reports them.
        """
        for chunk in self.iter_chunks(raw):
            try:
                items = json.loads(chunk)
            except json.JSONDecodeError:
                yield chunk
                continue
            if isinstance(items, list) and any(_is_envelope_item(item) for item in items):
                yield chunk

    def iter_payloads(self, raw: bytes | str) -> Iterator[bytes]:
        """Unwrap every envelope chunk of the body."""
        for chunk in self.iter_envelope_chunks(raw):
            yield self.extract_payload(chunk)

    def extract_payload(self, chunk: str) -> bytes:
        """Unwrap one envelope chunk: [["wrb.fr", <rpc_id>, "<payload>", ...]]."""
        try:
            envelope = json.loads(chunk)
        except json.JSONDecodeError as e:
            raise FramingError("envelope", f"invalid JSON: {e.msg}", chunk) from e

        if not isinstance(envelope, list) or not envelope:
            raise FramingError("envelope", "expected a non-empty outer array", chunk)

        item = envelope[0]
        if not isinstance(item, list) or len(item) < 3:
            raise FramingError("envelope", "expected [['wrb.fr',null,'data',...]]", chunk)

        data = item[2]
        if isinstance(data, str):
            return data.encode("utf-8")

        # Server-side error: ["wrb.fr", "RPC_ID", null, null, null, [16], "generic"]
        if data is None and len(item) > 5 and isinstance(item[5], list) and item[5]:
            raise RPCStatusError(item[5], chunk)

        raise PayloadTypeError("payload", f"expected string, got {type(data).__name__}", chunk)


class FrameAccumulator:
    """A streaming handler that collects chunks for later de-framing.

    Usage:
        acc = FrameAccumulator()
        dispatcher.stream("generate_free_form_streamed", request, acc)
        for payload in acc.payloads():
            ...
    """

    def __init__(self, framer: ResponseFramer | None = None):
        self.framer = framer or ResponseFramer()
        self._chunks: list[bytes] = []

    def __call__(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def unframe(self) -> bytes:
        return self.framer.unframe(self.body)

    def payloads(self) -> list[bytes]:
        return list(self.framer.iter_payloads(self.body))
