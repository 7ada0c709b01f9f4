import json

import pytest

from notebooklm_rpc.errors import FramingError, PayloadTypeError, RPCStatusError
from notebooklm_rpc.framing import ChunkPolicy, FrameAccumulator, ResponseFramer, strip_prefix

# Byte count is deliberately wrong: chunks are newline-delimited
EXEMPLAR = ")]}'\n31\n" + r'[["wrb.fr",null,"{\"a\":1}",null,null,null]]' + "\n"


def framed(*envelopes) -> str:
    """Build a response body from envelope objects."""
    body = ")]}'\n"
    for envelope in envelopes:
        chunk = json.dumps(envelope)
        body += f"{len(chunk)}\n{chunk}\n"
    return body


# Bookkeeping chunks the server appends after the envelopes
TRAILERS = (
    [["di", 59], ["af.httprm", 58, "-1234567890", 4]],
    [["e", 4, None, None, 131]],
)
WITH_TRAILERS = framed([["wrb.fr", "yyryJe", '{"a":1}', None, None, None, "generic"]], *TRAILERS)


@pytest.fixture
def framer():
    return ResponseFramer()


class TestUnframe:
    def test_exemplar_body(self, framer):
        assert framer.unframe(EXEMPLAR) == b'{"a":1}'

    def test_bytes_body(self, framer):
        assert framer.unframe(EXEMPLAR.encode("utf-8")) == b'{"a":1}'

    def test_without_prefix(self, framer):
        assert framer.unframe(EXEMPLAR[len(")]}'\n"):]) == b'{"a":1}'

    def test_multiple_newlines_after_prefix(self, framer):
        assert framer.unframe(")]}'\n\n\n" + EXEMPLAR[len(")]}'\n"):]) == b'{"a":1}'

    def test_unicode_payload(self, framer):
        body = framed([["wrb.fr", "rLM1Ne", json.dumps({"title": "Café"}, ensure_ascii=False)]])
        assert json.loads(framer.unframe(body)) == {"title": "Café"}

    def test_first_chunk_only(self, framer):
        body = framed(
            [["wrb.fr", None, '"first"']],
            [["wrb.fr", None, '"second"']],
        )
        assert framer.unframe(body) == b'"first"'


class TestUnframeErrors:
    def test_short_envelope_is_shape_error(self, framer):
        body = framed([["wrb.fr", None]])
        with pytest.raises(FramingError) as exc_info:
            framer.unframe(body)
        assert not isinstance(exc_info.value, PayloadTypeError)
        assert exc_info.value.step == "envelope"
        assert "wrb.fr" in exc_info.value.fragment

    def test_empty_outer_array(self, framer):
        with pytest.raises(FramingError, match="non-empty outer array"):
            framer.unframe(")]}'\n2\n[]\n")

    def test_outer_element_not_array(self, framer):
        with pytest.raises(FramingError) as exc_info:
            framer.unframe(")]}'\n9\n[\"wrb.fr\"]\n")
        assert exc_info.value.step == "envelope"

    def test_invalid_json(self, framer):
        with pytest.raises(FramingError, match="invalid JSON") as exc_info:
            framer.unframe(")]}'\n5\n[[1,2\n")
        assert exc_info.value.step == "envelope"

    def test_non_string_payload(self, framer):
        with pytest.raises(PayloadTypeError, match="expected string, got int") as exc_info:
            framer.unframe(framed([["wrb.fr", None, 42]]))
        assert exc_info.value.step == "payload"

    def test_rpc_error_16_is_auth_failure(self, framer):
        body = framed([["wrb.fr", "rLM1Ne", None, None, None, [16], "generic"]])
        with pytest.raises(RPCStatusError) as exc_info:
            framer.unframe(body)
        assert isinstance(exc_info.value, PayloadTypeError)
        assert exc_info.value.codes == [16]
        assert exc_info.value.is_auth_failure

    def test_other_rpc_error_is_not_auth_failure(self, framer):
        body = framed([["wrb.fr", "rLM1Ne", None, None, None, [3], "generic"]])
        with pytest.raises(RPCStatusError) as exc_info:
            framer.unframe(body)
        assert not exc_info.value.is_auth_failure

    def test_fragment_is_truncated(self, framer):
        body = framed([["wrb.fr", None, 1, "x" * 1000]])
        with pytest.raises(PayloadTypeError) as exc_info:
            framer.unframe(body)
        message = str(exc_info.value)
        assert "(truncated)" in message
        assert len(message) < 400

    def test_invalid_utf8(self, framer):
        with pytest.raises(FramingError) as exc_info:
            framer.unframe(b")]}'\n3\n\xff\xfe\n")
        assert exc_info.value.step == "decode"


class TestChunkPolicy:
    def test_single_rejects_multiple_chunks(self):
        framer = ResponseFramer(chunk_policy=ChunkPolicy.SINGLE)
        body = framed([["wrb.fr", None, "1"]], [["wrb.fr", None, "2"]])
        with pytest.raises(FramingError, match="found 2") as exc_info:
            framer.unframe(body)
        assert exc_info.value.step == "chunk"

    def test_single_accepts_one_chunk(self):
        framer = ResponseFramer(chunk_policy=ChunkPolicy.SINGLE)
        assert framer.unframe(EXEMPLAR) == b'{"a":1}'

    def test_iter_payloads_reads_every_chunk(self, framer):
        body = framed(
            [["wrb.fr", None, '"one"']],
            [["wrb.fr", None, '"two"']],
            [["wrb.fr", None, '"three"']],
        )
        assert list(framer.iter_payloads(body)) == [b'"one"', b'"two"', b'"three"']

    def test_single_ignores_trailer_chunks(self):
        framer = ResponseFramer(chunk_policy=ChunkPolicy.SINGLE)
        assert framer.unframe(WITH_TRAILERS) == b'{"a":1}'

    def test_iter_payloads_skips_trailer_chunks(self, framer):
        assert list(framer.iter_payloads(WITH_TRAILERS)) == [b'{"a":1}']

    def test_iter_payloads_streamed_answer_with_trailers(self, framer):
        body = framed(
            [["wrb.fr", None, '[["partial"]]']],
            [["wrb.fr", None, '[["partial answer"]]']],
            *TRAILERS,
        )
        assert list(framer.iter_payloads(body)) == [b'[["partial"]]', b'[["partial answer"]]']

    def test_iter_payloads_still_reports_invalid_json(self, framer):
        with pytest.raises(FramingError, match="invalid JSON"):
            list(framer.iter_payloads(")]}'\n5\n[[1,2\n"))

    def test_iter_chunks_accepts_unprefixed_lines(self, framer):
        body = ")]}'\n[[\"wrb.fr\",null,\"x\"]]\n"
        assert list(framer.iter_chunks(body)) == ['[["wrb.fr",null,"x"]]']


def test_strip_prefix_leaves_other_text_alone():
    assert strip_prefix("31\n[]") == "31\n[]"
    assert strip_prefix(")]}'\n\n31") == "31"


class TestFrameAccumulator:
    def test_accumulates_split_chunks(self):
        acc = FrameAccumulator()
        raw = EXEMPLAR.encode("utf-8")
        for i in range(0, len(raw), 7):
            acc(raw[i:i + 7])
        assert acc.body == raw
        assert acc.unframe() == b'{"a":1}'
        assert acc.payloads() == [b'{"a":1}']

    def test_payloads_of_body_with_trailers(self):
        acc = FrameAccumulator()
        acc(WITH_TRAILERS.encode("utf-8"))
        assert acc.unframe() == b'{"a":1}'
        assert acc.payloads() == [b'{"a":1}']
