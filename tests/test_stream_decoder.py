import asyncio
import gc

import httpx
import pytest

from query_service import QueryServiceError
from query_service.services.stream_decoder import NDJSONDecoder, ResultStream, iter_ndjson

from tests.helpers import ChunkStream

PAYLOAD = '{"id": 1, "name": "Zoë"}\n{"id": 2, "name": "東京"}\n{"id": 3, "name": null}\n'.encode("utf-8")
RECORDS = [
    {"id": 1, "name": "Zoë"},
    {"id": 2, "name": "東京"},
    {"id": 3, "name": None},
]


async def chunks_of(*chunks):
    for chunk in chunks:
        yield chunk


async def collect(chunks, **kwargs):
    return [record async for record in iter_ndjson(chunks, **kwargs)]


class TestNDJSONDecoder:

    def test_complete_lines(self):
        decoder = NDJSONDecoder()

        assert list(decoder.feed(b'{"a": 1}\n{"a": 2}\n')) == [{"a": 1}, {"a": 2}]
        assert list(decoder.flush()) == []

    def test_partial_line_is_buffered(self):
        decoder = NDJSONDecoder()

        assert list(decoder.feed(b'{"a": ')) == []
        assert list(decoder.feed(b'1}\n{"b"')) == [{"a": 1}]
        assert list(decoder.feed(b': 2}')) == []
        assert list(decoder.flush()) == [{"b": 2}]

    def test_split_multibyte_character(self):
        decoder = NDJSONDecoder()
        data = '"é"\n'.encode("utf-8")

        assert list(decoder.feed(data[:2])) == []
        assert list(decoder.feed(data[2:])) == ["é"]

    def test_other_encoding(self):
        decoder = NDJSONDecoder("utf-16-le")

        records = list(decoder.feed('[1, "ü"]\n'.encode("utf-16-le")))

        assert records == [[1, "ü"]]

    def test_records_are_any_json_value(self):
        decoder = NDJSONDecoder()

        assert list(decoder.feed(b'1\n"text"\n[1, 2]\nnull\n')) == [1, "text", [1, 2], None]


@pytest.mark.asyncio
async def test_every_split_point_yields_same_records():
    for split in range(len(PAYLOAD) + 1):
        records = await collect(chunks_of(PAYLOAD[:split], PAYLOAD[split:]))
        assert records == RECORDS, f"split at byte {split}"


@pytest.mark.asyncio
async def test_byte_at_a_time():
    records = await collect(chunks_of(*(PAYLOAD[i:i + 1] for i in range(len(PAYLOAD)))))

    assert records == RECORDS


@pytest.mark.asyncio
async def test_final_line_without_newline():
    records = await collect(chunks_of(b'{"a": 1}\n{"a": 2}'))

    assert records == [{"a": 1}, {"a": 2}]


@pytest.mark.asyncio
async def test_blank_lines_and_crlf_are_tolerated():
    records = await collect(chunks_of(b'\n{"a": 1}\r\n\r\n   \n{"a": 2}\r\n'))

    assert records == [{"a": 1}, {"a": 2}]


@pytest.mark.asyncio
async def test_empty_stream():
    assert await collect(chunks_of()) == []
    assert await collect(chunks_of(b"", b"\n\n")) == []


@pytest.mark.asyncio
async def test_invalid_record_fails_after_earlier_records():
    received = []

    with pytest.raises(QueryServiceError) as exc_info:
        async for record in iter_ndjson(chunks_of(b'{"a": 1}\n{"a": \n{"a": 3}\n')):
            received.append(record)

    assert received == [{"a": 1}]
    assert "Invalid JSON record" in exc_info.value.message
    assert exc_info.value.context == {"line": '{"a": '}


@pytest.mark.asyncio
async def test_invalid_utf8_fails():
    with pytest.raises(QueryServiceError) as exc_info:
        await collect(chunks_of(b'{"a": "\xff\xfe"}\n'))

    assert "utf-8" in exc_info.value.message


@pytest.mark.asyncio
async def test_truncated_multibyte_character_at_end_fails():
    with pytest.raises(QueryServiceError):
        await collect(chunks_of('"é"'.encode("utf-8")[:2]))


@pytest.mark.asyncio
async def test_records_are_yielded_before_stream_ends():
    release = asyncio.Event()

    async def blocked_source():
        yield b'{"a": 1}\n{"a"'
        await release.wait()
        yield b': 2}\n'

    records = iter_ndjson(blocked_source())

    first = await asyncio.wait_for(records.__anext__(), timeout=1)
    assert first == {"a": 1}

    release.set()
    assert await records.__anext__() == {"a": 2}
    await records.aclose()


def streamed_response(*chunks):
    body = ChunkStream(chunks)
    response = httpx.Response(
        200,
        headers={"Content-Type": "application/x-ndjson"},
        stream=body,
        request=httpx.Request("GET", "https://query.example.com/stream")
    )
    return response, body


class Opener:
    """Opens the given response, counting the calls."""

    def __init__(self, response):
        self.response = response
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.response


class TestResultStream:

    @pytest.mark.asyncio
    async def test_reads_all_records_and_closes(self):
        response, body = streamed_response(b'{"a": 1}\n{"a"', b': 2}\n{"a": 3}')
        stream = ResultStream(Opener(response))

        records = [record async for record in stream]

        assert records == [{"a": 1}, {"a": 2}, {"a": 3}]
        assert stream.records_read == 3
        assert body.closed

    @pytest.mark.asyncio
    async def test_not_opened_until_iterated(self):
        response, _ = streamed_response(b'{"a": 1}\n')
        opener = Opener(response)
        stream = ResultStream(opener)

        assert opener.calls == 0
        assert await stream.__anext__() == {"a": 1}
        assert opener.calls == 1
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_early_exit_from_context_closes_response(self):
        response, body = streamed_response(b'{"a": 1}\n', b'{"a": 2}\n', b'{"a": 3}\n')

        async with ResultStream(Opener(response)) as stream:
            async for record in stream:
                break

        assert record == {"a": 1}
        assert body.closed
        assert body.chunks_sent < 3

    @pytest.mark.asyncio
    async def test_abandoned_iteration_closes_response(self):
        response, body = streamed_response(b'{"a": 1}\n', b'{"a": 2}\n', b'{"a": 3}\n')

        async for record in ResultStream(Opener(response)):
            break

        gc.collect()
        for _ in range(5):
            await asyncio.sleep(0)

        assert record == {"a": 1}
        assert body.closed

    @pytest.mark.asyncio
    async def test_decode_error_closes_response(self):
        response, body = streamed_response(b'{"a": 1}\nnot json\n')
        stream = ResultStream(Opener(response))

        with pytest.raises(QueryServiceError):
            async for _ in stream:
                pass

        assert stream.records_read == 1
        assert body.closed

    @pytest.mark.asyncio
    async def test_single_pass(self):
        response, _ = streamed_response(b'{"a": 1}\n')
        opener = Opener(response)
        stream = ResultStream(opener)

        assert [record async for record in stream] == [{"a": 1}]
        assert [record async for record in stream] == []
        assert opener.calls == 1

    @pytest.mark.asyncio
    async def test_aclose_before_open_never_sends_request(self):
        response, _ = streamed_response(b'{"a": 1}\n')
        opener = Opener(response)
        stream = ResultStream(opener)

        await stream.aclose()
        await stream.aclose()

        assert [record async for record in stream] == []
        assert opener.calls == 0

    @pytest.mark.asyncio
    async def test_open_error_propagates(self):
        async def failing_open():
            raise QueryServiceError("Request failed after 4 attempts: HTTP 503", status_code=503)

        stream = ResultStream(failing_open)

        with pytest.raises(QueryServiceError) as exc_info:
            async for _ in stream:
                pass

        assert exc_info.value.status_code == 503
