"""
Incremental newline-delimited JSON decoding for streamed results.

Chunks may end anywhere, including inside a line or inside a multi-byte
character; records are produced as soon as their terminating newline arrives.
"""

import codecs
import json
from typing import Any, AsyncGenerator, AsyncIterable, Awaitable, Callable, Iterator, List, Optional

import httpx

from ..core.exceptions import QueryServiceError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NDJSONDecoder:
    """
    Push decoder turning byte chunks into JSON records.

    Holds a single text buffer with the unterminated tail of the stream.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._buffer = ""

    def feed(self, chunk: bytes) -> Iterator[Any]:
        """
        Add a chunk and return the records of every line it completes.

        The buffer is updated immediately; the returned lines are parsed
        lazily as the iterator is consumed.
        """
        self._buffer += self._decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return _parse_lines(lines)

    def flush(self) -> Iterator[Any]:
        """Return the record of a final line that has no trailing newline."""
        self._buffer += self._decode(b"", final=True)
        lines = self._buffer.split("\n")
        self._buffer = ""
        return _parse_lines(lines)

    def _decode(self, data: bytes, final: bool = False) -> str:
        try:
            return self._decoder.decode(data, final)
        except UnicodeDecodeError as e:
            raise QueryServiceError(f"Invalid {self.encoding} data in result stream: {str(e)}") from e


def _parse_lines(lines: List[str]) -> Iterator[Any]:
    for line in lines:
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except ValueError as e:
            raise QueryServiceError(
                f"Invalid JSON record in result stream: {str(e)}",
                context={"line": line[:200]}
            ) from e


async def iter_ndjson(chunks: AsyncIterable[bytes], encoding: str = "utf-8") -> AsyncGenerator[Any, None]:
    """
    Decode an async iterable of byte chunks as newline-delimited JSON.

    Args:
        chunks: Byte chunks in stream order
        encoding: Text encoding of the stream

    Yields:
        One parsed JSON value per non-blank line
    """
    decoder = NDJSONDecoder(encoding)

    async for chunk in chunks:
        for record in decoder.feed(chunk):
            yield record

    for record in decoder.flush():
        yield record


async def _response_records(response: httpx.Response) -> AsyncGenerator[Any, None]:
    # Owns the response, so the event loop's generator finalizer closes it
    # when iteration is abandoned without aclose().
    records = iter_ndjson(response.aiter_bytes(), encoding=response.charset_encoding or "utf-8")
    try:
        async for record in records:
            yield record
    finally:
        try:
            await records.aclose()
        finally:
            await response.aclose()


class ResultStream:
    """
    Lazy, single-pass async iterator over the records of a streamed response.

    The response is opened on first use and closed on completion, on a decode
    failure, on aclose(), and on leaving an ``async with`` block early. A
    stream dropped in the middle of a plain ``async for`` is closed once it is
    garbage collected.

    Example:
        async with client.stream_results(job_id, statement_id) as rows:
            async for row in rows:
                print(row)
    """

    def __init__(self, open_response: Callable[[], Awaitable[httpx.Response]]):
        self._open_response = open_response
        self._response: Optional[httpx.Response] = None
        self._records: Optional[AsyncGenerator[Any, None]] = None
        self._closed = False
        self.records_read = 0

    async def __aenter__(self) -> "ResultStream":
        await self._ensure_open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __aiter__(self) -> "ResultStream":
        return self

    async def __anext__(self) -> Any:
        await self._ensure_open()
        if self._records is None:
            raise StopAsyncIteration

        try:
            record = await self._records.__anext__()
        except StopAsyncIteration:
            logger.debug(f"Result stream finished after {self.records_read} records")
            await self.aclose()
            raise
        except BaseException:
            await self.aclose()
            raise

        self.records_read += 1
        return record

    async def aclose(self):
        """Release the underlying response. Safe to call more than once."""
        self._closed = True
        records, self._records = self._records, None
        response, self._response = self._response, None

        try:
            if records is not None:
                await records.aclose()
        finally:
            if response is not None:
                await response.aclose()

    async def _ensure_open(self):
        if self._closed or self._response is not None:
            return

        response = await self._open_response()
        if self._closed:
            await response.aclose()
            return

        self._response = response
        self._records = _response_records(response)
