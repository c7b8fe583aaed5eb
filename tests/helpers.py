"""Shared fakes for the Query Service client tests."""

from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from query_service import Client

BASE_URL = "https://query.example.com"
TOKEN = "test-token"


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in the given chunks, recording whether it was closed."""

    def __init__(self, chunks: Iterable[bytes]):
        self.chunks = list(chunks)
        self.chunks_sent = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.chunks_sent += 1
            yield chunk

    async def aclose(self):
        self.closed = True


def job_status_payload(
    status: str = "completed",
    statements: Optional[List[Dict[str, Any]]] = None,
    job_id: str = "job-123"
) -> Dict[str, Any]:
    return {
        "queryJobId": job_id,
        "status": status,
        "actorType": "user",
        "statements": statements if statements is not None else [],
        "createdAt": "2024-01-01T00:00:00Z",
        "changedAt": "2024-01-01T00:00:01Z",
    }


def make_client(handler: Callable[[httpx.Request], Any], **options: Any) -> Client:
    """Client backed by a mock transport, retrying without delay."""
    options.setdefault("retry_base_delay", 0.0)
    options.setdefault("retry_max_jitter", 0.0)
    options.setdefault("poll_interval_start", 0.001)
    options.setdefault("poll_interval_max", 0.005)
    return Client(BASE_URL, TOKEN, transport=httpx.MockTransport(handler), **options)
