"""
Services package for the Query Service client

Contains the retry engine, the job poller and the result stream decoder.
"""

from .backoff import RetryBackoff, PollBackoff
from .transport import TransportExecutor, is_retryable_status
from .job_poller import JobPoller
from .stream_decoder import NDJSONDecoder, ResultStream, iter_ndjson

__all__ = [
    "RetryBackoff",
    "PollBackoff",
    "TransportExecutor",
    "is_retryable_status",
    "JobPoller",
    "NDJSONDecoder",
    "ResultStream",
    "iter_ndjson"
]
