"""
Main Client class for the Query Service

Provides the primary interface for submitting SQL statements, waiting for
query jobs, and fetching or streaming their results.
"""

import dataclasses
from typing import Dict, List, Optional, Any, Callable, Sequence, TypeVar, Union

import httpx

from ..models.job import ActorType, JobStatus
from ..models.results import QueryResult, QueryHistory
from ..services.job_poller import JobPoller
from ..services.stream_decoder import ResultStream
from ..services.transport import TransportExecutor
from ..utils.config import ClientConfig
from ..utils.logger import get_logger
from .exceptions import QueryServiceError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 500
DEFAULT_CANCEL_REASON = "Canceled by user"


class Client:
    """
    Asynchronous client for the Query Service API.

    Provides:
    - Low-level calls mapping one-to-one to API endpoints
    - Waiting for job completion with backoff polling
    - One-call query execution (submit, wait, fetch results)
    - Streaming results as newline-delimited JSON

    Example:
        async with Client(base_url="https://query.example.com", token="...") as client:
            results = await client.execute_query(
                branch_id="1261313",
                workspace_id="2950146661",
                statements=["SELECT * FROM my_table LIMIT 10"]
            )
            print(results[0].data)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **options: Any
    ):
        """
        Initialize the Client.

        Args:
            base_url: Base URL of the Query Service
            token: Storage API token
            transport: Optional httpx transport (for proxies or testing)
            **options: Other ClientConfig fields (timeout, max_retries, ...)
        """
        self.config = ClientConfig(base_url=base_url, token=token, **options)

        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=self.config.headers,
            timeout=self.config.timeout,
            transport=transport
        )
        self.transport = TransportExecutor(
            self._http,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
            backoff=self.config.retry_backoff
        )
        self.poller = JobPoller(
            self.get_job_status,
            backoff=self.config.poll_backoff,
            max_wait_time=self.config.max_wait_time
        )
        self.logger = get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "Client":
        """Create a client from a prepared ClientConfig."""
        return cls(transport=transport, **dataclasses.asdict(config))

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Close pooled connections."""
        await self._http.aclose()

    # Low-level API methods

    async def submit_job(
        self,
        branch_id: str,
        workspace_id: str,
        statements: Sequence[str],
        transactional: bool = True,
        actor_type: Union[ActorType, str] = ActorType.USER
    ) -> str:
        """
        Submit a query job without waiting for completion.

        Args:
            branch_id: Branch ID
            workspace_id: Workspace ID
            statements: SQL statements to execute, in order
            transactional: Whether to execute in a transaction
            actor_type: Who submits the job

        Returns:
            Query job ID
        """
        data = await self.transport.request(
            "POST",
            f"/api/v1/branches/{branch_id}/workspaces/{workspace_id}/queries",
            body={
                "statements": list(statements),
                "transactional": transactional,
                "actorType": ActorType(actor_type).value
            }
        )
        job_id = self._parse(lambda d: str(d["queryJobId"]), data, "submit job")

        self.logger.info(f"Submitted query job {job_id}", extra={
            "job_id": job_id,
            "branch_id": branch_id,
            "workspace_id": workspace_id,
            "statement_count": len(statements)
        })
        return job_id

    async def get_job_status(self, job_id: str) -> JobStatus:
        """
        Get the status of a query job.

        Args:
            job_id: Query job ID

        Returns:
            Fresh job status snapshot with statements
        """
        data = await self.transport.request("GET", f"/api/v1/queries/{job_id}")
        return self._parse(JobStatus.from_dict, data, "job status")

    async def get_job_results(
        self,
        job_id: str,
        statement_id: str,
        offset: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> QueryResult:
        """
        Get one page of results for a statement.

        Args:
            job_id: Query job ID
            statement_id: Statement ID
            offset: Row offset for pagination
            page_size: Rows per page

        Returns:
            Query result with columns and data
        """
        data = await self.transport.request(
            "GET",
            f"/api/v1/queries/{job_id}/{statement_id}/results",
            params={"offset": offset, "pageSize": page_size}
        )
        return self._parse(QueryResult.from_dict, data, "job results")

    async def cancel_job(self, job_id: str, reason: Optional[str] = None) -> str:
        """
        Cancel a running query job.

        Args:
            job_id: Query job ID
            reason: Optional cancellation reason

        Returns:
            Query job ID
        """
        data = await self.transport.request(
            "POST",
            f"/api/v1/queries/{job_id}/cancel",
            body={"reason": reason or DEFAULT_CANCEL_REASON}
        )
        self.logger.info(f"Canceled query job {job_id}")
        return self._parse(lambda d: str(d["queryJobId"]), data, "cancel job")

    async def get_query_history(
        self,
        branch_id: str,
        workspace_id: str,
        after_id: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> QueryHistory:
        """
        Get query history for a workspace.

        Args:
            branch_id: Branch ID
            workspace_id: Workspace ID
            after_id: Return statements after this statement ID
            page_size: Statements per page

        Returns:
            Query history with list of statements
        """
        params: Dict[str, Union[str, int]] = {"pageSize": page_size}
        if after_id:
            params["afterId"] = after_id

        data = await self.transport.request(
            "GET",
            f"/api/v1/branches/{branch_id}/workspaces/{workspace_id}/queries",
            params=params
        )
        return self._parse(QueryHistory.from_dict, data, "query history")

    # High-level convenience methods

    async def wait_for_job(
        self,
        job_id: str,
        max_wait_time: Optional[float] = None,
        poll_interval_start: Optional[float] = None,
        poll_interval_max: Optional[float] = None
    ) -> JobStatus:
        """
        Wait for a job to reach a terminal state.

        Args:
            job_id: Query job ID
            max_wait_time: Maximum seconds to wait
            poll_interval_start: First poll interval in seconds
            poll_interval_max: Poll interval ceiling in seconds

        Returns:
            Final job status (completed or canceled)

        Raises:
            JobError: If the job fails
            JobTimeoutError: If the job does not finish within max_wait_time
        """
        backoff = self.config.poll_backoff
        if poll_interval_start is not None:
            backoff = dataclasses.replace(backoff, start=poll_interval_start)
        if poll_interval_max is not None:
            backoff = dataclasses.replace(backoff, maximum=poll_interval_max)

        return await self.poller.wait(job_id, max_wait_time=max_wait_time, backoff=backoff)

    async def execute_query(
        self,
        branch_id: str,
        workspace_id: str,
        statements: Sequence[str],
        transactional: bool = True,
        actor_type: Union[ActorType, str] = ActorType.USER,
        max_wait_time: Optional[float] = None
    ) -> List[QueryResult]:
        """
        Execute statements and wait for their results.

        Submits a job, waits for completion, and fetches the first page of
        results for every statement.

        Returns:
            List of QueryResult, one per statement, in statement order

        Raises:
            JobError: If the job fails
            JobTimeoutError: If the job does not finish in time
        """
        job_id = await self.submit_job(
            branch_id,
            workspace_id,
            statements,
            transactional=transactional,
            actor_type=actor_type
        )

        status = await self.wait_for_job(job_id, max_wait_time=max_wait_time)

        results = []
        for statement in status.statements:
            results.append(await self.get_job_results(job_id, statement.id))
        return results

    def stream_results(self, job_id: str, statement_id: str) -> ResultStream:
        """
        Stream results of a statement record by record.

        The request is sent when iteration starts. Use ``async with`` to
        guarantee the connection is released when stopping early.

        Example:
            async with client.stream_results(job_id, statement_id) as rows:
                async for row in rows:
                    print(row)
        """
        return ResultStream(
            lambda: self.transport.open_stream(
                "GET",
                f"/api/v1/queries/{job_id}/{statement_id}/results/stream"
            )
        )

    def _parse(self, parser: Callable[[Any], T], data: Any, what: str) -> T:
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError) as e:
            raise QueryServiceError(f"Unexpected {what} response: {type(e).__name__}: {str(e)}") from e
