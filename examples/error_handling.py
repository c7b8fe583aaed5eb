"""
Error handling example for the Query Service client

Runs a statement against a table that does not exist and shows how each
error type can be handled, either by class or by ErrorKind.
"""

import asyncio
import os

from query_service import (
    AuthenticationError,
    Client,
    ClientConfig,
    ErrorKind,
    JobError,
    JobTimeoutError,
    NotFoundError,
    QueryServiceError,
    ValidationError,
    setup_logger,
)


async def handle_by_class(client: Client, branch_id: str, workspace_id: str):
    try:
        results = await client.execute_query(
            branch_id,
            workspace_id,
            ["SELECT * FROM nonexistent_table_xyz"],
            max_wait_time=30
        )
        print("Results:", [r.data for r in results])
    except AuthenticationError as e:
        print(f"Authentication failed: {e.message} (status {e.status_code})")
    except ValidationError as e:
        print(f"Validation error: {e.message}")
        print(f"  Context: {e.context}")
    except NotFoundError as e:
        print(f"Not found: {e.message}")
    except JobError as e:
        print(f"Job {e.job_id} failed: {e.message}")
        for statement in e.failed_statements:
            print(f"  Statement {statement.id}: {statement.error}")
    except JobTimeoutError as e:
        print(f"Job {e.job_id} did not finish in {e.max_wait_time}s, canceling")
        await client.cancel_job(e.job_id, "Timed out in example")
    except QueryServiceError as e:
        print(f"Service error: {e.message}")
        if e.exception_id:
            print(f"  Exception ID: {e.exception_id}")


async def handle_by_kind(client: Client, job_id: str):
    try:
        await client.get_job_status(job_id)
    except QueryServiceError as e:
        if e.kind is ErrorKind.NOT_FOUND:
            print(f"No job {job_id}")
        elif e.kind is ErrorKind.AUTHENTICATION:
            print("Check QUERY_SERVICE_TOKEN")
        else:
            print(f"{e.error_code}: {e.message}")


async def main():
    # Retry warnings are printed as JSON lines on stderr
    setup_logger("query_service", level="WARNING")

    config = ClientConfig.from_env(max_retries=2)
    async with Client.from_config(config) as client:
        await handle_by_class(client, os.environ["BRANCH_ID"], os.environ["WORKSPACE_ID"])
        await handle_by_kind(client, "00000000-0000-0000-0000-000000000000")


if __name__ == "__main__":
    asyncio.run(main())
