"""
Basic usage example for the Query Service client

Executes a couple of statements in one job and prints their results, then
shows the low-level calls behind execute_query.

Set QUERY_SERVICE_URL, QUERY_SERVICE_TOKEN, BRANCH_ID and WORKSPACE_ID
before running.
"""

import asyncio
import os

from query_service import Client, ClientConfig


async def basic_example(config: ClientConfig, branch_id: str, workspace_id: str):
    """Submit, wait and fetch results in one call."""
    async with Client.from_config(config) as client:
        results = await client.execute_query(
            branch_id,
            workspace_id,
            [
                "SELECT CURRENT_TIMESTAMP() AS now",
                "SELECT 1 AS id, 'hello' AS greeting",
            ]
        )

        for index, result in enumerate(results, start=1):
            print(f"Statement {index}: {result.status.value}")
            print(f"  Columns: {', '.join(result.column_names)}")
            for row in result.data:
                print(f"  {row}")


async def step_by_step_example(config: ClientConfig, branch_id: str, workspace_id: str):
    """Drive a job through the low-level API."""
    async with Client.from_config(config) as client:
        job_id = await client.submit_job(branch_id, workspace_id, ["SELECT 42 AS answer"])
        print(f"Submitted job {job_id}")

        status = await client.wait_for_job(job_id, max_wait_time=60)
        print(f"Job finished as {status.status.value}")

        for statement in status.statements:
            page = await client.get_job_results(job_id, statement.id, page_size=100)
            print(f"{statement.id}: {page.data}")

        history = await client.get_query_history(branch_id, workspace_id, page_size=5)
        print(f"Last {len(history.statements)} statements in workspace:")
        for statement in history.statements:
            print(f"  {statement.status.value:<10} {statement.query[:60]}")


async def main():
    config = ClientConfig.from_env()
    branch_id = os.environ["BRANCH_ID"]
    workspace_id = os.environ["WORKSPACE_ID"]

    await basic_example(config, branch_id, workspace_id)
    await step_by_step_example(config, branch_id, workspace_id)


if __name__ == "__main__":
    asyncio.run(main())
