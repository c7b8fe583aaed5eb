"""
Streaming example for the Query Service client

Runs a large query and reads its result rows one by one instead of paging
through them, stopping early once enough rows were seen.
"""

import asyncio
import os

from query_service import Client, ClientConfig

ROW_LIMIT = 1000


async def main():
    config = ClientConfig.from_env()
    branch_id = os.environ["BRANCH_ID"]
    workspace_id = os.environ["WORKSPACE_ID"]

    async with Client.from_config(config) as client:
        job_id = await client.submit_job(
            branch_id,
            workspace_id,
            ["SELECT * FROM large_table"]
        )
        status = await client.wait_for_job(job_id)
        statement_id = status.statements[0].id

        # Leaving the block closes the connection even when breaking early
        async with client.stream_results(job_id, statement_id) as rows:
            async for row in rows:
                print(row)
                if rows.records_read >= ROW_LIMIT:
                    break

        print(f"Read {rows.records_read} rows")


if __name__ == "__main__":
    asyncio.run(main())
