"""
Main CLI entry point for the Query Service client

Provides command-line access to query execution, job status, results,
streaming, cancellation and history.
"""

import asyncio
import json
import sys
from typing import Any, List, Awaitable, Callable

import click

from ..core.client import Client
from ..core.exceptions import QueryServiceError, JobError, ConfigurationError
from ..models.job import JobStatus
from ..models.results import QueryResult, QueryHistory
from ..utils.config import ClientConfig
from ..utils.logger import setup_logger, LoggerContext


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False), help='YAML configuration file')
@click.option('--base-url', '-u', envvar='QUERY_SERVICE_URL', help='Query Service base URL')
@click.option('--token', '-t', envvar='QUERY_SERVICE_TOKEN', help='Storage API token')
@click.option('--timeout', type=float, help='Per-request timeout in seconds')
@click.option('--max-retries', type=int, help='Retries for transient failures')
@click.option('--log-level', '-l', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
              help='Log level')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config, base_url, token, timeout, max_retries, log_level, verbose):
    """Query Service CLI"""

    ctx.ensure_object(dict)

    logger = setup_logger("query_service", level=log_level, structured=not verbose)
    ctx.obj['logger'] = logger

    ctx.obj['config_file'] = config
    ctx.obj['overrides'] = {
        'base_url': base_url,
        'token': token,
        'timeout': timeout,
        'max_retries': max_retries
    }
    ctx.obj['verbose'] = verbose


@cli.command('execute')
@click.argument('branch_id')
@click.argument('workspace_id')
@click.option('--sql', '-s', 'statements', multiple=True, help='SQL statement (repeatable)')
@click.option('--file', '-f', 'sql_file', type=click.File('r'), help='File with statements separated by ";"')
@click.option('--no-transaction', is_flag=True, help='Run statements outside a transaction')
@click.option('--actor-type', type=click.Choice(['user', 'system']), default='user', help='Actor type')
@click.option('--max-wait-time', type=float, help='Seconds to wait for the job')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.pass_context
def execute(ctx, branch_id, workspace_id, statements, sql_file, no_transaction, actor_type, max_wait_time, as_json):
    """Execute statements and print their results"""

    sql = list(statements)
    if sql_file:
        sql.extend(_split_statements(sql_file.read()))
    if not sql:
        raise click.UsageError("Provide at least one statement with --sql or --file")

    async def _execute(client: Client):
        results = await client.execute_query(
            branch_id,
            workspace_id,
            sql,
            transactional=not no_transaction,
            actor_type=actor_type,
            max_wait_time=max_wait_time
        )

        if as_json:
            _echo_json([r.to_dict() for r in results])
            return

        for index, result in enumerate(results):
            if index:
                click.echo()
            _display_result_table(result)

    _run(ctx, _execute)


@cli.command('submit')
@click.argument('branch_id')
@click.argument('workspace_id')
@click.option('--sql', '-s', 'statements', multiple=True, required=True, help='SQL statement (repeatable)')
@click.option('--no-transaction', is_flag=True, help='Run statements outside a transaction')
@click.option('--actor-type', type=click.Choice(['user', 'system']), default='user', help='Actor type')
@click.pass_context
def submit(ctx, branch_id, workspace_id, statements, no_transaction, actor_type):
    """Submit statements without waiting and print the job ID"""

    async def _submit(client: Client):
        job_id = await client.submit_job(
            branch_id,
            workspace_id,
            list(statements),
            transactional=not no_transaction,
            actor_type=actor_type
        )
        click.echo(job_id)

    _run(ctx, _submit)


@cli.command('status')
@click.argument('job_id')
@click.option('--json', 'as_json', is_flag=True, help='Print status as JSON')
@click.pass_context
def status(ctx, job_id, as_json):
    """Show job status and statements"""

    async def _status(client: Client):
        job_status = await client.get_job_status(job_id)
        if as_json:
            _echo_json(job_status.to_dict())
        else:
            _display_job_details(job_status, ctx.obj['verbose'])

    _run(ctx, _status)


@cli.command('wait')
@click.argument('job_id')
@click.option('--max-wait-time', type=float, help='Seconds to wait for the job')
@click.option('--json', 'as_json', is_flag=True, help='Print final status as JSON')
@click.pass_context
def wait(ctx, job_id, max_wait_time, as_json):
    """Wait for a job to finish"""

    async def _wait(client: Client):
        with LoggerContext(ctx.obj['logger'], job_id=job_id):
            job_status = await client.wait_for_job(job_id, max_wait_time=max_wait_time)

        if as_json:
            _echo_json(job_status.to_dict())
        else:
            _display_job_details(job_status, ctx.obj['verbose'])

    _run(ctx, _wait)


@cli.command('results')
@click.argument('job_id')
@click.argument('statement_id')
@click.option('--offset', type=int, default=0, help='Row offset')
@click.option('--page-size', type=int, default=500, help='Rows per page')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.pass_context
def results(ctx, job_id, statement_id, offset, page_size, as_json):
    """Show one page of statement results"""

    async def _results(client: Client):
        result = await client.get_job_results(job_id, statement_id, offset=offset, page_size=page_size)
        if as_json:
            _echo_json(result.to_dict())
        else:
            _display_result_table(result)

    _run(ctx, _results)


@cli.command('stream')
@click.argument('job_id')
@click.argument('statement_id')
@click.option('--limit', type=int, help='Stop after this many records')
@click.pass_context
def stream(ctx, job_id, statement_id, limit):
    """Stream statement results as newline-delimited JSON"""

    async def _stream(client: Client):
        async with client.stream_results(job_id, statement_id) as records:
            count = 0
            async for record in records:
                if limit is not None and count >= limit:
                    break
                click.echo(json.dumps(record, ensure_ascii=False))
                count += 1

    _run(ctx, _stream)


@cli.command('cancel')
@click.argument('job_id')
@click.option('--reason', help='Cancellation reason')
@click.pass_context
def cancel(ctx, job_id, reason):
    """Cancel a running job"""

    async def _cancel(client: Client):
        canceled_id = await client.cancel_job(job_id, reason)
        click.echo(f"Job {canceled_id} cancellation requested")

    _run(ctx, _cancel)


@cli.command('history')
@click.argument('branch_id')
@click.argument('workspace_id')
@click.option('--after-id', help='Show statements after this statement ID')
@click.option('--page-size', type=int, default=500, help='Statements per page')
@click.option('--json', 'as_json', is_flag=True, help='Print history as JSON')
@click.pass_context
def history(ctx, branch_id, workspace_id, after_id, page_size, as_json):
    """Show query history of a workspace"""

    async def _history(client: Client):
        query_history = await client.get_query_history(
            branch_id,
            workspace_id,
            after_id=after_id,
            page_size=page_size
        )
        if as_json:
            _echo_json(query_history.to_dict())
        else:
            _display_history_table(query_history, ctx.obj['verbose'])

    _run(ctx, _history)


# Helper Functions
def _build_client(ctx) -> Client:
    """
    Create a client from the config file, environment and CLI options.

    Applications embedding the CLI can route its requests through their own
    httpx transport, for example one with a proxy, by invoking it as
    ``cli.main(args, obj={"transport": transport})``.
    """
    config = ClientConfig.load(path=ctx.obj['config_file'], **ctx.obj['overrides'])
    return Client.from_config(config, transport=ctx.obj.get('transport'))


def _run(ctx, command: Callable[[Client], Awaitable[None]]):
    """Run a command coroutine with a client, exiting with status 1 on errors"""

    async def _main():
        async with _build_client(ctx) as client:
            await command(client)

    try:
        asyncio.run(_main())
    except ConfigurationError as e:
        click.echo(f"Error: {str(e)}", err=True)
        sys.exit(1)
    except JobError as e:
        click.echo(f"Error: job {e.job_id} failed: {e.message}", err=True)
        for failed in e.failed_statements:
            click.echo(f"  Statement {failed.id}: {failed.error or 'no error message'}", err=True)
        sys.exit(1)
    except QueryServiceError as e:
        click.echo(f"Error: {e.message}", err=True)
        if ctx.obj['verbose']:
            click.echo(json.dumps(e.to_dict(), indent=2, default=str), err=True)
        sys.exit(1)


def _split_statements(text: str) -> List[str]:
    return [part.strip() for part in text.split(';') if part.strip()]


def _echo_json(data: Any):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _display_job_details(job_status: JobStatus, verbose: bool):
    """Display detailed job information"""
    click.echo(f"Job ID: {job_status.query_job_id}")
    click.echo(f"Status: {job_status.status.value}")
    click.echo(f"Actor: {job_status.actor_type.value}")
    click.echo(f"Created: {job_status.created_at or 'Unknown'}")
    click.echo(f"Changed: {job_status.changed_at or 'Unknown'}")

    if job_status.canceled_at:
        click.echo(f"Canceled: {job_status.canceled_at} ({job_status.cancellation_reason or 'no reason'})")

    if not job_status.statements:
        return

    click.echo()
    click.echo(f"{'Statement ID':<38} {'Status':<12} {'Rows':<8}")
    click.echo("-" * 60)
    for statement in job_status.statements:
        rows = statement.number_of_rows if statement.number_of_rows is not None else "N/A"
        click.echo(f"{statement.id:<38} {statement.status.value:<12} {rows!s:<8}")
        if statement.error:
            click.echo(f"  Error: {statement.error}")
        if verbose:
            click.echo(f"  Query: {statement.query}")


def _display_result_table(result: QueryResult):
    """Display query results in table format"""
    if result.message:
        click.echo(result.message)

    if not result.columns:
        if result.rows_affected is not None:
            click.echo(f"Rows affected: {result.rows_affected}")
        return

    rows = [["NULL" if value is None else str(value) for value in row] for row in result.data]
    widths = [len(name) for name in result.column_names]
    for row in rows:
        for i, value in enumerate(row[:len(widths)]):
            widths[i] = max(widths[i], len(value))

    click.echo(" | ".join(name.ljust(widths[i]) for i, name in enumerate(result.column_names)))
    click.echo("-+-".join("-" * width for width in widths))
    for row in rows:
        click.echo(" | ".join(value.ljust(widths[i]) for i, value in enumerate(row[:len(widths)])))

    total = result.number_of_rows if result.number_of_rows is not None else len(rows)
    click.echo(f"({len(rows)} of {total} rows)")


def _display_history_table(query_history: QueryHistory, verbose: bool):
    """Display query history in table format"""
    if not query_history.statements:
        click.echo("No statements found")
        return

    if verbose:
        click.echo(f"{'Statement ID':<38} {'Job ID':<38} {'Status':<12} {'Warehouse':<12} {'Created':<20}")
        click.echo("-" * 124)
    else:
        click.echo(f"{'Statement ID':<38} {'Status':<12} {'Query':<40}")
        click.echo("-" * 92)

    for statement in query_history.statements:
        if verbose:
            created = statement.created_at[:19] if statement.created_at else 'Unknown'
            click.echo(f"{statement.id:<38} {statement.query_job_id or 'N/A':<38} "
                       f"{statement.status.value:<12} {statement.warehouse or 'N/A':<12} {created:<20}")
        else:
            query = " ".join(statement.query.split())
            click.echo(f"{statement.id:<38} {statement.status.value:<12} {query[:40]:<40}")


def main():
    """Main CLI entry point"""
    cli()


if __name__ == '__main__':
    main()
