"""Commands for running SQL query jobs."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from dremops.cli.common.context import AppContext, build_app_context, open_workbench
from dremops.cli.common.exits import die, exit_from_exc
from dremops.cli.common.options import (
    CsvOpt,
    EndpointOpt,
    InsecureOpt,
    LimitOpt,
    PatOpt,
    SqlFileOpt,
    VerboseOpt,
)
from dremops.cli.common.output import out
from dremops.cli.common.progress import run_query_with_progress
from dremops.core.queries import JobState, rows_to_csv

sql_app = typer.Typer(
    help="Run SQL against Dremio.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@sql_app.callback()
def _init(
    ctx: typer.Context,
    endpoint: str | None = EndpointOpt,
    pat: str | None = PatOpt,
    insecure: bool = InsecureOpt,
    verbose: bool = VerboseOpt,
):
    """Initialize SQL context."""
    ctx.obj = build_app_context(
        endpoint=endpoint, pat=pat, insecure=insecure, verbose=verbose
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _read_sql(sql: str | None, sql_file: Path | None) -> str:
    if sql and sql_file:
        raise typer.BadParameter("Pass either a statement or --file, not both")
    if sql_file is not None:
        try:
            sql = sql_file.read_text(encoding="utf-8")
        except OSError as exc:
            exit_from_exc(exc, message=f"Could not read {sql_file}: {exc}", code=2)
    if not sql or not sql.strip():
        die("SQL query is required", code=2)
    return sql


async def _run(appctx: AppContext, sql: str, csv_path: Path | None) -> None:
    async with open_workbench(appctx) as wb:
        job = await run_query_with_progress(wb.executor, sql)

    out.job_summary(job)
    if job.state != JobState.SUCCEEDED:
        raise typer.Exit(1)

    if csv_path is not None:
        try:
            csv_path.write_text(rows_to_csv(job), encoding="utf-8")
        except OSError as exc:
            exit_from_exc(exc, message=f"Could not write {csv_path}: {exc}", code=1)
        out.success(f"Wrote {len(job.rows or ())} row(s) to {csv_path}")
        return

    out.results_table(job)


@sql_app.command("run")
def run(
    ctx: typer.Context,
    sql: str | None = typer.Argument(None, help="SQL statement to run"),
    sql_file: Path | None = SqlFileOpt,
    csv_path: Path | None = CsvOpt,
    limit: int | None = LimitOpt,
):
    """Submit a statement, wait for the job and show the first result page."""
    appctx: AppContext = ctx.obj
    statement = _read_sql(sql, sql_file)
    if limit:
        appctx = AppContext(settings=appctx.settings.model_copy(update={"result_row_limit": limit}))
    asyncio.run(_run(appctx, statement, csv_path))
