"""Progress display for running query jobs."""

from __future__ import annotations

import asyncio

from rich.console import Console
from rich.live import Live
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from dremops.core.queries import JobState, QueryJob, QueryJobExecutor

console = Console(stderr=True)
_MAX_SQL_LABEL_WIDTH = 56
_REFRESH_SECONDS = 0.1


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _display_sql_label(sql: str) -> str:
    """Collapse whitespace and truncate a statement for the progress row."""
    return _truncate(" ".join(sql.split()), _MAX_SQL_LABEL_WIDTH)


def _style_for(state: JobState) -> str:
    if state == JobState.SUCCEEDED:
        return "green"
    if state in (JobState.FAILED, JobState.CANCELED, JobState.TIMED_OUT):
        return "red"
    if state in (JobState.SUBMITTED, JobState.POLLING):
        return "yellow"
    return "dim"


def _status_text(job: QueryJob | None) -> str:
    if job is None:
        return JobState.SUBMITTED.value
    if job.state == JobState.POLLING and job.remote_state:
        return f"{job.state.value} ({job.remote_state})"
    return job.state.value


async def run_query_with_progress(executor: QueryJobExecutor, sql: str) -> QueryJob:
    """
    Run one query and show a spinner row until it reaches a terminal state:
      - the statement (truncated), the job id once known
      - the local state plus the last remote state
      - number of status checks and elapsed time

    Returns the final QueryJob.
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.fields[sql]}[/]"),
        TextColumn("job={task.fields[job_id]}"),
        TextColumn(
            "status=[{task.fields[style]}]{task.fields[status]}[/{task.fields[style]}]"
        ),
        TextColumn("checks={task.fields[checks]}"),
        TimeElapsedColumn(),
        console=console,
    )
    task_id = progress.add_task(
        "",
        total=1,
        sql=_display_sql_label(sql),
        job_id="-",
        status=JobState.SUBMITTED.value,
        style=_style_for(JobState.SUBMITTED),
        checks=0,
    )

    def _refresh(job: QueryJob | None, *, done: bool = False) -> None:
        state = job.state if job else JobState.SUBMITTED
        progress.update(
            task_id,
            job_id=(job.job_id if job and job.job_id else "-"),
            status=_status_text(job),
            style=_style_for(state),
            checks=job.poll_attempts if job else 0,
            completed=1 if done else 0,
        )

    with Live(progress, console=console, refresh_per_second=10, transient=True):
        runner = asyncio.create_task(executor.run(sql))
        while not runner.done():
            _refresh(executor.current)
            await asyncio.wait({runner}, timeout=_REFRESH_SECONDS)
        job = runner.result()
        _refresh(job, done=True)

    return job
