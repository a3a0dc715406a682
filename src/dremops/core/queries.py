"""SQL query job execution and monitoring.

This module drives one query job through its lifecycle: submit the SQL,
poll the remote job at a fixed interval until it leaves the running states,
then fetch the first page of results or the error detail. Polling is
bounded by a fixed number of status checks.

Only the most recent submission is "live". Each submission bumps a
generation counter; an older polling loop notices at its next suspension
point that it has been superseded, stops issuing calls, and never publishes
its outcome. The remote job itself is not canceled in that case, nor on
timeout.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Protocol

from dremops.core.nodes import FieldType, format_field_type
from dremops.core.result import Err, ErrorKind, Result

logger = logging.getLogger(__name__)

_ACTIVE_REMOTE_STATES = {"RUNNING", "STARTING", "ENQUEUED"}


class JobState(str, Enum):
    """
    Local state of a query job.

    Values:
        SUBMITTED: The SQL is being sent; no job id yet.
        POLLING: The remote job is running and being polled.
        SUCCEEDED: The job completed and the first result page was fetched.
        FAILED: Submission, polling or result retrieval failed, or the
                remote job failed.
        CANCELED: The remote job was canceled.
        TIMED_OUT: The job was still running after the poll ceiling.
    """

    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    TIMED_OUT = "TIMED_OUT"


TERMINAL_STATES = frozenset(
    {JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELED, JobState.TIMED_OUT}
)


@dataclass(frozen=True)
class ResultColumn:
    name: str
    type: str


@dataclass(frozen=True)
class QueryJob:
    """
    Snapshot of one query job.

    Attributes:
        sql: Submitted statement.
        state: Local lifecycle state.
        job_id: Remote job id, once submitted.
        poll_attempts: Number of status checks issued so far.
        remote_state: Last job state reported by the service.
        schema: Result columns (succeeded jobs only).
        rows: First page of result rows (succeeded jobs only).
        row_count: Total row count reported by the service.
        error_detail: Human-readable reason for FAILED/CANCELED/TIMED_OUT.
        error_kind: Failure class when a remote call failed or the poll
                    ceiling was reached; None for remote FAILED/CANCELED.
    """

    sql: str
    state: JobState = JobState.SUBMITTED
    job_id: str | None = None
    poll_attempts: int = 0
    remote_state: str | None = None
    schema: tuple[ResultColumn, ...] | None = None
    rows: tuple[dict[str, Any], ...] | None = None
    row_count: int | None = None
    error_detail: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class JobsAdapter(Protocol):
    """Interface for submitting SQL and querying job status and results."""

    async def submit_sql(self, sql: str) -> Result[str]:
        """Submit SQL and return the job id."""
        ...

    async def get_job_state(self, job_id: str) -> Result[str]:
        """Return the remote job state."""
        ...

    async def get_job(self, job_id: str) -> Result[dict[str, Any]]:
        """Return the job document (used for `errorMessage`)."""
        ...

    async def get_job_results(
        self, job_id: str, *, offset: int = 0, limit: int = 500
    ) -> Result[dict[str, Any]]:
        """Return one page of results."""
        ...


class QueryJobExecutor:
    """Runs query jobs; only the latest submission is published."""

    def __init__(
        self,
        adapter: JobsAdapter,
        *,
        poll_interval: float = 1.0,
        max_poll_attempts: int = 60,
        row_limit: int = 500,
        on_update: Callable[[QueryJob], None] | None = None,
    ) -> None:
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be >= 1")
        if row_limit < 1:
            raise ValueError("row_limit must be >= 1")
        self.adapter = adapter
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.row_limit = row_limit
        self._on_update = on_update
        self._generation = 0
        self._current: QueryJob | None = None

    @property
    def current(self) -> QueryJob | None:
        """The job of the latest submission, as last published."""
        return self._current

    def close(self) -> None:
        """Invalidate any running loop and forget the current job."""
        self._generation += 1
        self._current = None

    def _is_live(self, generation: int) -> bool:
        return generation == self._generation

    def _publish(self, job: QueryJob, generation: int) -> QueryJob:
        if self._is_live(generation):
            self._current = job
            if self._on_update:
                self._on_update(job)
        return job

    async def run(self, sql: str) -> QueryJob:
        """
        Submit `sql` and follow the job to a terminal state.

        Supersedes any job still running on this executor. When this run is
        itself superseded it returns its last local snapshot, which is never
        published.

        Raises:
            ValueError: If `sql` is blank.
        """
        sql = sql.strip()
        if not sql:
            raise ValueError("SQL query is required")

        self._generation += 1
        gen = self._generation
        job = self._publish(QueryJob(sql=sql), gen)

        submitted = await self.adapter.submit_sql(sql)
        if isinstance(submitted, Err):
            logger.warning("Query submission failed: %s", submitted.error.describe())
            return self._publish(
                replace(
                    job,
                    state=JobState.FAILED,
                    error_detail=submitted.error.describe(),
                    error_kind=submitted.error.kind,
                ),
                gen,
            )
        if not self._is_live(gen):
            return replace(job, job_id=submitted.value)

        job = self._publish(
            replace(job, job_id=submitted.value, state=JobState.POLLING), gen
        )
        logger.info("Submitted query job %s", job.job_id)
        return await self._poll(job, gen)

    async def _poll(self, job: QueryJob, gen: int) -> QueryJob:
        remote_state = "RUNNING"
        while remote_state in _ACTIVE_REMOTE_STATES:
            if job.poll_attempts >= self.max_poll_attempts:
                logger.warning(
                    "Query job %s still %s after %d status checks",
                    job.job_id,
                    remote_state,
                    job.poll_attempts,
                )
                return self._publish(
                    replace(
                        job,
                        state=JobState.TIMED_OUT,
                        error_kind=ErrorKind.TIMEOUT,
                        error_detail=(
                            "Query timeout - job still running after "
                            f"{job.poll_attempts} status checks"
                        ),
                    ),
                    gen,
                )

            await asyncio.sleep(self.poll_interval)
            if not self._is_live(gen):
                return job

            status = await self.adapter.get_job_state(job.job_id)
            if not self._is_live(gen):
                return replace(job, poll_attempts=job.poll_attempts + 1)
            job = replace(job, poll_attempts=job.poll_attempts + 1)

            if isinstance(status, Err):
                return self._publish(
                    replace(
                        job,
                        state=JobState.FAILED,
                        error_detail=f"Failed to get job status: {status.error.describe()}",
                        error_kind=status.error.kind,
                    ),
                    gen,
                )
            remote_state = status.value
            job = self._publish(replace(job, remote_state=remote_state), gen)

        if remote_state == "COMPLETED":
            return await self._fetch_results(job, gen)
        if remote_state in ("FAILED", "CANCELED"):
            return await self._fetch_error(job, gen, remote_state)
        return self._publish(
            replace(
                job,
                state=JobState.FAILED,
                error_detail=f"Unexpected job state: {remote_state}",
                error_kind=ErrorKind.PROTOCOL,
            ),
            gen,
        )

    async def _fetch_results(self, job: QueryJob, gen: int) -> QueryJob:
        page = await self.adapter.get_job_results(
            job.job_id, offset=0, limit=self.row_limit
        )
        if not self._is_live(gen):
            return job
        if isinstance(page, Err):
            return self._publish(
                replace(
                    job,
                    state=JobState.FAILED,
                    error_detail=f"Failed to get results: {page.error.describe()}",
                    error_kind=page.error.kind,
                ),
                gen,
            )

        data = page.value
        rows = tuple(r for r in data.get("rows") or () if isinstance(r, dict))
        row_count = data.get("rowCount")
        return self._publish(
            replace(
                job,
                state=JobState.SUCCEEDED,
                schema=_schema_from_api(data.get("schema")),
                rows=rows,
                row_count=int(row_count) if row_count is not None else len(rows),
            ),
            gen,
        )

    async def _fetch_error(self, job: QueryJob, gen: int, remote_state: str) -> QueryJob:
        details = await self.adapter.get_job(job.job_id)
        if not self._is_live(gen):
            return job
        if isinstance(details, Err):
            message = details.error.describe()
        else:
            message = details.value.get("errorMessage") or "Unknown error"

        state = JobState.CANCELED if remote_state == "CANCELED" else JobState.FAILED
        return self._publish(
            replace(
                job,
                state=state,
                error_detail=f"Query {remote_state.lower()}: {message}",
            ),
            gen,
        )


def _schema_from_api(items: Any) -> tuple[ResultColumn, ...]:
    out: list[ResultColumn] = []
    for item in items or ():
        if not isinstance(item, dict) or not item.get("name"):
            continue
        t = item.get("type") or {}
        out.append(
            ResultColumn(
                name=str(item["name"]),
                type=format_field_type(
                    FieldType(
                        name=str(t.get("name", "")),
                        precision=t.get("precision"),
                        scale=t.get("scale"),
                    )
                ),
            )
        )
    return tuple(out)


def rows_to_csv(job: QueryJob) -> str:
    """Render a succeeded job's result page as CSV (header + rows)."""
    if job.state != JobState.SUCCEEDED or job.schema is None:
        raise ValueError("Only succeeded jobs have results to export")
    names = [c.name for c in job.schema]
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(names)
    for row in job.rows or ():
        writer.writerow(["" if row.get(n) is None else row.get(n) for n in names])
    return buf.getvalue()
