"""Dremio v3 SQL and job API adapter (submit, status, results)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from dremops.core.adapters.rest import DremioRestAdapter
from dremops.core.result import Err, ErrorKind, Ok, RemoteError, Result


class DremioJobsAdapter(DremioRestAdapter):
    """Adapter around the Dremio v3 SQL and job APIs."""

    async def submit_sql(self, sql: str) -> Result[str]:
        """Submit a SQL statement and return the job id."""
        result = await self._post_json("/api/v3/sql", {"sql": sql})
        if isinstance(result, Err):
            return result
        job_id = result.value.get("id") if isinstance(result.value, dict) else None
        if not job_id:
            return Err(
                RemoteError(
                    kind=ErrorKind.PROTOCOL,
                    message="Dremio did not return a job id",
                )
            )
        return Ok(str(job_id))

    async def get_job(self, job_id: str) -> Result[dict[str, Any]]:
        """Return the raw job status document (`jobState`, `errorMessage`, ...)."""
        result = await self._get_json(f"/api/v3/job/{quote(job_id, safe='')}")
        if isinstance(result, Err):
            return result
        if not isinstance(result.value, dict):
            return Err(
                RemoteError(kind=ErrorKind.PROTOCOL, message="Unexpected job payload")
            )
        return result

    async def get_job_state(self, job_id: str) -> Result[str]:
        """Return the remote job state (ENQUEUED, RUNNING, COMPLETED, ...)."""
        result = await self.get_job(job_id)
        if isinstance(result, Err):
            return result
        return Ok(str(result.value.get("jobState") or "UNKNOWN"))

    async def get_job_results(
        self, job_id: str, *, offset: int = 0, limit: int = 500
    ) -> Result[dict[str, Any]]:
        """Return one page of results: `rowCount`, `schema`, `rows`."""
        result = await self._get_json(
            f"/api/v3/job/{quote(job_id, safe='')}/results",
            offset=offset,
            limit=limit,
        )
        if isinstance(result, Err):
            return result
        if not isinstance(result.value, dict):
            return Err(
                RemoteError(kind=ErrorKind.PROTOCOL, message="Unexpected results payload")
            )
        return result
