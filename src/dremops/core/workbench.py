"""Session-scoped stores for catalog browsing, selection and queries.

A Workbench is created when a view mounts (one CLI invocation) and closed
on teardown. It owns exactly one tree cache, one selection aggregator and
one query executor, and keeps the latest data context in sync with the
selection.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

import httpx

from dremops.core.adapters.dremiocatalog import DremioCatalogAdapter
from dremops.core.adapters.dremiojobs import DremioJobsAdapter
from dremops.core.annotations import TableAnnotation
from dremops.core.auth import get_client
from dremops.core.catalog import CatalogAdapter, CatalogTreeCache
from dremops.core.config import Settings
from dremops.core.context import DataContext, assemble, summarize
from dremops.core.queries import JobsAdapter, QueryJob, QueryJobExecutor
from dremops.core.schema import SchemaLoader
from dremops.core.selection import SelectedItem, SelectionAggregator

logger = logging.getLogger(__name__)


class Workbench:
    """Owns the stores of one session and the latest data context."""

    def __init__(
        self,
        catalog_adapter: CatalogAdapter,
        jobs_adapter: JobsAdapter,
        settings: Settings,
        *,
        annotations: Mapping[str, TableAnnotation] | None = None,
        client: httpx.AsyncClient | None = None,
        on_context: Callable[[DataContext], None] | None = None,
        on_remove: Callable[[list[str]], None] | None = None,
        on_job: Callable[[QueryJob], None] | None = None,
    ) -> None:
        self.settings = settings
        self.annotations = annotations
        self._client = client
        self._on_context = on_context
        self._context = DataContext()

        self.schema = SchemaLoader(catalog_adapter)
        self.tree = CatalogTreeCache(catalog_adapter, self.schema)
        self.selection = SelectionAggregator(
            self.tree,
            self.schema,
            container_depth=settings.container_depth,
            on_change=self._recompute,
            on_remove=on_remove,
        )
        self.executor = QueryJobExecutor(
            jobs_adapter,
            poll_interval=settings.poll_interval,
            max_poll_attempts=settings.max_poll_attempts,
            row_limit=settings.result_row_limit,
            on_update=on_job,
        )

    @classmethod
    def connect(cls, settings: Settings, **kwargs) -> "Workbench":
        """Build a workbench talking to the configured Dremio endpoint."""
        client = get_client(settings)
        return cls(
            DremioCatalogAdapter(client),
            DremioJobsAdapter(client),
            settings,
            client=client,
            **kwargs,
        )

    @property
    def context(self) -> DataContext:
        """Latest data context derived from the selection."""
        return self._context

    def set_annotations(self, annotations: Mapping[str, TableAnnotation] | None) -> None:
        self.annotations = annotations
        self._recompute(self.selection.items)

    def _recompute(self, items: tuple[SelectedItem, ...]) -> None:
        self._context = assemble(items, self.annotations)
        logger.debug("Data context updated: %s", summarize(self._context))
        if self._on_context:
            self._on_context(self._context)

    async def aclose(self) -> None:
        self.selection.close()
        self.executor.close()
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "Workbench":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
