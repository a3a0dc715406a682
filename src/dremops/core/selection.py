"""Selection of catalog items used as data context.

Selecting an item updates the selection set immediately with a loading
marker; the columns (datasets) or child datasets (containers) are resolved
in a background task. Every resolution carries a token captured when the
item was inserted and is applied only while that token is still the current
one for the item's path. Deselecting, clearing or re-selecting an item
retires its token, so a slow fetch can never bring a removed item back.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from dremops.core.catalog import CatalogTreeCache
from dremops.core.nodes import CatalogNode, Field, NodeKind
from dremops.core.result import Err
from dremops.core.schema import SchemaLoader

logger = logging.getLogger(__name__)

SelectionListener = Callable[[tuple["SelectedItem", ...]], None]
RemovalListener = Callable[[list[str]], None]


@dataclass(frozen=True)
class ChildDataset:
    """A dataset found below a selected container."""

    path: str
    columns: tuple[Field, ...] = ()


@dataclass(frozen=True)
class SelectedItem:
    """
    One entry of the selection set, keyed by `path`.

    Datasets carry `columns`; containers carry `child_datasets`. The
    `*_loading` flags are set while the background resolution runs and the
    `*_loaded` flags once it finished, successfully or not.
    """

    id: str
    path: str
    kind: NodeKind
    container_kind: str | None = None
    dataset_kind: str | None = None
    columns: tuple[Field, ...] = ()
    columns_loaded: bool = False
    columns_loading: bool = False
    child_datasets: tuple[ChildDataset, ...] | None = None
    child_datasets_loaded: bool = False
    child_datasets_loading: bool = False

    @classmethod
    def pending(cls, node: CatalogNode) -> "SelectedItem":
        """Build the loading placeholder inserted on selection."""
        return cls(
            id=node.id,
            path=node.full_path,
            kind=node.kind,
            container_kind=node.container_kind,
            dataset_kind=node.dataset_kind,
            columns_loading=node.is_dataset,
            child_datasets=() if node.is_container else None,
            child_datasets_loading=node.is_container,
        )

    @property
    def is_loading(self) -> bool:
        return self.columns_loading or self.child_datasets_loading


class SelectionAggregator:
    """Owns the selection set and resolves selected items in the background."""

    def __init__(
        self,
        tree: CatalogTreeCache,
        schema: SchemaLoader | None = None,
        *,
        container_depth: int = 1,
        on_change: SelectionListener | None = None,
        on_remove: RemovalListener | None = None,
    ) -> None:
        self.tree = tree
        self.schema = schema or tree.schema
        self.container_depth = max(container_depth, 1)
        self._on_change = on_change
        self._on_remove = on_remove
        self._items: tuple[SelectedItem, ...] = ()
        self._tokens: dict[str, int] = {}
        self._token_seq = itertools.count(1)
        self._pending: set[asyncio.Task] = set()

    @property
    def items(self) -> tuple[SelectedItem, ...]:
        """Current selection snapshot, in selection order."""
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, path: str) -> SelectedItem | None:
        for item in self._items:
            if item.path == path:
                return item
        return None

    def is_selected(self, path: str) -> bool:
        return path in self._tokens

    def _publish(self, items: tuple[SelectedItem, ...]) -> None:
        self._items = items
        if self._on_change:
            self._on_change(items)

    def _signal_removed(self, paths: list[str]) -> None:
        if paths and self._on_remove:
            self._on_remove(paths)

    def toggle(self, node: CatalogNode) -> asyncio.Task | None:
        """
        Select or deselect a catalog node.

        Deselection is synchronous and returns None. Selection inserts a
        loading placeholder and returns the resolution task. Must be called
        from a running event loop.

        Raises:
            ValueError: If the node is neither a container nor a dataset.
        """
        path = node.full_path
        if self.is_selected(path):
            self.remove(path)
            return None

        if node.kind not in (NodeKind.CONTAINER, NodeKind.DATASET):
            raise ValueError(f"Only containers and datasets can be selected: {path}")

        token = next(self._token_seq)
        self._tokens[path] = token
        self._publish(self._items + (SelectedItem.pending(node),))

        if node.is_dataset:
            coro = self._resolve_dataset(node, token)
        else:
            coro = self._resolve_container(node, token)
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def select_many(self, nodes: Iterable[CatalogNode]) -> list[asyncio.Task]:
        """Select every node that is not selected yet."""
        tasks = []
        for node in nodes:
            if self.is_selected(node.full_path):
                continue
            task = self.toggle(node)
            if task is not None:
                tasks.append(task)
        return tasks

    def remove(self, path: str) -> bool:
        """Deselect one path; returns False if it was not selected."""
        if self._tokens.pop(path, None) is None:
            return False
        self._publish(tuple(i for i in self._items if i.path != path))
        self._signal_removed([path])
        return True

    def clear(self) -> None:
        """Empty the selection; in-flight resolutions become no-ops."""
        removed = [i.path for i in self._items]
        self._tokens.clear()
        self._publish(())
        self._signal_removed(removed)

    async def wait_idle(self) -> None:
        """Wait until every pending resolution has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def close(self) -> None:
        """Cancel pending resolutions and empty the selection (view teardown)."""
        for task in list(self._pending):
            task.cancel()
        self._tokens.clear()
        if self._items:
            self._publish(())

    def _is_current(self, path: str, token: int) -> bool:
        return self._tokens.get(path) == token

    def _apply(
        self,
        path: str,
        token: int,
        update: Callable[[SelectedItem], SelectedItem],
    ) -> bool:
        # Re-read the live selection; the snapshot at dispatch time is stale.
        if not self._is_current(path, token):
            logger.debug("Discarding stale resolution for %s", path)
            return False
        self._publish(tuple(update(i) if i.path == path else i for i in self._items))
        return True

    async def _resolve_dataset(self, node: CatalogNode, token: int) -> None:
        columns = await self._dataset_columns(node)
        self._apply(
            node.full_path,
            token,
            lambda i: replace(i, columns=columns, columns_loaded=True, columns_loading=False),
        )

    async def _resolve_container(self, node: CatalogNode, token: int) -> None:
        datasets = await self._collect_datasets(
            node, depth=self.container_depth, path=node.full_path, token=token
        )
        self._apply(
            node.full_path,
            token,
            lambda i: replace(
                i,
                child_datasets=datasets,
                child_datasets_loaded=True,
                child_datasets_loading=False,
            ),
        )

    async def _dataset_columns(self, node: CatalogNode) -> tuple[Field, ...]:
        result = await self.schema.get_fields(node.id)
        if isinstance(result, Err):
            logger.warning(
                "Failed to load columns for %s: %s",
                node.full_path,
                result.error.describe(),
            )
            return ()
        return result.value

    async def _collect_datasets(
        self, node: CatalogNode, *, depth: int, path: str, token: int
    ) -> tuple[ChildDataset, ...]:
        children = await self.tree.resolve_children(node)
        if isinstance(children, Err):
            logger.warning(
                "Failed to load datasets in %s: %s",
                node.full_path,
                children.error.describe(),
            )
            return ()
        if not self._is_current(path, token):
            return ()

        datasets = [c for c in children.value if c.is_dataset]
        columns = await asyncio.gather(*(self._dataset_columns(d) for d in datasets))
        out = [ChildDataset(path=d.full_path, columns=c) for d, c in zip(datasets, columns)]

        if depth > 1:
            for sub in (c for c in children.value if c.is_container):
                out.extend(
                    await self._collect_datasets(sub, depth=depth - 1, path=path, token=token)
                )
        return tuple(out)
