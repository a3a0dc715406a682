"""Lazily-loaded catalog tree.

The tree is held as a tuple of frozen CatalogNode values. Every change is a
copy-on-write rewrite keyed by node id: only the nodes on the path to the
changed node are rebuilt, sibling branches are reused untouched. After each
rewrite an id index and a path index are rebuilt, so lookups never walk
the tree.

Remote failures are soft: a node whose fetch failed ends `LOADED` with no
children (or no fields) so one broken subtree never blocks navigation
elsewhere. The error is logged and handed back to the caller for display.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterator, Protocol

from dremops.core.nodes import CatalogNode, Field, LoadState, nodes_from_api
from dremops.core.result import Err, Ok, Result
from dremops.core.schema import SchemaLoader

logger = logging.getLogger(__name__)


class CatalogAdapter(Protocol):
    """Interface for the catalog calls used by the tree cache."""

    async def list_top(self) -> Result[list[dict[str, Any]]]:
        """Return the top-level catalog entries."""
        ...

    async def get_by_id(self, node_id: str) -> Result[dict[str, Any]]:
        """Return one entity including `children` or `fields`."""
        ...


def replace_node(
    nodes: tuple[CatalogNode, ...],
    node_id: str,
    update: Callable[[CatalogNode], CatalogNode],
) -> tuple[tuple[CatalogNode, ...], bool]:
    """
    Rewrite every node with `node_id` anywhere below `nodes`.

    Returns the new tuple and whether anything matched. When nothing matched
    the original tuple is returned as-is.
    """
    changed = False
    out: list[CatalogNode] = []
    for n in nodes:
        if n.id == node_id:
            out.append(update(n))
            changed = True
        elif n.children:
            children, hit = replace_node(n.children, node_id, update)
            if hit:
                out.append(replace(n, children=children))
                changed = True
            else:
                out.append(n)
        else:
            out.append(n)
    return (tuple(out) if changed else nodes), changed


def iter_nodes(nodes: tuple[CatalogNode, ...]) -> Iterator[CatalogNode]:
    """Depth-first walk over all materialized nodes."""
    for n in nodes:
        yield n
        if n.children:
            yield from iter_nodes(n.children)


class CatalogTreeCache:
    """Holds the catalog tree and fetches children/fields on demand."""

    def __init__(
        self,
        adapter: CatalogAdapter,
        schema_loader: SchemaLoader | None = None,
    ) -> None:
        self.adapter = adapter
        self.schema = schema_loader or SchemaLoader(adapter)
        self.top_loaded = False
        self._roots: tuple[CatalogNode, ...] = ()
        self._by_id: dict[str, CatalogNode] = {}
        self._by_path: dict[str, str] = {}
        # Containers whose last children fetch failed; their cached () is not trusted.
        self._failed: set[str] = set()

    @property
    def roots(self) -> tuple[CatalogNode, ...]:
        """Current top-level snapshot."""
        return self._roots

    def find(self, node_id: str) -> CatalogNode | None:
        """Return the current version of a node by id."""
        return self._by_id.get(node_id)

    def find_by_path(self, path: str) -> CatalogNode | None:
        """Return the current version of a node by its dotted path."""
        node_id = self._by_path.get(path)
        return self._by_id.get(node_id) if node_id is not None else None

    def _set_roots(self, roots: tuple[CatalogNode, ...]) -> None:
        self._roots = roots
        by_id: dict[str, CatalogNode] = {}
        by_path: dict[str, str] = {}
        for n in iter_nodes(roots):
            by_id[n.id] = n
            by_path[n.full_path] = n.id
        self._by_id = by_id
        self._by_path = by_path

    def _rewrite(self, node_id: str, update: Callable[[CatalogNode], CatalogNode]) -> bool:
        roots, changed = replace_node(self._roots, node_id, update)
        if changed:
            self._set_roots(roots)
        else:
            logger.debug("Node %s is no longer in the tree; update dropped", node_id)
        return changed

    async def list_top(self) -> Result[tuple[CatalogNode, ...]]:
        """Fetch the root containers and replace the whole top-level list."""
        result = await self.adapter.list_top()
        if isinstance(result, Err):
            logger.warning("Failed to list catalog: %s", result.error.describe())
            return result
        roots = nodes_from_api(result.value)
        self._set_roots(roots)
        self.top_loaded = True
        return Ok(roots)

    async def expand(self, node: CatalogNode) -> Result[tuple[CatalogNode, ...]]:
        """
        Load the children of a container.

        A node that is already loaded or loading is left alone and its
        current children are returned without any remote call. Dataset nodes
        are delegated to `load_fields` and yield no children.
        """
        if not node.is_container:
            if node.is_dataset:
                await self.load_fields(node)
            return Ok(())

        current = self.find(node.id) or node
        if current.load_state != LoadState.NOT_LOADED:
            return Ok(current.children or ())

        self._rewrite(node.id, lambda n: replace(n, load_state=LoadState.LOADING))
        result = await self.adapter.get_by_id(node.id)

        if isinstance(result, Err):
            logger.warning(
                "Failed to load children of %s: %s",
                current.full_path,
                result.error.describe(),
            )
            children: tuple[CatalogNode, ...] = ()
            self._failed.add(node.id)
        else:
            children = nodes_from_api(result.value.get("children"))
            self._failed.discard(node.id)

        self._rewrite(
            node.id,
            lambda n: replace(n, children=children, load_state=LoadState.LOADED),
        )
        if isinstance(result, Err):
            return result
        return Ok(children)

    async def load_fields(self, node: CatalogNode) -> tuple[Field, ...]:
        """Fetch and cache the fields of a dataset (empty on error)."""
        current = self.find(node.id) or node
        if current.load_state == LoadState.LOADED:
            return current.fields or ()
        if current.load_state == LoadState.LOADING:
            return ()

        self._rewrite(node.id, lambda n: replace(n, load_state=LoadState.LOADING))
        result = await self.schema.get_fields(node.id)

        fields: tuple[Field, ...] = ()
        if isinstance(result, Err):
            logger.warning(
                "Failed to load fields of %s: %s",
                current.full_path,
                result.error.describe(),
            )
        else:
            fields = result.value

        self._rewrite(
            node.id, lambda n: replace(n, fields=fields, load_state=LoadState.LOADED)
        )
        return fields

    async def resolve_children(self, node: CatalogNode) -> Result[tuple[CatalogNode, ...]]:
        """
        Return the children of a container for selection fan-out.

        Uses the cached children when the node is loaded; otherwise fetches
        them and merges the result into the tree. A node whose last expand
        failed is fetched again and its empty children are replaced.
        Failures are returned without touching the tree, leaving that
        decision to `expand`.
        """
        current = self.find(node.id) or node
        if (
            current.load_state == LoadState.LOADED
            and current.children is not None
            and node.id not in self._failed
        ):
            return Ok(current.children)

        result = await self.adapter.get_by_id(node.id)
        if isinstance(result, Err):
            return result

        children = nodes_from_api(result.value.get("children"))
        retried = node.id in self._failed
        self._failed.discard(node.id)
        self._rewrite(
            node.id,
            lambda n: n
            if n.load_state == LoadState.LOADED and not retried
            else replace(n, children=children, load_state=LoadState.LOADED),
        )
        return Ok(children)

    async def locate(self, path: str) -> Result[CatalogNode | None]:
        """
        Find a node by dotted path, expanding each ancestor on the way.

        Names containing dots are handled by trying progressively longer
        prefixes. Returns Ok(None) when nothing matches.
        """
        if not self.top_loaded:
            listed = await self.list_top()
            if isinstance(listed, Err):
                return listed

        segments = path.strip().split(".")
        for i in range(1, len(segments) + 1):
            node = self.find_by_path(".".join(segments[:i]))
            if node is None:
                continue
            if i == len(segments):
                return Ok(node)
            if node.is_container and node.load_state == LoadState.NOT_LOADED:
                expanded = await self.expand(node)
                if isinstance(expanded, Err):
                    return expanded
        return Ok(None)
