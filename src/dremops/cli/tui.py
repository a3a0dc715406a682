"""Terminal UI utilities for picking catalog items."""

from __future__ import annotations

import questionary

from dremops.cli.common.output import node_kind_label
from dremops.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from dremops.core.nodes import CatalogNode

_MAX_NODE_NAME_WIDTH = 72


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _node_choice_title(node: CatalogNode, *, name_width: int) -> str:
    """Format one node choice as `<name>  [<kind>]` with aligned kind column."""
    short_name = _truncate(node.name, _MAX_NODE_NAME_WIDTH)
    return f"{short_name.ljust(name_width)}  [{node_kind_label(node)}]"


async def select_nodes(nodes: list[CatalogNode], message: str = "Select items:") -> list[CatalogNode]:
    """Display a checkbox prompt to select catalog nodes.

    Uses the async prompt variant because it runs inside the event loop.

    Args:
        nodes: Catalog nodes to choose from.
        message: Prompt title.

    Returns:
        A list of selected nodes, or an empty list if none selected.
    """
    if not nodes:
        return []

    shown_names = [_truncate(n.name, _MAX_NODE_NAME_WIDTH) for n in nodes]
    name_width = max((len(name) for name in shown_names), default=0)

    choices = [
        questionary.Choice(
            title=_node_choice_title(node, name_width=name_width),
            value=node,
        )
        for node in nodes
    ]

    picked = await questionary.checkbox(
        message,
        choices=choices,
        style=QUESTIONARY_STYLE_SELECT,
    ).ask_async()
    return list(picked or [])
