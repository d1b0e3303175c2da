"""
Legacy story format - Import-only support for the original simple files.

A legacy document is {"title": ..., "story": [node, ...]} where each node
is {"id"?, "name", "text"?, "branches"?: {branch: target_id},
"logic"?: [node, ...]}. Branches become output pins wired to the single
"input" pin of their target; logic arrays become subgraphs.
"""

import logging
from typing import Any, Optional

from graphnest.core.config import GridConfig, LegacyConfig
from graphnest.core.graph_store import GraphStore
from graphnest.core.ids import IdGenerator, generate_handle, graph_id_for
from graphnest.core.model import Endpoint, Graph, Node, Pin, SchemaValidationError
from graphnest.core.types import DEFAULT_COLOR, NodeKind, resolve_color

logger = logging.getLogger(__name__)

LEGACY_INPUT_PIN = "input"


class _LegacyImporter:
    """Builds an isolated store from a legacy story document."""

    def __init__(self, grid: GridConfig, legacy: LegacyConfig):
        self._grid = grid
        self._legacy = legacy
        self._store: Optional[GraphStore] = None

    @property
    def column_pitch(self) -> int:
        return self._grid.node_min_width + self._legacy.column_gutter

    @property
    def row_pitch(self) -> int:
        return self._grid.node_min_height + self._legacy.row_gutter

    def run(self, data: dict[str, Any]) -> GraphStore:
        title = data.get("title") or "Loaded Graph"
        self._store = GraphStore.with_root(str(title), ids=IdGenerator())
        self._convert(data.get("story"), self._store.root, "story")
        return self._store

    def _runtime_ids(self, story: list[dict[str, Any]]) -> list[str]:
        """Provided ids where usable, otherwise handles derived from names."""
        used: set[str] = set()
        runtime_ids = []
        for item in story:
            runtime_id = item.get("id")
            runtime_id = str(runtime_id) if runtime_id not in (None, "") else None
            if runtime_id is None or runtime_id in used:
                runtime_id = generate_handle(str(item.get("name") or ""), used)
            used.add(runtime_id)
            runtime_ids.append(runtime_id)
        return runtime_ids

    def _convert(self, story: Any, graph: Graph, path: str) -> None:
        if not isinstance(story, list):
            raise SchemaValidationError("Legacy story must be an array", path=path)
        for i, item in enumerate(story):
            if not isinstance(item, dict):
                raise SchemaValidationError("Legacy node must be an object", path=f"{path}[{i}]")

        store = self._store
        runtime_ids = self._runtime_ids(story)
        node_ids: dict[str, str] = {}

        for position, (item, runtime_id) in enumerate(zip(story, runtime_ids)):
            col = position % self._legacy.max_columns
            row = position // self._legacy.max_columns
            node_id = store.ids.next_node_id()
            node_ids[runtime_id] = node_id

            name = str(item.get("name") or "")
            branches = item.get("branches")
            node = Node(
                id=node_id,
                title=name,
                text=str(item.get("text") or ""),
                x=self._legacy.origin_x + col * self.column_pitch,
                y=self._legacy.origin_y + row * self.row_pitch,
                width=self._grid.node_min_width,
                height=self._grid.node_min_height,
                color=DEFAULT_COLOR,
                kind=NodeKind.DEFAULT,
                inputs=[Pin(LEGACY_INPUT_PIN, resolve_color(DEFAULT_COLOR))],
                outputs=[
                    Pin(str(branch), resolve_color(DEFAULT_COLOR))
                    for branch in (branches if isinstance(branches, dict) else {})
                ],
            )

            subgraph = store.create_graph(graph_id_for(node_id), name, owner_node_id=node_id)
            node.subgraph_id = subgraph.id
            logic = item.get("logic")
            if isinstance(logic, list):
                self._convert(logic, subgraph, f"{path}[{position}].logic")

            store.add_node(graph.id, node)

        for position, (item, runtime_id) in enumerate(zip(story, runtime_ids)):
            branches = item.get("branches")
            if not isinstance(branches, dict):
                continue
            start_node = graph.find_node(node_ids[runtime_id])
            for branch_name, target in branches.items():
                end_id = node_ids.get(str(target)) if target is not None else None
                output_index = next(
                    (i for i, pin in enumerate(start_node.outputs) if pin.name == str(branch_name)),
                    None,
                )
                if end_id is None or output_index is None:
                    logger.warning(
                        f"Dropping legacy branch {branch_name!r} of {path}[{position}]: "
                        f"unknown target {target!r}"
                    )
                    continue
                store.add_connection(
                    graph.id,
                    Endpoint(start_node.id, output_index),
                    Endpoint(end_id, 0),
                )


def import_legacy(
    data: dict[str, Any],
    grid: Optional[GridConfig] = None,
    legacy: Optional[LegacyConfig] = None,
) -> GraphStore:
    """
    Build a new store from a legacy story document.

    Nodes are placed on a fixed grid of `max_columns` columns. Every node
    receives one "input" pin and one output pin per branch; branches are
    resolved after all nodes of the same array exist, so forward
    references work.

    Raises:
        SchemaValidationError: If the story is not an array of objects
    """
    store = _LegacyImporter(grid or GridConfig(), legacy or LegacyConfig()).run(data)
    logger.debug(f"Imported legacy document: {len(store)} graph(s)")
    return store
