"""
Readable format - A nested, hand-editable encoding of the graph store.

Subgraphs are written inline under the node that owns them, nodes are
addressed by handles derived from their titles, and connections name
pins instead of indexing them. Coordinates are not written; graphs are
auto-laid out on import.

Pin references are written as the pin name, or as `name:index` when the
node has more than one pin of that name on that side or the name already
ends in `:<digits>`. On read an
explicit index wins when it points at a pin of that name; otherwise the
first pin with a matching name is used. A hand-edited file that
introduces duplicate names without indexes therefore resolves to the
first match, which may not be the intended pin.
"""

import logging
import re
from typing import Any, Optional

from graphnest.core.config import GridConfig, LayoutConfig
from graphnest.core.graph_store import GraphStore
from graphnest.core.ids import ROOT_GRAPH_ID, IdGenerator, generate_handle, graph_id_for
from graphnest.core.layout import AutoLayout
from graphnest.core.model import (
    Endpoint,
    Graph,
    Node,
    Pin,
    SchemaValidationError,
    as_number,
)
from graphnest.core.types import DEFAULT_COLOR, NodeKind
from graphnest.serialization.schema import READABLE_FORMAT

logger = logging.getLogger(__name__)

_INDEXED_PIN = re.compile(r"^(?P<name>.*):(?P<index>\d+)$")

DEFAULT_LOADED_TITLE = "Loaded Graph"


# =============================================================================
# Export
# =============================================================================

def assign_handles(store: GraphStore) -> dict[str, str]:
    """Give every node in the store a handle unique within this export."""
    used: set[str] = set()
    handles: dict[str, str] = {}
    for _, node in store.iter_nodes():
        handle = generate_handle(node.title or node.kind.value, used)
        used.add(handle)
        handles[node.id] = handle
    return handles


def pin_reference(pins: list[Pin], index: int, side: str) -> str:
    """
    Name-based reference to pins[index].

    Indexed when the name repeats on this side, or when the name itself
    ends in `:<digits>` and would otherwise be read back as an index.
    """
    if not 0 <= index < len(pins):
        return f"{side}_{index}"
    name = pins[index].name
    if _INDEXED_PIN.match(name) or sum(1 for pin in pins if pin.name == name) > 1:
        return f"{name}:{index}"
    return name


def _node_to_readable(
    node: Node,
    store: GraphStore,
    handles: dict[str, str],
    visiting: set[str],
) -> dict[str, Any]:
    readable: dict[str, Any] = {
        "id": handles[node.id],
        "title": node.title,
        "type": node.kind.value,
        "color": node.color,
        "text": node.text,
        "width": node.width,
        "height": node.height,
        "inputs": [pin.to_dict() for pin in node.inputs],
        "outputs": [pin.to_dict() for pin in node.outputs],
    }
    if node.subgraph_id:
        subgraph = _graph_to_readable(node.subgraph_id, store, handles, visiting)
        if subgraph is not None:
            readable["subgraph"] = subgraph
    return readable


def _graph_to_readable(
    graph_id: str,
    store: GraphStore,
    handles: dict[str, str],
    visiting: set[str],
) -> Optional[dict[str, Any]]:
    graph = store.get_graph(graph_id)
    if graph is None or graph_id in visiting:
        return None
    visiting.add(graph_id)

    nodes = [_node_to_readable(node, store, handles, visiting) for node in graph.nodes]

    connections = []
    for connection in graph.connections:
        start_node = graph.find_node(connection.start.node_id)
        end_node = graph.find_node(connection.end.node_id)
        if start_node is None or end_node is None:
            continue
        connections.append({
            "from": handles[start_node.id],
            "from_pin": pin_reference(start_node.outputs, connection.start.index, "output"),
            "to": handles[end_node.id],
            "to_pin": pin_reference(end_node.inputs, connection.end.index, "input"),
        })

    visiting.discard(graph_id)
    return {"name": graph.name, "nodes": nodes, "connections": connections}


def export_readable(store: GraphStore) -> dict[str, Any]:
    """Convert a store to the readable document."""
    handles = assign_handles(store)
    root = store.root
    return {
        "format": READABLE_FORMAT,
        "title": root.name,
        "graph": _graph_to_readable(root.id, store, handles, set()),
    }


# =============================================================================
# Import
# =============================================================================

def resolve_pin(pins: list[Pin], reference: Any) -> Optional[int]:
    """
    Index of the pin a readable reference points at, or None.

    `name:index` is honored when pins[index] carries that name; failing
    that the whole reference is matched by name, and finally a bare
    in-range index is accepted.
    """
    if reference is None:
        return None
    reference = str(reference)

    explicit_index = None
    match = _INDEXED_PIN.match(reference)
    if match:
        explicit_index = int(match.group("index"))
        if explicit_index < len(pins) and pins[explicit_index].name == match.group("name"):
            return explicit_index

    for index, pin in enumerate(pins):
        if pin.name == reference:
            return index

    if explicit_index is not None and explicit_index < len(pins):
        return explicit_index
    return None


def _parse_pins(raw: Any, path: str) -> list[Pin]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SchemaValidationError("Pin list must be an array", path=path)
    return [Pin.from_dict(pin, f"{path}[{i}]") for i, pin in enumerate(raw)]


def _has_position(raw_node: dict[str, Any]) -> bool:
    return all(
        isinstance(raw_node.get(axis), (int, float)) and not isinstance(raw_node.get(axis), bool)
        for axis in ("x", "y")
    )


class _ReadableImporter:
    """Builds an isolated store from a readable document."""

    def __init__(
        self,
        layout_config: Optional[LayoutConfig] = None,
        grid: Optional[GridConfig] = None,
    ):
        self._store = GraphStore(IdGenerator())
        self._layout = AutoLayout(layout_config)
        self._grid = grid or GridConfig()

    def run(self, data: dict[str, Any]) -> GraphStore:
        root_data = data.get("graph")
        if not isinstance(root_data, dict):
            raise SchemaValidationError("'graph' must be an object", path="graph")

        title = data.get("title") or DEFAULT_LOADED_TITLE
        root = self._store.create_graph(ROOT_GRAPH_ID, str(title))
        self._fill_graph(root, root_data, "graph")
        return self._store

    def _fill_graph(self, graph: Graph, data: dict[str, Any], path: str) -> None:
        raw_nodes = data.get("nodes") or []
        raw_connections = data.get("connections") or []
        if not isinstance(raw_nodes, list) or not isinstance(raw_connections, list):
            raise SchemaValidationError("'nodes' and 'connections' must be arrays", path=path)

        handle_map: dict[str, str] = {}
        positioned = bool(raw_nodes)
        for i, raw_node in enumerate(raw_nodes):
            node_path = f"{path}.nodes[{i}]"
            if not isinstance(raw_node, dict):
                raise SchemaValidationError("Node must be an object", path=node_path)
            node = self._build_node(raw_node, node_path)
            if raw_node.get("id") is not None:
                handle_map.setdefault(str(raw_node["id"]), node.id)
            positioned = positioned and _has_position(raw_node)
            self._store.add_node(graph.id, node)

        for i, raw_connection in enumerate(raw_connections):
            self._add_connection(graph, raw_connection, handle_map, f"{path}.connections[{i}]")

        if not positioned:
            self._layout.layout(graph)

    def _size(self, raw: dict[str, Any], key: str, minimum: int, path: str) -> int:
        """A node dimension, clamped to the minimum and snapped to the grid."""
        value = raw.get(key)
        if value is None:
            return minimum
        return self._grid.snap(max(minimum, as_number(value, f"{path}.{key}")))

    def _build_node(self, raw: dict[str, Any], path: str) -> Node:
        kind_str = raw.get("type") or NodeKind.DEFAULT.value
        kind = NodeKind.from_string_safe(kind_str)
        if kind is None:
            raise SchemaValidationError(f"Unknown node type {kind_str!r}", path=f"{path}.type")

        node_id = self._store.ids.next_node_id()
        title = str(raw.get("title") or "")
        node = Node(
            id=node_id,
            title=title,
            text=str(raw.get("text") or ""),
            width=self._size(raw, "width", self._grid.node_min_width, path),
            height=self._size(raw, "height", self._grid.node_min_height, path),
            color=str(raw.get("color") or DEFAULT_COLOR),
            kind=kind,
            inputs=_parse_pins(raw.get("inputs"), f"{path}.inputs"),
            outputs=_parse_pins(raw.get("outputs"), f"{path}.outputs"),
        )
        if _has_position(raw):
            node.x, node.y = raw["x"], raw["y"]

        if kind.owns_subgraph:
            subgraph_data = raw.get("subgraph")
            if subgraph_data is not None and not isinstance(subgraph_data, dict):
                raise SchemaValidationError("'subgraph' must be an object", path=f"{path}.subgraph")
            subgraph_data = subgraph_data or {}
            name = subgraph_data.get("name") or title
            subgraph = self._store.create_graph(graph_id_for(node_id), str(name), owner_node_id=node_id)
            node.subgraph_id = subgraph.id
            self._fill_graph(subgraph, subgraph_data, f"{path}.subgraph")

        return node

    def _add_connection(
        self,
        graph: Graph,
        raw: Any,
        handle_map: dict[str, str],
        path: str,
    ) -> None:
        if not isinstance(raw, dict):
            logger.warning(f"Dropping malformed connection at {path}")
            return

        start_id = handle_map.get(str(raw.get("from")))
        end_id = handle_map.get(str(raw.get("to")))
        start_node = graph.find_node(start_id) if start_id else None
        end_node = graph.find_node(end_id) if end_id else None
        if start_node is None or end_node is None:
            logger.warning(
                f"Dropping connection at {path}: unknown node "
                f"{raw.get('from')!r} or {raw.get('to')!r}"
            )
            return

        start_index = resolve_pin(start_node.outputs, raw.get("from_pin"))
        end_index = resolve_pin(end_node.inputs, raw.get("to_pin"))
        if start_index is None or end_index is None:
            logger.warning(
                f"Dropping connection at {path}: unknown pin "
                f"{raw.get('from_pin')!r} or {raw.get('to_pin')!r}"
            )
            return

        self._store.add_connection(
            graph.id,
            Endpoint(start_node.id, start_index),
            Endpoint(end_node.id, end_index),
        )


def import_readable(
    data: dict[str, Any],
    layout_config: Optional[LayoutConfig] = None,
    grid: Optional[GridConfig] = None,
) -> GraphStore:
    """
    Build a new store from a readable document.

    Every node and subgraph receives a fresh internal id; every graph
    whose nodes lack coordinates is auto-laid out.

    Raises:
        SchemaValidationError: If the document is structurally invalid
    """
    store = _ReadableImporter(layout_config, grid).run(data)
    logger.debug(f"Imported readable document: {len(store)} graph(s)")
    return store
