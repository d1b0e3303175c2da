"""
Full-fidelity format - A flat dump of the whole graph store.

Graphs are keyed by id, nodes keep their internal ids and connections
address pins by index, so a load reproduces the store exactly.
"""

import logging
from typing import Any, Optional

from graphnest.core.config import ViewConfig
from graphnest.core.graph_store import GraphStore
from graphnest.core.ids import ROOT_GRAPH_ID, IdGenerator, graph_id_for
from graphnest.core.model import Graph, SchemaValidationError
from graphnest.core.types import NodeKind
from graphnest.serialization.schema import SCHEMA_VERSION

logger = logging.getLogger(__name__)


def export_full(store: GraphStore) -> dict[str, Any]:
    """Convert a store to the full-fidelity document."""
    return {
        "version": SCHEMA_VERSION,
        "graphs": {graph.id: graph.to_dict() for graph in store},
    }


def _check_version(version: Any) -> None:
    """
    Reject documents written by a newer major version.

    Raises:
        SchemaValidationError: If the version is malformed or too new
    """
    try:
        major = int(str(version).split(".")[0])
    except ValueError as e:
        raise SchemaValidationError(f"Invalid schema version {version!r}", path="version") from e

    current_major = int(SCHEMA_VERSION.split(".")[0])
    if major > current_major:
        raise SchemaValidationError(
            f"Schema version {version} is newer than supported {SCHEMA_VERSION}",
            path="version",
        )
    if str(version) != SCHEMA_VERSION:
        logger.info(f"Loading full-format document version {version} as {SCHEMA_VERSION}")


def _drop_dangling_connections(graph: Graph) -> None:
    node_ids = {node.id for node in graph.nodes}
    kept = []
    for connection in graph.connections:
        if connection.start.node_id in node_ids and connection.end.node_id in node_ids:
            kept.append(connection)
        else:
            logger.warning(
                f"Dropping connection {connection.id} in graph {graph.id}: "
                f"references a missing node"
            )
    graph.connections = kept


def _clamp_zoom(graph: Graph, view: ViewConfig) -> None:
    zoom = view.clamp_zoom(graph.zoom)
    if zoom != graph.zoom:
        logger.warning(f"Graph {graph.id} zoom {graph.zoom} out of range; using {zoom}")
        graph.zoom = zoom


def _restore_missing_subgraphs(graphs: dict[str, Graph]) -> None:
    """Give every default node the private subgraph it must own."""
    for graph in list(graphs.values()):
        for node in graph.nodes:
            if node.kind is not NodeKind.DEFAULT:
                continue
            if node.subgraph_id is None:
                node.subgraph_id = graph_id_for(node.id)
            if node.subgraph_id not in graphs:
                logger.warning(f"Node {node.id} references missing graph {node.subgraph_id}; recreating it empty")
                graphs[node.subgraph_id] = Graph(id=node.subgraph_id, name=node.title)


def import_full(data: dict[str, Any], view: Optional[ViewConfig] = None) -> GraphStore:
    """
    Build a new store from a full-fidelity document.

    The node id counter of the returned store continues after the highest
    numeric node id found in the document. Zoom levels outside the view
    limits are clamped.

    Raises:
        SchemaValidationError: If the document is structurally invalid
    """
    _check_version(data.get("version"))

    raw_graphs = data.get("graphs")
    if not isinstance(raw_graphs, dict):
        raise SchemaValidationError("'graphs' must be an object", path="graphs")

    graphs: dict[str, Graph] = {}
    for graph_id, record in raw_graphs.items():
        if not isinstance(record, dict):
            raise SchemaValidationError("Graph record must be an object", path=f"graphs.{graph_id}")
        graph = Graph.from_dict({**record, "id": graph_id}, path=f"graphs.{graph_id}")
        graphs[graph_id] = graph

    if ROOT_GRAPH_ID not in graphs:
        raise SchemaValidationError("Document has no root graph", path="graphs")

    view = view or ViewConfig()
    for graph in graphs.values():
        _drop_dangling_connections(graph)
        _clamp_zoom(graph, view)
    _restore_missing_subgraphs(graphs)

    ids = IdGenerator()
    ids.reseed(node.id for graph in graphs.values() for node in graph.nodes)

    store = GraphStore.from_graphs(graphs, ids)
    logger.debug(f"Imported full document: {len(graphs)} graph(s), next node id {ids.counter}")
    return store
