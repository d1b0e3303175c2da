"""
Graph Model - Records stored in the graph store.

Plain dataclasses for graphs, nodes, pins and connections. Each record
converts to and from the JSON shape of the full-fidelity file format.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from graphnest.core.types import DEFAULT_COLOR, NodeKind

NODE_MIN_WIDTH = 256
NODE_MIN_HEIGHT = 128


class SchemaValidationError(ValueError):
    """Raised when a document or record does not have the expected shape."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        if path:
            super().__init__(f"{message} (at {path})")
        else:
            super().__init__(message)


def _require(data: Any, key: str, path: str) -> Any:
    if not isinstance(data, dict):
        raise SchemaValidationError(f"Expected an object, got {type(data).__name__}", path=path)
    if key not in data:
        raise SchemaValidationError(f"Missing required field '{key}'", path=path)
    return data[key]


def as_number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaValidationError(f"Expected a number, got {value!r}", path=path)
    return value


@dataclass
class Pin:
    """A named, colored connection slot. Identity is positional."""
    name: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "pin") -> "Pin":
        name = _require(data, "name", path)
        return cls(name=str(name), color=str(data.get("color", "#666666")))


@dataclass(frozen=True)
class Endpoint:
    """One end of a connection: a node id and a pin index."""
    node_id: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"nodeId": self.node_id, "index": self.index}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "endpoint") -> "Endpoint":
        node_id = _require(data, "nodeId", path)
        index = _require(data, "index", path)
        try:
            index = int(index)
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid pin index {index!r}", path=path) from e
        return cls(node_id=str(node_id), index=index)


@dataclass
class Connection:
    """Directed edge from an output pin (start) to an input pin (end)."""
    id: str
    start: Endpoint
    end: Endpoint

    @property
    def key(self) -> tuple[str, int, str, int]:
        """Identity used for duplicate detection."""
        return (self.start.node_id, self.start.index, self.end.node_id, self.end.index)

    def touches(self, node_id: str) -> bool:
        return self.start.node_id == node_id or self.end.node_id == node_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "connection") -> "Connection":
        return cls(
            id=str(_require(data, "id", path)),
            start=Endpoint.from_dict(_require(data, "start", path), f"{path}.start"),
            end=Endpoint.from_dict(_require(data, "end", path), f"{path}.end"),
        )


@dataclass
class Node:
    """A positioned, typed unit on a graph."""
    id: str
    title: str = ""
    text: str = ""
    x: float = 0
    y: float = 0
    width: int = NODE_MIN_WIDTH
    height: int = NODE_MIN_HEIGHT
    color: str = DEFAULT_COLOR
    kind: NodeKind = NodeKind.DEFAULT
    inputs: list[Pin] = field(default_factory=list)
    outputs: list[Pin] = field(default_factory=list)
    subgraph_id: Optional[str] = None

    def pins(self, side: str) -> list[Pin]:
        """Pin list for `side` ("input" or "output")."""
        if side == "input":
            return self.inputs
        if side == "output":
            return self.outputs
        raise ValueError(f"Unknown pin side: {side}")

    def clone(self) -> "Node":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "color": self.color,
            "type": self.kind.value,
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
            "subgraphId": self.subgraph_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "node") -> "Node":
        """Create from dictionary."""
        node_id = _require(data, "id", path)
        kind_str = data.get("type", NodeKind.DEFAULT.value)
        kind = NodeKind.from_string_safe(kind_str)
        if kind is None:
            raise SchemaValidationError(f"Unknown node type {kind_str!r}", path=f"{path}.type")

        inputs = data.get("inputs") or []
        outputs = data.get("outputs") or []
        if not isinstance(inputs, list) or not isinstance(outputs, list):
            raise SchemaValidationError("Pin lists must be arrays", path=path)

        subgraph_id = data.get("subgraphId")
        return cls(
            id=str(node_id),
            title=str(data.get("title", "")),
            text=str(data.get("text") or ""),
            x=as_number(data.get("x", 0), f"{path}.x"),
            y=as_number(data.get("y", 0), f"{path}.y"),
            width=max(NODE_MIN_WIDTH, as_number(data.get("width", NODE_MIN_WIDTH), f"{path}.width")),
            height=max(NODE_MIN_HEIGHT, as_number(data.get("height", NODE_MIN_HEIGHT), f"{path}.height")),
            color=str(data.get("color", DEFAULT_COLOR)),
            kind=kind,
            inputs=[Pin.from_dict(p, f"{path}.inputs[{i}]") for i, p in enumerate(inputs)],
            outputs=[Pin.from_dict(p, f"{path}.outputs[{i}]") for i, p in enumerate(outputs)],
            subgraph_id=str(subgraph_id) if subgraph_id else None,
        )


@dataclass
class Graph:
    """Nodes and connections at one nesting level, plus its view state."""
    id: str
    name: str
    nodes: list[Node] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    pan: dict[str, float] = field(default_factory=lambda: {"x": 0, "y": 0})
    zoom: float = 1.0

    def find_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_connection(self, connection_id: str) -> Optional[Connection]:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        """Nodes of one kind, in node order."""
        return [n for n in self.nodes if n.kind is kind]

    def clone(self) -> "Graph":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
            "pan": {"x": self.pan.get("x", 0), "y": self.pan.get("y", 0)},
            "zoom": self.zoom,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "graph") -> "Graph":
        """Create from dictionary."""
        graph_id = _require(data, "id", path)
        nodes = data.get("nodes") or []
        connections = data.get("connections") or []
        if not isinstance(nodes, list) or not isinstance(connections, list):
            raise SchemaValidationError("'nodes' and 'connections' must be arrays", path=path)

        pan = data.get("pan") or {}
        if not isinstance(pan, dict):
            raise SchemaValidationError("'pan' must be an object", path=f"{path}.pan")

        return cls(
            id=str(graph_id),
            name=str(data.get("name", "")),
            nodes=[Node.from_dict(n, f"{path}.nodes[{i}]") for i, n in enumerate(nodes)],
            connections=[
                Connection.from_dict(c, f"{path}.connections[{i}]")
                for i, c in enumerate(connections)
            ],
            pan={
                "x": as_number(pan.get("x", 0), f"{path}.pan.x"),
                "y": as_number(pan.get("y", 0), f"{path}.pan.y"),
            },
            zoom=as_number(data.get("zoom", 1.0), f"{path}.zoom"),
        )
