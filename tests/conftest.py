"""
graphnest Test Configuration and Fixtures.

Provides shared fixtures for unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Any

import pytest

from graphnest.core.config import GraphnestConfig, set_config
from graphnest.core.editor import EditorSession, PinRef
from graphnest.core.types import NodeKind

# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def default_config():
    """Pin the global configuration to defaults, ignoring any user file."""
    config = GraphnestConfig()
    set_config(config)
    yield config
    set_config(None)


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_file(temp_dir):
    """Provide a factory for creating temporary files."""
    created_files = []

    def _create_file(name: str, content: str = "") -> Path:
        path = temp_dir / name
        path.write_text(content, encoding="utf-8")
        created_files.append(path)
        return path

    yield _create_file


# =============================================================================
# Editor Fixtures
# =============================================================================

@pytest.fixture
def session(default_config) -> EditorSession:
    """Provide an empty editor session."""
    return EditorSession(default_config)


@pytest.fixture
def populated_session(session) -> EditorSession:
    """
    Provide a session with a small two-level graph.

    Root holds "Node 1" -> "Node 2". Node 1's subgraph holds one
    graph-input ("Input") and one graph-output ("Output") node, so Node 1
    exposes one input and one output pin.
    """
    first = session.add_node(position=(0, 0))
    second = session.add_node(position=(384, 0))

    session.enter(first.id)
    session.add_node(NodeKind.GRAPH_INPUT, position=(0, 0))
    session.add_node(NodeKind.GRAPH_OUTPUT, position=(384, 0))
    session.navigate_to_level(0)

    session.enter(second.id)
    session.add_node(NodeKind.GRAPH_INPUT, position=(0, 0))
    session.navigate_to_level(0)

    session.connect(PinRef(first.id, "output", 0), PinRef(second.id, "input", 0))
    return session


# =============================================================================
# Sample Document Fixtures
# =============================================================================

@pytest.fixture
def sample_full_document() -> dict[str, Any]:
    """Provide a full-fidelity document with one nested subgraph."""
    return {
        "version": "1.0.0",
        "graphs": {
            "root": {
                "id": "root",
                "name": "Demo",
                "nodes": [
                    {
                        "id": "node_1", "title": "Start", "text": "", "x": 0, "y": 0,
                        "width": 256, "height": 128, "color": "default", "type": "default",
                        "inputs": [],
                        "outputs": [{"name": "Out", "color": "#44ff44"}],
                        "subgraphId": "graph_node_1",
                    },
                    {
                        "id": "node_7", "title": "End", "text": "done", "x": 384, "y": 0,
                        "width": 256, "height": 128, "color": "red", "type": "default",
                        "inputs": [{"name": "In", "color": "#ff4444"}],
                        "outputs": [],
                        "subgraphId": "graph_node_7",
                    },
                ],
                "connections": [
                    {
                        "id": "conn_1",
                        "start": {"nodeId": "node_1", "index": 0},
                        "end": {"nodeId": "node_7", "index": 0},
                    }
                ],
                "pan": {"x": 10, "y": 20},
                "zoom": 1.5,
            },
            "graph_node_1": {
                "id": "graph_node_1",
                "name": "Start",
                "nodes": [
                    {
                        "id": "node_3", "title": "Out", "text": "", "x": 0, "y": 0,
                        "width": 256, "height": 128, "color": "green", "type": "graph-output",
                        "inputs": [{"name": "Value", "color": "#44ff44"}],
                        "outputs": [],
                        "subgraphId": None,
                    }
                ],
                "connections": [],
                "pan": {"x": 0, "y": 0},
                "zoom": 1,
            },
            "graph_node_7": {
                "id": "graph_node_7",
                "name": "End",
                "nodes": [],
                "connections": [],
                "pan": {"x": 0, "y": 0},
                "zoom": 1,
            },
        },
    }


@pytest.fixture
def sample_readable_document() -> dict[str, Any]:
    """Provide a readable document with a nested subgraph and no coordinates."""
    return {
        "format": "node-graph-v2-readable",
        "title": "Story",
        "graph": {
            "name": "Story",
            "nodes": [
                {
                    "id": "intro",
                    "title": "Intro",
                    "type": "default",
                    "color": "blue",
                    "text": "Once upon a time",
                    "inputs": [],
                    "outputs": [{"name": "next", "color": "#4444ff"}],
                    "subgraph": {
                        "name": "Intro",
                        "nodes": [
                            {
                                "id": "output",
                                "title": "next",
                                "type": "graph-output",
                                "color": "blue",
                                "inputs": [{"name": "Value", "color": "#4444ff"}],
                                "outputs": [],
                            }
                        ],
                        "connections": [],
                    },
                },
                {
                    "id": "ending",
                    "title": "Ending",
                    "type": "default",
                    "inputs": [{"name": "in", "color": "#666666"}],
                    "outputs": [],
                },
            ],
            "connections": [
                {"from": "intro", "from_pin": "next", "to": "ending", "to_pin": "in"},
            ],
        },
    }


@pytest.fixture
def sample_legacy_document() -> dict[str, Any]:
    """Provide a legacy story document with branches and nested logic."""
    return {
        "title": "Adventure",
        "story": [
            {
                "id": "start",
                "name": "Start",
                "text": "You wake up.",
                "branches": {"left": "cave", "right": "forest"},
            },
            {"id": "cave", "name": "Cave", "text": "It is dark."},
            {
                "id": "forest",
                "name": "Forest",
                "logic": [
                    {"id": "check", "name": "Check", "branches": {"ok": "done"}},
                    {"id": "done", "name": "Done"},
                ],
            },
        ],
    }
