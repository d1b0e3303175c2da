"""
Identifier Generator - node, graph and connection ids plus export handles.

Node ids are `node_<n>` drawn from a per-editor monotonic counter; a
node's private subgraph id is derived from the node id so no second
counter is needed. Handles are the human-readable slugs that replace
internal ids in the readable export format.
"""

import logging
import re
import uuid
from collections.abc import Iterable

logger = logging.getLogger(__name__)

NODE_ID_PREFIX = "node_"
GRAPH_ID_PREFIX = "graph_"
CONNECTION_ID_PREFIX = "conn_"
ROOT_GRAPH_ID = "root"

# Fallback handle for titles that slugify to nothing
HANDLE_PLACEHOLDER = "unnamed-node"

_STRIP_PATTERN = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_LEADING_DIGITS = re.compile(r"\d+")


def slugify(base_name: str) -> str:
    """
    Turn a title into a URL-friendly slug.

    Lowercases, drops everything except [a-z0-9], whitespace and hyphens,
    then collapses whitespace runs to single hyphens. Returns the
    placeholder when nothing survives.
    """
    slug = (base_name or HANDLE_PLACEHOLDER).lower().strip()
    slug = _STRIP_PATTERN.sub("", slug)
    slug = _WHITESPACE_PATTERN.sub("-", slug)
    return slug or HANDLE_PLACEHOLDER


def generate_handle(base_name: str, existing_handles: set[str]) -> str:
    """
    Generate a handle unique within `existing_handles`.

    Collisions are resolved by appending `-2`, `-3`, ... to the slug. The
    caller is responsible for adding the result to the set.

    Args:
        base_name: Title (or type) the handle is derived from
        existing_handles: Handles already assigned in this export

    Returns:
        A handle not present in `existing_handles`
    """
    handle = slugify(base_name)
    candidate = handle
    counter = 1
    while candidate in existing_handles:
        counter += 1
        candidate = f"{handle}-{counter}"
    return candidate


def graph_id_for(node_id: str) -> str:
    """Deterministic id of the private subgraph owned by `node_id`."""
    return f"{GRAPH_ID_PREFIX}{node_id}"


def node_id_number(node_id: str) -> int | None:
    """Numeric suffix of a `node_<n>` id, or None if it has none."""
    parts = str(node_id).split("_")
    if len(parts) < 2:
        return None
    match = _LEADING_DIGITS.match(parts[1])
    return int(match.group()) if match else None


class IdGenerator:
    """
    Monotonic id source scoped to one editor instance.

    The counter is re-derived after loading a full-fidelity file so that
    freshly created nodes never collide with loaded ones.
    """

    def __init__(self, start: int = 1):
        self._counter = start

    @property
    def counter(self) -> int:
        """The number the next node id will carry."""
        return self._counter

    def next_node_id(self) -> str:
        node_id = f"{NODE_ID_PREFIX}{self._counter}"
        self._counter += 1
        return node_id

    def next_connection_id(self) -> str:
        return f"{CONNECTION_ID_PREFIX}{uuid.uuid4().hex}"

    def reseed(self, node_ids: Iterable[str]) -> int:
        """
        Continue numbering after the highest numeric suffix in `node_ids`.

        Ids without a numeric suffix are ignored. An empty input resets the
        counter to 1.

        Returns:
            The new counter value
        """
        highest = 0
        for node_id in node_ids:
            number = node_id_number(node_id)
            if number is not None and number > highest:
                highest = number
        self._counter = highest + 1
        logger.debug(f"Node id counter reseeded to {self._counter}")
        return self._counter
