"""Enriched-DAG: graphs of titled nodes whose edges can never form a cycle."""

import logging

from .config import Config
from .errors import (
    CrossGraphEdgeError,
    CycleDetectedError,
    DAGError,
    DuplicateEdgeError,
    DuplicateGraphError,
    DuplicateTitleError,
    NotFoundError,
)
from .graph import DAGTraversal, Edge, Graph, Node
from .storage import GraphStorage, InMemoryRepository, JsonFileRepository, SQLRepository
from .store import GraphStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "GraphStore",
    "Config",
    "Graph",
    "Node",
    "Edge",
    "DAGTraversal",
    "GraphStorage",
    "InMemoryRepository",
    "JsonFileRepository",
    "SQLRepository",
    "DAGError",
    "NotFoundError",
    "DuplicateGraphError",
    "DuplicateTitleError",
    "DuplicateEdgeError",
    "CrossGraphEdgeError",
    "CycleDetectedError",
]
