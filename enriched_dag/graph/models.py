"""Data models for graphs, nodes and edges."""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any


def fresh_id() -> str:
    """Mint a new opaque identifier."""
    return str(uuid.uuid4())


@dataclass
class Graph:
    """A titled graph owned by a user."""

    owner: str
    title: str
    graph_id: str = field(default_factory=fresh_id)

    def to_dict(self) -> dict:
        """Convert graph to dictionary."""
        return {
            "graph_id": self.graph_id,
            "owner": self.owner,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Graph":
        """Create graph from dictionary."""
        return cls(
            graph_id=data["graph_id"],
            owner=data["owner"],
            title=data["title"],
        )


@dataclass
class Node:
    """A uniquely titled node inside one graph."""

    parent_id: str
    title: str
    enrichment: Any = None
    node_id: str = field(default_factory=fresh_id)

    def to_dict(self) -> dict:
        """Convert node to dictionary."""
        return {
            "node_id": self.node_id,
            "parent_id": self.parent_id,
            "title": self.title,
            "enrichment": self.enrichment,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        """Create node from dictionary."""
        return cls(
            node_id=data["node_id"],
            parent_id=data["parent_id"],
            title=data["title"],
            enrichment=data.get("enrichment"),
        )


@dataclass
class Edge:
    """A directed edge between two nodes of the same graph."""

    source_id: str
    target_id: str
    enrichment: Any = None
    edge_id: str = field(default_factory=fresh_id)

    def to_dict(self) -> dict:
        """Convert edge to dictionary."""
        return {
            "edge_id": self.edge_id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "enrichment": self.enrichment,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Edge":
        """Create edge from dictionary."""
        return cls(
            edge_id=data["edge_id"],
            source_id=data["source_id"],
            target_id=data["target_id"],
            enrichment=data.get("enrichment"),
        )


def detached(record):
    """Return a deep copy of a record, enrichment included.

    Stored records and the records handed to callers never share mutable
    state.
    """
    return copy.deepcopy(record)
