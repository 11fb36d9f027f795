"""Repository interface shared by every storage backend."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager

from ..graph.models import Edge, Graph, Node


class DAGRepository(ABC):
    """Storage for the three collections: graphs, nodes and edges.

    Repositories only store and look up records. Uniqueness, ownership and
    acyclicity are enforced by ``GraphStore``, which also serialises access;
    a repository is not safe to share between threads on its own.

    Getters return ``None`` for missing records. Listings preserve insertion
    order.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group writes so they commit together or not at all."""

    # Graphs

    @abstractmethod
    def insert_graph(self, graph: Graph) -> None: ...

    @abstractmethod
    def get_graph(self, graph_id: str) -> Graph | None: ...

    @abstractmethod
    def find_graph(self, owner: str, title: str) -> Graph | None: ...

    @abstractmethod
    def list_graphs(self, owner: str | None = None) -> list[Graph]: ...

    @abstractmethod
    def delete_graph(self, graph_id: str) -> bool: ...

    # Nodes

    @abstractmethod
    def insert_node(self, node: Node) -> None: ...

    @abstractmethod
    def get_node(self, node_id: str) -> Node | None: ...

    @abstractmethod
    def find_node(self, graph_id: str, title: str) -> Node | None: ...

    @abstractmethod
    def list_nodes(self, graph_id: str | None = None) -> list[Node]: ...

    @abstractmethod
    def update_node_title(self, node_id: str, title: str) -> None: ...

    @abstractmethod
    def delete_nodes(self, node_ids: Iterable[str]) -> int: ...

    # Edges

    @abstractmethod
    def insert_edge(self, edge: Edge) -> None: ...

    @abstractmethod
    def get_edge(self, edge_id: str) -> Edge | None: ...

    @abstractmethod
    def find_edge(self, source_id: str, target_id: str) -> Edge | None: ...

    @abstractmethod
    def list_edges(self) -> list[Edge]: ...

    @abstractmethod
    def edges_from(self, node_id: str) -> list[Edge]: ...

    @abstractmethod
    def edges_to(self, node_id: str) -> list[Edge]: ...

    @abstractmethod
    def edges_among(self, node_ids: Iterable[str]) -> list[Edge]:
        """Edges whose source and target are both in ``node_ids``."""

    @abstractmethod
    def delete_edge(self, edge_id: str) -> bool: ...

    @abstractmethod
    def delete_edges_touching(self, node_ids: Iterable[str]) -> int:
        """Delete edges with either endpoint in ``node_ids``."""

    def to_dict(self) -> dict:
        """Dump every collection as plain dictionaries."""
        return {
            "graphs": [graph.to_dict() for graph in self.list_graphs()],
            "nodes": [node.to_dict() for node in self.list_nodes()],
            "edges": [edge.to_dict() for edge in self.list_edges()],
        }

    def load_dict(self, data: dict) -> None:
        """Insert every record from a ``to_dict`` dump in one transaction."""
        with self.transaction():
            for graph_data in data.get("graphs", []):
                self.insert_graph(Graph.from_dict(graph_data))
            for node_data in data.get("nodes", []):
                self.insert_node(Node.from_dict(node_data))
            for edge_data in data.get("edges", []):
                self.insert_edge(Edge.from_dict(edge_data))

