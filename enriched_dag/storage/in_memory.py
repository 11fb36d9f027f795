"""In-memory repository backends."""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..graph.models import Edge, Graph, Node, detached
from .base import DAGRepository

logger = logging.getLogger(__name__)


class InMemoryRepository(DAGRepository):
    """Dict-backed tables; transactions snapshot and restore on error."""

    def __init__(self) -> None:
        self.graphs: dict[str, Graph] = {}
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, Edge] = {}
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = (dict(self.graphs), dict(self.nodes), dict(self.edges))
        self._depth = 1
        try:
            yield
            self._committed()
        except BaseException:
            self.graphs, self.nodes, self.edges = snapshot
            raise
        finally:
            self._depth = 0

    def _committed(self) -> None:
        """Hook run when the outermost transaction commits; raising undoes it."""

    def insert_graph(self, graph: Graph) -> None:
        self.graphs[graph.graph_id] = detached(graph)

    def get_graph(self, graph_id: str) -> Graph | None:
        graph = self.graphs.get(graph_id)
        return detached(graph) if graph else None

    def find_graph(self, owner: str, title: str) -> Graph | None:
        for graph in self.graphs.values():
            if graph.owner == owner and graph.title == title:
                return detached(graph)
        return None

    def list_graphs(self, owner: str | None = None) -> list[Graph]:
        return [
            detached(graph)
            for graph in self.graphs.values()
            if owner is None or graph.owner == owner
        ]

    def delete_graph(self, graph_id: str) -> bool:
        return self.graphs.pop(graph_id, None) is not None

    def insert_node(self, node: Node) -> None:
        self.nodes[node.node_id] = detached(node)

    def get_node(self, node_id: str) -> Node | None:
        node = self.nodes.get(node_id)
        return detached(node) if node else None

    def find_node(self, graph_id: str, title: str) -> Node | None:
        for node in self.nodes.values():
            if node.parent_id == graph_id and node.title == title:
                return detached(node)
        return None

    def list_nodes(self, graph_id: str | None = None) -> list[Node]:
        return [
            detached(node)
            for node in self.nodes.values()
            if graph_id is None or node.parent_id == graph_id
        ]

    def update_node_title(self, node_id: str, title: str) -> None:
        # Replace rather than mutate so a rollback snapshot keeps the old record
        node = detached(self.nodes[node_id])
        node.title = title
        self.nodes[node_id] = node

    def delete_nodes(self, node_ids: Iterable[str]) -> int:
        removed = 0
        for node_id in set(node_ids):
            if self.nodes.pop(node_id, None) is not None:
                removed += 1
        return removed

    def insert_edge(self, edge: Edge) -> None:
        self.edges[edge.edge_id] = detached(edge)

    def get_edge(self, edge_id: str) -> Edge | None:
        edge = self.edges.get(edge_id)
        return detached(edge) if edge else None

    def find_edge(self, source_id: str, target_id: str) -> Edge | None:
        for edge in self.edges.values():
            if edge.source_id == source_id and edge.target_id == target_id:
                return detached(edge)
        return None

    def list_edges(self) -> list[Edge]:
        return [detached(edge) for edge in self.edges.values()]

    def edges_from(self, node_id: str) -> list[Edge]:
        return [detached(e) for e in self.edges.values() if e.source_id == node_id]

    def edges_to(self, node_id: str) -> list[Edge]:
        return [detached(e) for e in self.edges.values() if e.target_id == node_id]

    def edges_among(self, node_ids: Iterable[str]) -> list[Edge]:
        members = set(node_ids)
        return [
            detached(e)
            for e in self.edges.values()
            if e.source_id in members and e.target_id in members
        ]

    def delete_edge(self, edge_id: str) -> bool:
        return self.edges.pop(edge_id, None) is not None

    def delete_edges_touching(self, node_ids: Iterable[str]) -> int:
        members = set(node_ids)
        doomed = [
            edge_id
            for edge_id, e in self.edges.items()
            if e.source_id in members or e.target_id in members
        ]
        for edge_id in doomed:
            del self.edges[edge_id]
        return len(doomed)


class JsonFileRepository(InMemoryRepository):
    """In-memory tables persisted to a JSON file after every commit."""

    def __init__(self, path: str | Path) -> None:
        # Imported here: json_storage builds InMemoryRepository instances
        from .json_storage import GraphStorage

        super().__init__()
        self.path = Path(path)
        self._storage = GraphStorage()
        self._persist = False
        if self.path.exists():
            self._storage.load_into(self, self.path)
            logger.info(
                "Loaded %d graphs, %d nodes, %d edges from %s",
                len(self.graphs),
                len(self.nodes),
                len(self.edges),
                self.path,
            )
        self._persist = True

    def _committed(self) -> None:
        if self._persist:
            self._storage.save_json(self, self.path)
