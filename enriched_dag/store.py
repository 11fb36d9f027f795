"""Graph store: graphs of uniquely titled nodes joined by acyclic edges."""

import functools
import logging
import threading
from typing import Any

from .config import Config
from .errors import (
    CrossGraphEdgeError,
    CycleDetectedError,
    DuplicateEdgeError,
    DuplicateGraphError,
    DuplicateTitleError,
    NotFoundError,
)
from .graph.models import Edge, Graph, Node, fresh_id
from .graph.traversal import DAGTraversal
from .storage import DAGRepository, InMemoryRepository, create_repository

logger = logging.getLogger(__name__)


def _serialized(method):
    """Run a store method while holding the store lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class GraphStore:
    """Manages graphs, their nodes and the edges between them.

    Every edge insertion is checked against the whole edge set so that the
    edges always form a DAG. Removing a node removes its edges and deleting
    a graph removes its nodes and their edges, each in one transaction.

    All operations take a single re-entrant lock, so structural mutations
    are serialised and readers never see half of a cascade.

    Example usage:
        store = GraphStore()
        graph = store.create_empty_graph("alice", "Deps")
        a = store.add_node(graph.graph_id, "A")
        b = store.add_node(graph.graph_id, "B")
        store.add_edge(graph.graph_id, a.node_id, b.node_id)
        store.add_edge(graph.graph_id, b.node_id, a.node_id)  # CycleDetectedError
    """

    def __init__(self, repository: DAGRepository | None = None):
        """Initialize the store.

        Args:
            repository: Storage backend. Defaults to an in-memory repository.
        """
        self.repository = repository if repository is not None else InMemoryRepository()
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Config | None = None) -> "GraphStore":
        """Build a store whose backend is chosen by configuration.

        Args:
            config: Optional configuration. If not provided, loads from environment.
        """
        config = config or Config.from_env()
        config.apply_logging()
        store = cls(create_repository(config))
        logger.info("Opened %s graph store", config.storage_backend)
        return store

    # Graphs

    @_serialized
    def create_empty_graph(self, owner: str, title: str) -> Graph:
        """Create a graph with no nodes.

        Raises:
            DuplicateGraphError: If the owner already has a graph with this title
        """
        if self.repository.find_graph(owner, title) is not None:
            raise DuplicateGraphError(f"Owner '{owner}' already has a graph titled '{title}'")

        graph = Graph(owner=owner, title=title, graph_id=fresh_id())
        with self.repository.transaction():
            self.repository.insert_graph(graph)

        logger.info("Created graph %s (%s/%s)", graph.graph_id, owner, title)
        return graph

    @_serialized
    def access_graph(self, owner: str, title: str) -> Graph:
        """Look up a graph by owner and title."""
        graph = self.repository.find_graph(owner, title)
        if graph is None:
            raise NotFoundError(f"No graph titled '{title}' for owner '{owner}'")
        return graph

    @_serialized
    def get_graph(self, graph_id: str) -> Graph:
        """Look up a graph by ID."""
        return self._require_graph(graph_id)

    @_serialized
    def list_graphs(self, owner: str) -> list[Graph]:
        """List every graph owned by a user, oldest first."""
        return self.repository.list_graphs(owner)

    @_serialized
    def delete_graph(self, graph_id: str) -> None:
        """Delete a graph together with all its nodes and their edges."""
        self._require_graph(graph_id)

        node_ids = [node.node_id for node in self.repository.list_nodes(graph_id)]
        with self.repository.transaction():
            removed_edges = self.repository.delete_edges_touching(node_ids)
            removed_nodes = self.repository.delete_nodes(node_ids)
            self.repository.delete_graph(graph_id)

        logger.info(
            "Deleted graph %s with %d nodes and %d edges",
            graph_id,
            removed_nodes,
            removed_edges,
        )

    # Nodes

    @_serialized
    def add_node(self, graph_id: str, title: str, enrichment: Any = None) -> Node:
        """Add a node to a graph.

        Args:
            graph_id: Graph to add the node to
            title: Node title, unique within the graph
            enrichment: Opaque payload stored with the node

        Raises:
            NotFoundError: If the graph does not exist
            DuplicateTitleError: If the graph already has a node with this title
        """
        self._require_graph(graph_id)
        if self.repository.find_node(graph_id, title) is not None:
            raise DuplicateTitleError(f"Graph {graph_id} already has a node titled '{title}'")

        node = Node(parent_id=graph_id, title=title, enrichment=enrichment, node_id=fresh_id())
        with self.repository.transaction():
            self.repository.insert_node(node)

        logger.info("Added node %s '%s' to graph %s", node.node_id, title, graph_id)
        return node

    @_serialized
    def access_node(self, graph_id: str, title: str) -> Node:
        """Look up a node by graph and title."""
        node = self.repository.find_node(graph_id, title)
        if node is None:
            raise NotFoundError(f"No node titled '{title}' in graph {graph_id}")
        return node

    @_serialized
    def get_node(self, node_id: str) -> Node:
        """Look up a node by ID."""
        return self._require_node(node_id)

    @_serialized
    def change_node_title(self, graph_id: str, node_id: str, new_title: str) -> None:
        """Rename a node; its ID and edges are unchanged.

        Renaming a node to the title it already has succeeds and changes
        nothing.

        Raises:
            NotFoundError: If the node does not exist or is not in the graph
            DuplicateTitleError: If another node in the graph holds new_title
        """
        node = self._require_node(node_id, graph_id)
        if node.title == new_title:
            return

        holder = self.repository.find_node(graph_id, new_title)
        if holder is not None and holder.node_id != node_id:
            raise DuplicateTitleError(f"Graph {graph_id} already has a node titled '{new_title}'")

        with self.repository.transaction():
            self.repository.update_node_title(node_id, new_title)

        logger.info("Renamed node %s from '%s' to '%s'", node_id, node.title, new_title)

    @_serialized
    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge that starts or ends at it."""
        self._require_node(node_id)

        with self.repository.transaction():
            removed_edges = self.repository.delete_edges_touching([node_id])
            self.repository.delete_nodes([node_id])

        logger.info("Removed node %s and %d incident edges", node_id, removed_edges)

    @_serialized
    def list_graph_nodes(self, graph_id: str) -> list[Node]:
        """List the nodes of a graph in creation order."""
        self._require_graph(graph_id)
        return self.repository.list_nodes(graph_id)

    # Edges

    @_serialized
    def add_edge(
        self,
        graph_id: str,
        source_id: str,
        target_id: str,
        enrichment: Any = None,
    ) -> Edge:
        """Add a directed edge, keeping the edge set acyclic.

        Adding source -> target closes a cycle exactly when target already
        reaches source through zero or more edges, so the check is a single
        reachability search from target over the current edge set. A
        self-loop is the zero-length case.

        Args:
            graph_id: Graph both endpoints must belong to
            source_id: Edge source node
            target_id: Edge target node
            enrichment: Opaque payload stored with the edge

        Raises:
            NotFoundError: If the graph or an endpoint does not exist, or the
                endpoints are not in this graph
            CrossGraphEdgeError: If the endpoints belong to different graphs
            DuplicateEdgeError: If source -> target already exists
            CycleDetectedError: If the edge would close a cycle
        """
        self._require_graph(graph_id)
        source = self._require_node(source_id)
        target = self._require_node(target_id)

        if source.parent_id != target.parent_id:
            raise CrossGraphEdgeError(
                f"Nodes {source_id} and {target_id} belong to different graphs"
            )
        if source.parent_id != graph_id:
            raise NotFoundError(f"Nodes {source_id} and {target_id} are not in graph {graph_id}")

        if self.repository.find_edge(source_id, target_id) is not None:
            raise DuplicateEdgeError(f"Edge {source.title} -> {target.title} already exists")

        path = DAGTraversal(self.repository.list_edges()).find_path(target_id, source_id)
        if path is not None:
            logger.debug("Rejected edge %s -> %s, closing path %s", source_id, target_id, path)
            raise CycleDetectedError(
                f"Adding edge {source.title} -> {target.title} would create a cycle",
                path=path,
            )

        edge = Edge(source_id=source_id, target_id=target_id, enrichment=enrichment, edge_id=fresh_id())
        with self.repository.transaction():
            self.repository.insert_edge(edge)

        logger.info("Added edge %s: %s -> %s in graph %s", edge.edge_id, source_id, target_id, graph_id)
        return edge

    @_serialized
    def access_edge(self, graph_id: str, source_id: str, target_id: str) -> Edge:
        """Look up the edge between two nodes of a graph."""
        self._require_graph(graph_id)
        edge = self.repository.find_edge(source_id, target_id)
        if edge is None:
            raise NotFoundError(f"No edge {source_id} -> {target_id} in graph {graph_id}")

        source = self.repository.get_node(source_id)
        if source is None or source.parent_id != graph_id:
            raise NotFoundError(f"No edge {source_id} -> {target_id} in graph {graph_id}")
        return edge

    @_serialized
    def get_edge(self, edge_id: str) -> Edge:
        """Look up an edge by ID."""
        edge = self.repository.get_edge(edge_id)
        if edge is None:
            raise NotFoundError(f"Edge {edge_id} not found")
        return edge

    @_serialized
    def remove_edge(self, edge_id: str) -> None:
        """Remove a single edge."""
        if self.repository.get_edge(edge_id) is None:
            raise NotFoundError(f"Edge {edge_id} not found")

        with self.repository.transaction():
            self.repository.delete_edge(edge_id)

        logger.info("Removed edge %s", edge_id)

    @_serialized
    def list_graph_edges(self, graph_id: str) -> list[Edge]:
        """List edges whose endpoints both belong to the graph."""
        self._require_graph(graph_id)
        node_ids = [node.node_id for node in self.repository.list_nodes(graph_id)]
        return self.repository.edges_among(node_ids)

    @_serialized
    def list_outgoing_edges(self, node_id: str) -> list[Edge]:
        """List edges leaving a node."""
        self._require_node(node_id)
        return self.repository.edges_from(node_id)

    @_serialized
    def list_incoming_edges(self, node_id: str) -> list[Edge]:
        """List edges entering a node."""
        self._require_node(node_id)
        return self.repository.edges_to(node_id)

    # Traversal queries

    @_serialized
    def descendants(self, node_id: str) -> list[Node]:
        """Nodes reachable from a node, in graph creation order."""
        node = self._require_node(node_id)
        reachable = self._traversal(node.parent_id).descendants(node_id)
        return [n for n in self.repository.list_nodes(node.parent_id) if n.node_id in reachable]

    @_serialized
    def ancestors(self, node_id: str) -> list[Node]:
        """Nodes that reach a node, in graph creation order."""
        node = self._require_node(node_id)
        reaching = self._traversal(node.parent_id).ancestors(node_id)
        return [n for n in self.repository.list_nodes(node.parent_id) if n.node_id in reaching]

    @_serialized
    def topological_order(self, graph_id: str) -> list[Node]:
        """Order a graph's nodes so every edge points forward.

        Ties are broken by node creation order, so the result is stable for
        a given store state.
        """
        self._require_graph(graph_id)
        nodes = self.repository.list_nodes(graph_id)
        by_id = {node.node_id: node for node in nodes}
        order = self._traversal(graph_id).topological_order(list(by_id))
        return [by_id[node_id] for node_id in order]

    @_serialized
    def get_stats(self, graph_id: str | None = None) -> dict:
        """Get statistics about the store or one graph.

        Args:
            graph_id: Graph to describe. If None, counts the whole store.

        Returns:
            Dictionary with record counts
        """
        if graph_id is None:
            return {
                "graphs": len(self.repository.list_graphs()),
                "nodes": len(self.repository.list_nodes()),
                "edges": len(self.repository.list_edges()),
            }

        self._require_graph(graph_id)
        node_ids = [node.node_id for node in self.repository.list_nodes(graph_id)]
        edges = self.repository.edges_among(node_ids)
        sources = {edge.source_id for edge in edges}
        targets = {edge.target_id for edge in edges}
        return {
            "nodes": len(node_ids),
            "edges": len(edges),
            "roots": len([n for n in node_ids if n not in targets]),
            "leaves": len([n for n in node_ids if n not in sources]),
        }

    def _traversal(self, graph_id: str) -> DAGTraversal:
        node_ids = [node.node_id for node in self.repository.list_nodes(graph_id)]
        return DAGTraversal(self.repository.edges_among(node_ids))

    def _require_graph(self, graph_id: str) -> Graph:
        graph = self.repository.get_graph(graph_id)
        if graph is None:
            raise NotFoundError(f"Graph {graph_id} not found")
        return graph

    def _require_node(self, node_id: str, graph_id: str | None = None) -> Node:
        node = self.repository.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found")
        if graph_id is not None and node.parent_id != graph_id:
            raise NotFoundError(f"Node {node_id} does not belong to graph {graph_id}")
        return node
