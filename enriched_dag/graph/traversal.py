"""Graph traversal algorithms."""

import heapq
from collections import defaultdict, deque
from collections.abc import Iterable

from .models import Edge


class DAGTraversal:
    """Reachability and ordering over a set of directed edges."""

    def __init__(self, edges: Iterable[Edge]):
        """Initialize traversal with an edge set.

        Args:
            edges: Edges to traverse, in insertion order
        """
        self.successors: dict[str, list[str]] = defaultdict(list)
        self.predecessors: dict[str, list[str]] = defaultdict(list)
        for edge in edges:
            self.successors[edge.source_id].append(edge.target_id)
            self.predecessors[edge.target_id].append(edge.source_id)

    def find_path(self, start_id: str, goal_id: str) -> list[str] | None:
        """Find a directed path from start to goal using iterative DFS.

        A node always reaches itself through the empty path.

        Args:
            start_id: Node to start from
            goal_id: Node to reach

        Returns:
            List of node IDs from start to goal, or None if unreachable
        """
        if start_id == goal_id:
            return [start_id]

        parents: dict[str, str | None] = {start_id: None}
        stack = [start_id]

        while stack:
            current = stack.pop()
            for neighbor in self.successors.get(current, []):
                if neighbor in parents:
                    continue
                parents[neighbor] = current
                if neighbor == goal_id:
                    return self._unwind(parents, goal_id)
                stack.append(neighbor)

        return None

    def can_reach(self, start_id: str, goal_id: str) -> bool:
        """Check whether goal is reachable from start via zero or more edges."""
        return self.find_path(start_id, goal_id) is not None

    def descendants(self, node_id: str) -> set[str]:
        """Get all nodes reachable from a node (excluding itself)."""
        return self._collect(node_id, self.successors)

    def ancestors(self, node_id: str) -> set[str]:
        """Get all nodes that can reach a node (excluding itself)."""
        return self._collect(node_id, self.predecessors)

    def topological_order(self, node_ids: list[str]) -> list[str]:
        """Compute topological order using Kahn's algorithm.

        Among nodes with no remaining incoming edges the one listed first
        in ``node_ids`` is emitted first. Edges touching nodes outside
        ``node_ids`` are ignored.

        Args:
            node_ids: Nodes to order

        Returns:
            Node IDs such that every edge points forward

        Raises:
            ValueError: If the edges among node_ids contain a cycle
        """
        members = set(node_ids)
        in_degree = {n: 0 for n in node_ids}
        for node_id in node_ids:
            for target in self.successors.get(node_id, []):
                if target in members:
                    in_degree[target] += 1

        position = {n: i for i, n in enumerate(node_ids)}
        ready = [(position[n], n) for n in node_ids if in_degree[n] == 0]
        heapq.heapify(ready)
        order: list[str] = []

        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)
            for target in self.successors.get(node_id, []):
                if target not in members:
                    continue
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    heapq.heappush(ready, (position[target], target))

        if len(order) != len(node_ids):
            missing = members - set(order)
            raise ValueError(f"Topological sort failed - edges contain a cycle through: {missing}")

        return order

    def _collect(self, node_id: str, adjacency: dict[str, list[str]]) -> set[str]:
        visited: set[str] = set()
        queue: deque[str] = deque([node_id])

        while queue:
            current = queue.popleft()
            for neighbor in adjacency.get(current, []):
                if neighbor not in visited and neighbor != node_id:
                    visited.add(neighbor)
                    queue.append(neighbor)

        return visited

    @staticmethod
    def _unwind(parents: dict[str, str | None], goal_id: str) -> list[str]:
        path = [goal_id]
        current = parents[goal_id]
        while current is not None:
            path.append(current)
            current = parents[current]
        path.reverse()
        return path
