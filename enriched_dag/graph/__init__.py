"""Graph records and traversal."""

from .models import Edge, Graph, Node
from .traversal import DAGTraversal

__all__ = [
    "Graph",
    "Node",
    "Edge",
    "DAGTraversal",
]
