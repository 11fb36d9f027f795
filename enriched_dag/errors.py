"""Typed errors raised by the DAG store."""


class DAGError(Exception):
    """Base class for every error raised by the store."""


class NotFoundError(DAGError):
    """A graph, node or edge does not exist, or a node is not in the given graph."""


class DuplicateGraphError(DAGError):
    """The owner already has a graph with this title."""


class DuplicateTitleError(DAGError):
    """The graph already has a node with this title."""


class DuplicateEdgeError(DAGError):
    """An edge already exists for this ordered (source, target) pair."""


class CrossGraphEdgeError(DAGError):
    """Edge endpoints belong to different graphs."""


class CycleDetectedError(DAGError):
    """Adding the edge would close a directed cycle."""

    def __init__(self, message: str, path: list[str] | None = None):
        super().__init__(message)
        # Existing path target -> ... -> source that the new edge would close
        self.path = path or []
