"""SQLite repository built on SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import JSON, Integer, String, UniqueConstraint, create_engine, delete, or_, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..graph.models import Edge, Graph, Node
from .base import DAGRepository

logger = logging.getLogger(__name__)

MEMORY_URL = "sqlite+pysqlite:///:memory:"


class Base(DeclarativeBase):
    """Declarative base."""


class GraphRecord(Base):
    """Graphs table."""

    __tablename__ = "graphs"
    __table_args__ = (UniqueConstraint("owner", "title"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    graph_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    owner: Mapped[str] = mapped_column(String(255), index=True)
    title: Mapped[str] = mapped_column(String(255))


class NodeRecord(Base):
    """Nodes table; title unique within a parent graph."""

    __tablename__ = "nodes"
    __table_args__ = (UniqueConstraint("parent_id", "title"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    node_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    parent_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    enrichment: Mapped[Any] = mapped_column(JSON, nullable=True)


class EdgeRecord(Base):
    """Edges table; one edge per ordered endpoint pair."""

    __tablename__ = "edges"
    __table_args__ = (UniqueConstraint("source_id", "target_id"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edge_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    source_id: Mapped[str] = mapped_column(String(64), index=True)
    target_id: Mapped[str] = mapped_column(String(64), index=True)
    enrichment: Mapped[Any] = mapped_column(JSON, nullable=True)


def _to_graph(record: GraphRecord) -> Graph:
    return Graph(graph_id=record.graph_id, owner=record.owner, title=record.title)


def _to_node(record: NodeRecord) -> Node:
    return Node(
        node_id=record.node_id,
        parent_id=record.parent_id,
        title=record.title,
        enrichment=record.enrichment,
    )


def _to_edge(record: EdgeRecord) -> Edge:
    return Edge(
        edge_id=record.edge_id,
        source_id=record.source_id,
        target_id=record.target_id,
        enrichment=record.enrichment,
    )


class SQLRepository(DAGRepository):
    """Stores the three collections in SQLite tables.

    Enrichment payloads go through a JSON column and must be JSON
    serialisable.
    """

    def __init__(self, url: str = MEMORY_URL) -> None:
        self.url = url
        engine_kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url == MEMORY_URL:
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._active: Session | None = None
        Base.metadata.create_all(self.engine)
        logger.debug("Opened SQL repository at %s", url)

    @classmethod
    def from_path(cls, db_path: str | Path) -> SQLRepository:
        """Open (or create) a SQLite database file."""
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite+pysqlite:///{db_path}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager that commits on success and rolls back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._active is not None:
            yield
            return
        with self.session() as sess:
            self._active = sess
            try:
                yield
            finally:
                self._active = None

    @contextmanager
    def _use(self) -> Iterator[Session]:
        if self._active is not None:
            yield self._active
            return
        with self.session() as sess:
            yield sess

    def close(self) -> None:
        """Dispose of the engine's connections."""
        self.engine.dispose()

    def insert_graph(self, graph: Graph) -> None:
        with self._use() as sess:
            sess.add(GraphRecord(graph_id=graph.graph_id, owner=graph.owner, title=graph.title))

    def get_graph(self, graph_id: str) -> Graph | None:
        with self._use() as sess:
            record = sess.scalar(select(GraphRecord).where(GraphRecord.graph_id == graph_id))
            return _to_graph(record) if record else None

    def find_graph(self, owner: str, title: str) -> Graph | None:
        with self._use() as sess:
            record = sess.scalar(
                select(GraphRecord).where(GraphRecord.owner == owner, GraphRecord.title == title)
            )
            return _to_graph(record) if record else None

    def list_graphs(self, owner: str | None = None) -> list[Graph]:
        stmt = select(GraphRecord).order_by(GraphRecord.seq)
        if owner is not None:
            stmt = stmt.where(GraphRecord.owner == owner)
        with self._use() as sess:
            return [_to_graph(r) for r in sess.scalars(stmt)]

    def delete_graph(self, graph_id: str) -> bool:
        with self._use() as sess:
            result = sess.execute(delete(GraphRecord).where(GraphRecord.graph_id == graph_id))
            return result.rowcount > 0

    def insert_node(self, node: Node) -> None:
        with self._use() as sess:
            sess.add(
                NodeRecord(
                    node_id=node.node_id,
                    parent_id=node.parent_id,
                    title=node.title,
                    enrichment=node.enrichment,
                )
            )

    def get_node(self, node_id: str) -> Node | None:
        with self._use() as sess:
            record = sess.scalar(select(NodeRecord).where(NodeRecord.node_id == node_id))
            return _to_node(record) if record else None

    def find_node(self, graph_id: str, title: str) -> Node | None:
        with self._use() as sess:
            record = sess.scalar(
                select(NodeRecord).where(NodeRecord.parent_id == graph_id, NodeRecord.title == title)
            )
            return _to_node(record) if record else None

    def list_nodes(self, graph_id: str | None = None) -> list[Node]:
        stmt = select(NodeRecord).order_by(NodeRecord.seq)
        if graph_id is not None:
            stmt = stmt.where(NodeRecord.parent_id == graph_id)
        with self._use() as sess:
            return [_to_node(r) for r in sess.scalars(stmt)]

    def update_node_title(self, node_id: str, title: str) -> None:
        with self._use() as sess:
            record = sess.scalars(select(NodeRecord).where(NodeRecord.node_id == node_id)).one()
            record.title = title

    def delete_nodes(self, node_ids: Iterable[str]) -> int:
        ids = list(node_ids)
        with self._use() as sess:
            result = sess.execute(delete(NodeRecord).where(NodeRecord.node_id.in_(ids)))
            return result.rowcount

    def insert_edge(self, edge: Edge) -> None:
        with self._use() as sess:
            sess.add(
                EdgeRecord(
                    edge_id=edge.edge_id,
                    source_id=edge.source_id,
                    target_id=edge.target_id,
                    enrichment=edge.enrichment,
                )
            )

    def get_edge(self, edge_id: str) -> Edge | None:
        with self._use() as sess:
            record = sess.scalar(select(EdgeRecord).where(EdgeRecord.edge_id == edge_id))
            return _to_edge(record) if record else None

    def find_edge(self, source_id: str, target_id: str) -> Edge | None:
        with self._use() as sess:
            record = sess.scalar(
                select(EdgeRecord).where(
                    EdgeRecord.source_id == source_id, EdgeRecord.target_id == target_id
                )
            )
            return _to_edge(record) if record else None

    def list_edges(self) -> list[Edge]:
        return self._edges(select(EdgeRecord))

    def edges_from(self, node_id: str) -> list[Edge]:
        return self._edges(select(EdgeRecord).where(EdgeRecord.source_id == node_id))

    def edges_to(self, node_id: str) -> list[Edge]:
        return self._edges(select(EdgeRecord).where(EdgeRecord.target_id == node_id))

    def edges_among(self, node_ids: Iterable[str]) -> list[Edge]:
        ids = list(node_ids)
        return self._edges(
            select(EdgeRecord).where(EdgeRecord.source_id.in_(ids), EdgeRecord.target_id.in_(ids))
        )

    def delete_edge(self, edge_id: str) -> bool:
        with self._use() as sess:
            result = sess.execute(delete(EdgeRecord).where(EdgeRecord.edge_id == edge_id))
            return result.rowcount > 0

    def delete_edges_touching(self, node_ids: Iterable[str]) -> int:
        ids = list(node_ids)
        with self._use() as sess:
            result = sess.execute(
                delete(EdgeRecord).where(
                    or_(EdgeRecord.source_id.in_(ids), EdgeRecord.target_id.in_(ids))
                )
            )
            return result.rowcount

    def _edges(self, stmt) -> list[Edge]:
        with self._use() as sess:
            return [_to_edge(r) for r in sess.scalars(stmt.order_by(EdgeRecord.seq))]
