"""Tests for repository backends and JSON snapshots."""

import json
from pathlib import Path

import pytest

from enriched_dag import DuplicateGraphError, GraphStore
from enriched_dag.config import Config
from enriched_dag.graph import Edge, Graph, Node
from enriched_dag.storage import (
    GraphStorage,
    InMemoryRepository,
    JsonFileRepository,
    SQLRepository,
    create_repository,
)


def _populate(store: GraphStore) -> tuple[Graph, Node, Node]:
    graph = store.create_empty_graph("Alice", "Deps")
    a = store.add_node(graph.graph_id, "A", enrichment={"step": 1})
    b = store.add_node(graph.graph_id, "B")
    store.add_edge(graph.graph_id, a.node_id, b.node_id, enrichment="needs")
    return graph, a, b


class TestTransactions:
    """Tests for all-or-nothing repository transactions."""

    @pytest.mark.parametrize("factory", [InMemoryRepository, SQLRepository])
    def test_rollback_on_error(self, factory):
        repository = factory()
        repository.insert_graph(Graph(owner="alice", title="Kept", graph_id="g0"))

        with pytest.raises(RuntimeError):
            with repository.transaction():
                repository.insert_graph(Graph(owner="alice", title="Lost", graph_id="g1"))
                repository.insert_node(Node(parent_id="g1", title="A", node_id="n1"))
                raise RuntimeError("boom")

        assert [g.graph_id for g in repository.list_graphs()] == ["g0"]
        assert repository.list_nodes() == []

    def test_in_memory_rollback_restores_renamed_node(self):
        repository = InMemoryRepository()
        repository.insert_node(Node(parent_id="g", title="Old", node_id="n1"))

        with pytest.raises(RuntimeError):
            with repository.transaction():
                repository.update_node_title("n1", "New")
                raise RuntimeError("boom")

        assert repository.get_node("n1").title == "Old"

    def test_nested_transactions_commit_once(self, tmp_path: Path):
        repository = JsonFileRepository(tmp_path / "dag.json")

        with repository.transaction():
            with repository.transaction():
                repository.insert_graph(Graph(owner="alice", title="G", graph_id="g1"))
            assert not (tmp_path / "dag.json").exists()

        assert (tmp_path / "dag.json").exists()

    def test_delete_edges_touching(self):
        repository = SQLRepository()
        repository.insert_edge(Edge(source_id="a", target_id="b", edge_id="e1"))
        repository.insert_edge(Edge(source_id="b", target_id="c", edge_id="e2"))
        repository.insert_edge(Edge(source_id="c", target_id="d", edge_id="e3"))

        removed = repository.delete_edges_touching(["b"])

        assert removed == 2
        assert [e.edge_id for e in repository.list_edges()] == ["e3"]


class TestGraphStorage:
    """Tests for JSON snapshot export and import."""

    def test_save_and_load_json(self, tmp_path: Path):
        store = GraphStore()
        graph, a, b = _populate(store)
        storage = GraphStorage()
        path = tmp_path / "snapshots" / "dag.json"

        storage.save_json(store.repository, path)

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert len(data["graphs"]) == 1
        assert len(data["nodes"]) == 2
        assert len(data["edges"]) == 1

        loaded = GraphStore(storage.load_json(path))
        assert loaded.access_graph("Alice", "Deps").graph_id == graph.graph_id
        assert loaded.access_node(graph.graph_id, "A").enrichment == {"step": 1}
        assert loaded.access_edge(graph.graph_id, a.node_id, b.node_id).enrichment == "needs"

    def test_copy_between_backends(self, tmp_path: Path):
        store = GraphStore()
        graph, a, b = _populate(store)
        path = tmp_path / "dag.json"
        GraphStorage().save_json(store.repository, path)

        sql = SQLRepository()
        GraphStorage().load_into(sql, path)

        assert sql.to_dict() == store.repository.to_dict()


class TestJsonFileRepository:
    """Tests for the JSON file backend."""

    def test_state_survives_reopen(self, tmp_path: Path):
        path = tmp_path / "dag.json"
        store = GraphStore(JsonFileRepository(path))
        graph, a, b = _populate(store)
        store.remove_node(b.node_id)

        reopened = GraphStore(JsonFileRepository(path))

        assert [n.title for n in reopened.list_graph_nodes(graph.graph_id)] == ["A"]
        assert reopened.list_graph_edges(graph.graph_id) == []

    def test_failed_operation_not_written(self, tmp_path: Path):
        path = tmp_path / "dag.json"
        store = GraphStore(JsonFileRepository(path))
        _populate(store)
        before = path.read_text(encoding="utf-8")

        with pytest.raises(DuplicateGraphError):
            store.create_empty_graph("Alice", "Deps")

        assert path.read_text(encoding="utf-8") == before

    def test_unencodable_enrichment_rolls_back(self, tmp_path: Path):
        path = tmp_path / "dag.json"
        store = GraphStore(JsonFileRepository(path))
        graph, _, _ = _populate(store)
        before = path.read_text(encoding="utf-8")

        with pytest.raises(TypeError):
            store.add_node(graph.graph_id, "X", enrichment=object())

        assert [n.title for n in store.list_graph_nodes(graph.graph_id)] == ["A", "B"]
        assert path.read_text(encoding="utf-8") == before
        assert not (tmp_path / "dag.json.tmp").exists()

        # The store keeps working after the failed write
        store.add_node(graph.graph_id, "X", enrichment={"ok": True})
        reopened = GraphStore(JsonFileRepository(path))
        assert reopened.access_node(graph.graph_id, "X").enrichment == {"ok": True}

    def test_open_does_not_rewrite_file(self, tmp_path: Path):
        path = tmp_path / "dag.json"
        store = GraphStore()
        _populate(store)
        compact = json.dumps(store.repository.to_dict())
        path.write_text(compact, encoding="utf-8")

        reopened = JsonFileRepository(path)

        assert path.read_text(encoding="utf-8") == compact
        assert len(reopened.list_nodes()) == 2


class TestSQLRepository:
    """Tests for the SQLite backend."""

    def test_state_survives_reopen(self, tmp_path: Path):
        path = tmp_path / "db" / "dag.sqlite"
        repository = SQLRepository.from_path(path)
        store = GraphStore(repository)
        graph, a, b = _populate(store)
        repository.close()

        reopened = GraphStore(SQLRepository.from_path(path))

        assert reopened.access_edge(graph.graph_id, a.node_id, b.node_id).enrichment == "needs"
        assert reopened.get_stats() == {"graphs": 1, "nodes": 2, "edges": 1}


class TestCreateRepository:
    """Tests for backend selection."""

    def test_memory(self):
        assert isinstance(create_repository(Config()), InMemoryRepository)

    def test_json(self, tmp_path: Path):
        config = Config(storage_backend="json", storage_path=str(tmp_path / "dag.json"))
        assert isinstance(create_repository(config), JsonFileRepository)

    def test_json_requires_path(self):
        with pytest.raises(ValueError, match="storage_path"):
            create_repository(Config(storage_backend="json"))

    def test_sqlite(self, tmp_path: Path):
        config = Config(storage_backend="sqlite", storage_path=str(tmp_path / "dag.sqlite"))
        repository = create_repository(config)

        assert isinstance(repository, SQLRepository)
        assert (tmp_path / "dag.sqlite").exists()

    def test_sqlite_in_memory(self):
        repository = create_repository(Config(storage_backend="sqlite"))
        assert repository.url == "sqlite+pysqlite:///:memory:"
