"""JSON snapshot export and import."""

import json
from pathlib import Path

from .base import DAGRepository
from .in_memory import InMemoryRepository


class GraphStorage:
    """Save and load repository snapshots."""

    def save_json(self, repository: DAGRepository, path: str | Path) -> None:
        """Save every graph, node and edge to a JSON file.

        The snapshot is encoded before anything touches the disk, then
        written next to its destination and moved into place. An
        unencodable payload raises without creating or changing any file.

        Args:
            repository: Repository to dump
            path: File path to save to
        """
        payload = json.dumps(repository.to_dict(), indent=2, ensure_ascii=False)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        tmp_path.replace(path)

    def load_json(self, path: str | Path) -> InMemoryRepository:
        """Load a snapshot into a fresh in-memory repository.

        Args:
            path: File path to load from

        Returns:
            Repository holding the loaded records
        """
        repository = InMemoryRepository()
        self.load_into(repository, path)
        return repository

    def load_into(self, repository: DAGRepository, path: str | Path) -> None:
        """Insert a snapshot's records into an existing repository.

        Args:
            repository: Repository to fill
            path: File path to load from
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        repository.load_dict(data)
