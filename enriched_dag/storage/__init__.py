"""Storage backends for the DAG store."""

from ..config import Config
from .base import DAGRepository
from .in_memory import InMemoryRepository, JsonFileRepository
from .json_storage import GraphStorage
from .sql_store import SQLRepository


def create_repository(config: Config) -> DAGRepository:
    """Build the repository selected by ``config.storage_backend``."""
    backend = config.storage_backend
    if backend == "sqlite":
        if config.storage_path:
            return SQLRepository.from_path(config.storage_path)
        return SQLRepository()
    if backend == "json":
        if not config.storage_path:
            raise ValueError("storage_path is required for the json storage backend")
        return JsonFileRepository(config.storage_path)
    if backend == "memory":
        return InMemoryRepository()
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "DAGRepository",
    "InMemoryRepository",
    "JsonFileRepository",
    "GraphStorage",
    "SQLRepository",
    "create_repository",
]
