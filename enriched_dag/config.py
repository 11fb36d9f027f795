"""Configuration management for the DAG store."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

STORAGE_BACKENDS = ("memory", "json", "sqlite")
CONFIG_FILENAME = "config.yaml"
PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass
class Config:
    """Configuration for the DAG store."""

    storage_backend: str = "memory"
    storage_path: Optional[str] = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend: {self.storage_backend}. "
                f"Expected one of: {', '.join(STORAGE_BACKENDS)}"
            )

    @staticmethod
    def _locate_yaml(config_path: Optional[str] = None) -> Optional[Path]:
        """Pick the explicit config file, else the first default location present.

        Defaults are checked in the working directory, then the project root.
        """
        if config_path:
            candidates = [Path(config_path)]
        else:
            candidates = [Path.cwd() / CONFIG_FILENAME, PROJECT_ROOT / CONFIG_FILENAME]
        return next((candidate for candidate in candidates if candidate.is_file()), None)

    @classmethod
    def from_yaml(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from YAML file and environment variables.

        Args:
            config_path: Path to config.yaml file. If None, searches in current
                        directory and project root.

        Returns:
            Config instance with merged settings.
        """
        config_data = {
            "storage": {
                "backend": "memory",
                "path": None,
            },
            "logging": {
                "level": "WARNING",
            },
        }

        yaml_path = cls._locate_yaml(config_path)

        if yaml_path is not None:
            with open(yaml_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
                for section in config_data:
                    if section in loaded:
                        config_data[section].update(loaded[section] or {})

        # Environment variables override YAML
        storage_config = config_data["storage"]
        logging_config = config_data["logging"]
        return cls(
            storage_backend=os.environ.get("DAG_STORAGE_BACKEND") or storage_config.get("backend", "memory"),
            storage_path=os.environ.get("DAG_STORAGE_PATH") or storage_config.get("path"),
            log_level=(os.environ.get("DAG_LOG_LEVEL") or logging_config.get("level", "WARNING")).upper(),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables and any default config.yaml."""
        return cls.from_yaml()

    def apply_logging(self) -> None:
        """Set the package logger to the configured level."""
        logging.getLogger("enriched_dag").setLevel(self.log_level)
