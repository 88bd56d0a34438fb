"""
Pipeline store collaborators.

The gate only ever reads from the store, and only in delta mode, to find
the currently stored version of the pipeline being saved. Real deployments
plug in their own persistence by satisfying PipelineLookup.
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Protocol, Tuple

import yaml

from pipegate.core.exceptions import ConfigError
from pipegate.core.models import Pipeline


class PipelineLookup(Protocol):
    def get_pipelines_by_application(
        self,
        application: str,
        force_refresh: bool = True,
    ) -> List[Pipeline]:
        ...


class InMemoryPipelineStore:
    """
    Thread-safe dict-backed store, keyed by (application, casefolded name).

    force_refresh is accepted for interface compatibility; there is no
    cache to bypass.
    """

    def __init__(self, pipelines=None):
        self._lock = threading.Lock()
        self._pipelines: Dict[Tuple[str, str], Pipeline] = {}
        for pipeline in pipelines or []:
            self.save(pipeline)

    def save(self, pipeline: Pipeline) -> None:
        """Insert or replace by application + case-insensitive name."""
        if not isinstance(pipeline.application, str) or not pipeline.application:
            raise ValueError("stored pipelines need a string application")
        if not isinstance(pipeline.name, str) or not pipeline.name:
            raise ValueError("stored pipelines need a string name")
        key = (pipeline.application, pipeline.name.casefold())
        with self._lock:
            self._pipelines[key] = pipeline

    def get_pipelines_by_application(
        self,
        application: str,
        force_refresh: bool = True,
    ) -> List[Pipeline]:
        with self._lock:
            return [
                p for (app, _), p in self._pipelines.items()
                if app == application
            ]

    def all(self) -> List[Pipeline]:
        with self._lock:
            return list(self._pipelines.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._pipelines)

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryPipelineStore":
        """
        Load a JSON or YAML list of pipeline documents, or a mapping with a
        "pipelines" list.
        """
        data = load_document(path)
        if isinstance(data, dict):
            data = data.get("pipelines")
        if not isinstance(data, list):
            raise ConfigError(f"{path} must contain a list of pipelines")
        try:
            return cls(Pipeline.from_dict(item) for item in data)
        except (AttributeError, ValueError) as exc:
            raise ConfigError(f"Invalid pipeline in {path}: {exc}") from exc


def load_document(path: Path):
    """Read a JSON (.json) or YAML (anything else) file."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"File not found: {path}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
