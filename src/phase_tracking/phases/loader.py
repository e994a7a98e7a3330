"""Phase graph loading utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from .builtin import BUILTIN_GRAPHS
from .models import PhaseGraph


class ConfigurationError(RuntimeError):
    """Raised when a phase graph is missing or cannot be parsed."""


class PhaseGraphLoader:
    """Loads phase graphs from YAML files on disk."""

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        paths = [Path(path) for path in (search_paths or [])]
        self._search_paths: list[Path] = [path for path in paths if path.exists()]

    @property
    def search_paths(self) -> list[Path]:
        """Return the normalized search paths."""

        return list(self._search_paths)

    def load_all(self) -> dict[str, PhaseGraph]:
        """Load graphs from all configured search paths.

        Later search paths override earlier ones when graph names collide.
        A graph whose ``next_phases`` point at phases it does not define is
        rejected.
        """

        if not self._search_paths:
            return {}

        graphs: dict[str, PhaseGraph] = {}
        errors: list[str] = []

        for base in self._search_paths:
            for path in sorted(base.glob("*.yml")) + sorted(base.glob("*.yaml")):
                try:
                    document = yaml.safe_load(path.read_text(encoding="utf-8"))
                except yaml.YAMLError as exc:  # pragma: no cover - library type
                    errors.append(f"Failed to parse YAML in {path}: {exc}")
                    continue

                if document is None:
                    continue

                try:
                    graph = PhaseGraph.model_validate(document)
                except ValidationError as exc:
                    errors.append(f"Phase graph validation error in {path}: {exc}")
                    continue

                dangling = graph.dangling_references()
                if dangling:
                    refs = ", ".join(f"{source} -> {target}" for source, target in dangling)
                    errors.append(f"Unknown next phases in {path}: {refs}")
                    continue

                graphs[graph.name] = graph

        if errors:
            raise ConfigurationError("; ".join(errors))

        return graphs

    def get(self, name: str) -> PhaseGraph:
        """Return a graph by name, falling back to the built-in graphs."""

        key = name.strip().lower()
        graphs = {**BUILTIN_GRAPHS, **self.load_all()}
        try:
            return graphs[key]
        except KeyError as exc:
            known = ", ".join(sorted(graphs))
            raise ConfigurationError(f"Phase graph '{name}' not found (known graphs: {known})") from exc


def resolve_graph(name: str, search_paths: Iterable[Path] | None = None) -> PhaseGraph:
    """Convenience wrapper returning a custom or built-in graph by name."""

    loader = PhaseGraphLoader(search_paths)
    return loader.get(name)


__all__ = ["ConfigurationError", "PhaseGraphLoader", "resolve_graph"]
