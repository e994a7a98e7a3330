"""Phase graph models, built-in graphs and loader exports."""

from .builtin import BUILTIN_GRAPHS, CONSTITUTION_GRAPH, DEVELOPMENT_GRAPH
from .loader import ConfigurationError, PhaseGraphLoader, resolve_graph
from .models import PhaseDefinition, PhaseGraph

__all__ = [
    "BUILTIN_GRAPHS",
    "CONSTITUTION_GRAPH",
    "DEVELOPMENT_GRAPH",
    "ConfigurationError",
    "PhaseDefinition",
    "PhaseGraph",
    "PhaseGraphLoader",
    "resolve_graph",
]
