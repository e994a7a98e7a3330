"""Session and phase tracking for autonomous agents."""

__version__ = "0.1.0"

from .phases import CONSTITUTION_GRAPH, DEVELOPMENT_GRAPH, ConfigurationError, PhaseDefinition, PhaseGraph
from .storage import AgentSession, DashboardStats, DecisionLog, PBJCheckpoint, PhaseTransition, SessionStore
from .tracker import (
    ApprovalRequired,
    InvalidTransition,
    PhaseTracker,
    PhaseTrackerError,
    SessionClosed,
    SessionNotFound,
    UnknownPhase,
)

__all__ = [
    "__version__",
    "AgentSession",
    "ApprovalRequired",
    "CONSTITUTION_GRAPH",
    "ConfigurationError",
    "DEVELOPMENT_GRAPH",
    "DashboardStats",
    "DecisionLog",
    "InvalidTransition",
    "PBJCheckpoint",
    "PhaseDefinition",
    "PhaseGraph",
    "PhaseTracker",
    "PhaseTrackerError",
    "PhaseTransition",
    "SessionClosed",
    "SessionNotFound",
    "SessionStore",
    "UnknownPhase",
]
