"""Storage abstractions for phase tracking."""

from .models import (
    AgentSession,
    CheckpointStatus,
    DashboardStats,
    DecisionLog,
    PBJCheckpoint,
    PhaseTransition,
    SessionStatus,
)
from .session_store import SessionStore

__all__ = [
    "AgentSession",
    "CheckpointStatus",
    "DashboardStats",
    "DecisionLog",
    "PBJCheckpoint",
    "PhaseTransition",
    "SessionStatus",
    "SessionStore",
]
