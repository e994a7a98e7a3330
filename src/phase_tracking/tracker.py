"""Phase tracking service: session lifecycle, transitions and event logs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable
from uuid import uuid4

from .config import PhaseTrackingSettings
from .phases import CONSTITUTION_GRAPH, DEVELOPMENT_GRAPH, PhaseDefinition, PhaseGraph, resolve_graph
from .storage import (
    AgentSession,
    CheckpointStatus,
    DashboardStats,
    DecisionLog,
    PBJCheckpoint,
    PhaseTransition,
    SessionStatus,
    SessionStore,
)

logger = logging.getLogger(__name__)

_SESSION_CONTEXT_FIELDS = {
    "work_cycle_id": "work_cycle_id",
    "workCycleId": "work_cycle_id",
    "git_branch": "git_branch",
    "gitBranch": "git_branch",
    "issue_number": "issue_number",
    "issueNumber": "issue_number",
}
_CHECKPOINT_STATUSES = {"pass", "fail", "pending"}
_SETTABLE_STATUSES = {"active", "paused", "error"}


class PhaseTrackerError(RuntimeError):
    """Base class for phase tracker errors."""


class SessionNotFound(PhaseTrackerError):
    """Raised when an operation references an unknown session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidTransition(PhaseTrackerError):
    """Raised when the requested phase is not reachable from the current phase."""

    def __init__(self, from_phase: str, to_phase: str, reason: str | None = None) -> None:
        message = f"Invalid phase transition from {from_phase} to {to_phase}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.from_phase = from_phase
        self.to_phase = to_phase


class ApprovalRequired(PhaseTrackerError):
    """Raised when an approval-gated transition has no approver."""


class UnknownPhase(PhaseTrackerError):
    """Raised in strict mode when a session would start in a phase the graph lacks."""


class SessionClosed(PhaseTrackerError):
    """Raised when changing the status of a completed session."""


class PhaseTracker:
    """Owns in-memory session state and enforces the phase transition graph.

    Sessions are loaded from ``store`` once at construction. Every mutation
    is written back through the store before the call returns; persistence
    failures are logged by the store and do not roll back memory.
    """

    RECENT_WINDOW = timedelta(hours=24)
    RECENT_DECISION_LIMIT = 50
    RECENT_TRANSITION_LIMIT = 20

    def __init__(
        self,
        store: SessionStore,
        *,
        graph: PhaseGraph = CONSTITUTION_GRAPH,
        require_approval: bool = True,
        auto_log_decisions: bool = True,
        strict_phase_validation: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._graph = graph
        self.require_approval = require_approval
        self.auto_log_decisions = auto_log_decisions
        self.strict_phase_validation = strict_phase_validation
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_stamp = 0
        self._sessions: dict[str, AgentSession] = store.load_all()

    @classmethod
    def from_settings(
        cls,
        settings: PhaseTrackingSettings,
        *,
        graph: PhaseGraph | None = None,
    ) -> "PhaseTracker":
        """Build a tracker from settings, resolving the configured phase graph."""

        return cls(
            SessionStore(settings.data_dir),
            graph=graph or resolve_graph(settings.phase_graph, settings.graph_paths),
            require_approval=settings.require_approval,
            auto_log_decisions=settings.auto_log_decisions,
            strict_phase_validation=settings.strict_phase_validation,
        )

    # -- phase graph -----------------------------------------------------

    @property
    def phase_graph(self) -> PhaseGraph:
        return self._graph

    def get_phases(self) -> list[PhaseDefinition]:
        return list(self._graph.phases)

    def use_graph(self, graph: PhaseGraph) -> None:
        """Replace the active graph.

        Existing sessions keep their current phase even if the new graph does
        not define it.
        """

        logger.info("Switching phase graph", extra={"from_graph": self._graph.name, "to_graph": graph.name})
        self._graph = graph

    def use_constitution_phases(self) -> None:
        self.use_graph(CONSTITUTION_GRAPH)

    def use_development_phases(self) -> None:
        self.use_graph(DEVELOPMENT_GRAPH)

    # -- lifecycle -------------------------------------------------------

    def start_session(
        self,
        agent_id: str,
        initial_phase: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> AgentSession:
        phase = initial_phase or self._graph.initial_phase
        if self.strict_phase_validation and phase not in self._graph:
            raise UnknownPhase(f"Phase '{phase}' is not defined in graph '{self._graph.name}'")

        context = dict(context or {})
        fields: dict[str, Any] = {}
        metadata: dict[str, Any] = {}
        for key, value in context.items():
            if key in _SESSION_CONTEXT_FIELDS:
                if value is not None:
                    fields[_SESSION_CONTEXT_FIELDS[key]] = value
            else:
                metadata[key] = value

        now = self._clock()
        session = AgentSession(
            agent_id=agent_id,
            session_id=self._new_session_id(agent_id, now),
            start_time=now,
            current_phase=phase,
            status="active",
            metadata=metadata,
            **fields,
        )
        self._sessions[session.session_id] = session
        self._persist(session)
        logger.info(
            "Started session",
            extra={"session_id": session.session_id, "agent_id": agent_id, "phase": phase},
        )

        self.log_decision(
            session.session_id,
            "Session started",
            f"Agent {agent_id} initialized in {phase} phase",
            context,
        )
        return session

    def end_session(self, session_id: str, outcome: str | None = None) -> AgentSession | None:
        """Complete a session.

        Unknown ids are ignored and ``None`` is returned. Ending an already
        completed session leaves it untouched.
        """

        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("Ignoring end of unknown session", extra={"session_id": session_id})
            return None
        if session.status == "completed":
            return session

        session.end_time = self._clock()
        session.status = "completed"
        if outcome:
            session.decisions.append(self._decision(session, "Session completed", outcome, {}))
        self._persist(session)
        logger.info("Completed session", extra={"session_id": session_id})
        return session

    def set_status(self, session_id: str, status: SessionStatus, reason: str | None = None) -> AgentSession:
        """Move a session between active, paused and error."""

        if status not in _SETTABLE_STATUSES:
            raise ValueError(f"Status must be one of {sorted(_SETTABLE_STATUSES)}; use end_session to complete")
        session = self._require(session_id)
        if session.status == "completed":
            raise SessionClosed(f"Session {session_id} is completed and cannot change status")

        previous = session.status
        session.status = status
        self._persist(session)
        self.log_decision(
            session_id,
            "Session status changed",
            f"Status changed from {previous} to {status}" + (f": {reason}" if reason else ""),
            {"from_status": previous, "to_status": status},
        )
        return session

    # -- events ----------------------------------------------------------

    def transition_phase(
        self,
        session_id: str,
        to_phase: str,
        trigger: str,
        approved_by: str | None = None,
        notes: str | None = None,
    ) -> bool:
        session = self._require(session_id)
        from_phase = session.current_phase
        definition = self._graph.get(from_phase)

        if definition is None:
            if self.strict_phase_validation:
                raise InvalidTransition(
                    from_phase, to_phase, f"'{from_phase}' is not defined in graph '{self._graph.name}'"
                )
        elif to_phase not in definition.next_phases:
            raise InvalidTransition(from_phase, to_phase)

        if self.require_approval and not approved_by:
            raise ApprovalRequired("Phase transition requires approval")

        transition = PhaseTransition(
            id=f"{session_id}-transition-{uuid4().hex[:8]}",
            timestamp=self._clock(),
            agent_id=session.agent_id,
            from_phase=from_phase,
            to_phase=to_phase,
            trigger=trigger,
            approved_by=approved_by,
            notes=notes,
        )
        session.current_phase = to_phase
        session.transitions.append(transition)
        self._persist(session)
        logger.info(
            "Transitioned phase",
            extra={"session_id": session_id, "from_phase": from_phase, "to_phase": to_phase},
        )

        self.log_decision(
            session_id,
            "Phase transition",
            f"Transitioned from {from_phase} to {to_phase}: {trigger}",
            {"from_phase": from_phase, "to_phase": to_phase, "trigger": trigger, "approved_by": approved_by},
        )
        return True

    def log_decision(
        self,
        session_id: str,
        decision: str,
        reasoning: str,
        context: dict[str, Any] | None = None,
        outcome: str | None = None,
        tags: Iterable[str] = (),
    ) -> DecisionLog:
        session = self._require(session_id)
        entry = self._decision(session, decision, reasoning, context or {}, outcome, tags)
        session.decisions.append(entry)
        self._persist(session)
        return entry

    def record_pbj_checkpoint(
        self,
        session_id: str,
        checkpoint: str,
        status: CheckpointStatus,
        details: str = "",
        improvement_actions: Iterable[str] | None = None,
    ) -> PBJCheckpoint:
        if status not in _CHECKPOINT_STATUSES:
            raise ValueError(f"Checkpoint status must be one of {sorted(_CHECKPOINT_STATUSES)}")
        session = self._require(session_id)
        actions = tuple(improvement_actions) if improvement_actions is not None else None

        entry = PBJCheckpoint(
            id=f"{session_id}-pbj-{uuid4().hex[:8]}",
            timestamp=self._clock(),
            agent_id=session.agent_id,
            phase=session.current_phase,
            checkpoint=checkpoint,
            status=status,
            details=details,
            improvement_actions=actions,
        )
        session.pbj_checkpoints.append(entry)
        self._persist(session)

        if status == "fail" and self.auto_log_decisions:
            self.log_decision(
                session_id,
                "PB&J checkpoint failed",
                f"Failed checkpoint: {checkpoint}. {details}",
                {
                    "checkpoint": checkpoint,
                    "status": status,
                    "details": details,
                    "improvement_actions": list(actions) if actions is not None else None,
                },
                tags=("pbj-failure", "quality-issue"),
            )
        return entry

    # -- queries ---------------------------------------------------------

    def get_session(self, session_id: str) -> AgentSession | None:
        return self._sessions.get(session_id)

    def get_current_phase(self, session_id: str) -> str | None:
        session = self._sessions.get(session_id)
        return session.current_phase if session else None

    def get_all_sessions(self) -> list[AgentSession]:
        return list(self._sessions.values())

    def get_active_sessions(self) -> list[AgentSession]:
        return [session for session in self._sessions.values() if session.status == "active"]

    def get_agent_sessions(self, agent_id: str) -> list[AgentSession]:
        return [session for session in self._sessions.values() if session.agent_id == agent_id]

    def get_dashboard_stats(self) -> DashboardStats:
        sessions = list(self._sessions.values())
        active = [session for session in sessions if session.status == "active"]

        phase_distribution: dict[str, int] = {}
        for session in active:
            phase_distribution[session.current_phase] = phase_distribution.get(session.current_phase, 0) + 1

        cutoff = self._clock() - self.RECENT_WINDOW
        recent_decisions = sorted(
            (entry for session in sessions for entry in session.decisions if entry.timestamp > cutoff),
            key=lambda entry: entry.timestamp,
            reverse=True,
        )[: self.RECENT_DECISION_LIMIT]
        recent_transitions = sorted(
            (entry for session in sessions for entry in session.transitions if entry.timestamp > cutoff),
            key=lambda entry: entry.timestamp,
            reverse=True,
        )[: self.RECENT_TRANSITION_LIMIT]

        checkpoints = [entry for session in sessions for entry in session.pbj_checkpoints]
        passed = sum(1 for entry in checkpoints if entry.status == "pass")
        success_rate = 100 * passed / len(checkpoints) if checkpoints else 100.0

        durations = [
            session.duration_minutes()
            for session in sessions
            if session.status == "completed" and session.end_time is not None
        ]
        avg_duration = sum(durations) / len(durations) if durations else 0.0

        return DashboardStats(
            total_sessions=len(sessions),
            active_sessions=len(active),
            phase_distribution=phase_distribution,
            recent_decisions=recent_decisions,
            recent_transitions=recent_transitions,
            pbj_success_rate=round(success_rate, 1),
            avg_session_duration=round(avg_duration, 1),
        )

    # -- maintenance -----------------------------------------------------

    def cleanup_old_sessions(self, older_than_days: int = 30) -> int:
        """Remove completed sessions that started before the cutoff.

        Active, paused and error sessions are kept regardless of age.
        """

        cutoff = self._clock() - timedelta(days=older_than_days)
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if session.status == "completed" and session.start_time < cutoff
        ]
        for session_id in stale:
            self._store.delete(session_id)
            del self._sessions[session_id]

        if stale:
            logger.info("Cleaned up sessions", extra={"count": len(stale), "older_than_days": older_than_days})
        return len(stale)

    # -- helpers ---------------------------------------------------------

    def _require(self, session_id: str) -> AgentSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _persist(self, session: AgentSession) -> None:
        self._store.save(session)

    def _new_session_id(self, agent_id: str, now: datetime) -> str:
        stamp = max(int(now.timestamp() * 1000), self._last_stamp + 1)
        taken = {self._store.path_for(session_id).name for session_id in self._sessions}
        while (
            f"{agent_id}-{stamp}" in self._sessions
            or self._store.path_for(f"{agent_id}-{stamp}").name in taken
        ):
            stamp += 1
        self._last_stamp = stamp
        return f"{agent_id}-{stamp}"

    def _decision(
        self,
        session: AgentSession,
        decision: str,
        reasoning: str,
        context: dict[str, Any],
        outcome: str | None = None,
        tags: Iterable[str] = (),
    ) -> DecisionLog:
        return DecisionLog(
            id=f"{session.session_id}-decision-{uuid4().hex[:8]}",
            timestamp=self._clock(),
            agent_id=session.agent_id,
            phase=session.current_phase,
            decision=decision,
            reasoning=reasoning,
            context=context,
            outcome=outcome,
            tags=tuple(tags),
        )


__all__ = [
    "ApprovalRequired",
    "InvalidTransition",
    "PhaseTracker",
    "PhaseTrackerError",
    "SessionClosed",
    "SessionNotFound",
    "UnknownPhase",
]
