"""Data models for persistent session tracking."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

SessionStatus = Literal["active", "completed", "paused", "error"]
CheckpointStatus = Literal["pass", "fail", "pending"]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _EventModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    timestamp: datetime
    agent_id: str

    @field_validator("timestamp")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DecisionLog(_EventModel):
    """A choice made during a session, stamped with the phase at logging time."""

    phase: str
    decision: str
    reasoning: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    outcome: str | None = None
    tags: tuple[str, ...] = ()


class PhaseTransition(_EventModel):
    """A validated change of a session's current phase."""

    from_phase: str
    to_phase: str
    trigger: str
    approved_by: str | None = None
    notes: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class PBJCheckpoint(_EventModel):
    """A pass/fail/pending quality gate recorded against a session."""

    phase: str
    checkpoint: str
    status: CheckpointStatus
    details: str = ""
    improvement_actions: tuple[str, ...] | None = None


class AgentSession(BaseModel):
    """One tracked unit of agent work and its append-only event logs."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    agent_id: str
    session_id: str
    start_time: datetime
    end_time: datetime | None = None
    current_phase: str
    status: SessionStatus = "active"
    work_cycle_id: str | None = None
    git_branch: str | None = None
    issue_number: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    decisions: list[DecisionLog] = Field(default_factory=list)
    transitions: list[PhaseTransition] = Field(default_factory=list)
    pbj_checkpoints: list[PBJCheckpoint] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def _ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @model_validator(mode="before")
    @classmethod
    def _fold_unknown_keys(cls, data: Any) -> Any:
        """Move unrecognised top-level keys into ``metadata`` so they survive a save."""

        if not isinstance(data, dict):
            return data
        known: set[str] = set()
        for name, field in cls.model_fields.items():
            known.add(name)
            if field.alias:
                known.add(field.alias)
        extras = {key: value for key, value in data.items() if key not in known}
        if not extras:
            return data
        cleaned = {key: value for key, value in data.items() if key in known}
        metadata = dict(cleaned.get("metadata") or {})
        for key, value in extras.items():
            metadata.setdefault(key, value)
        cleaned["metadata"] = metadata
        return cleaned

    @field_validator("work_cycle_id", "git_branch", "issue_number", mode="before")
    @classmethod
    def _coerce_scalar_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def duration_minutes(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() / 60


class DashboardStats(BaseModel):
    """Aggregates recomputed from all sessions on every query."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_sessions: int
    active_sessions: int
    phase_distribution: dict[str, int]
    recent_decisions: list[DecisionLog]
    recent_transitions: list[PhaseTransition]
    pbj_success_rate: float
    avg_session_duration: float


__all__ = [
    "AgentSession",
    "CheckpointStatus",
    "DashboardStats",
    "DecisionLog",
    "PBJCheckpoint",
    "PhaseTransition",
    "SessionStatus",
]
