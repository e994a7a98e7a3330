"""Phase graph models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class PhaseDefinition(BaseModel):
    """A single stage in an agent work cycle and the stages reachable from it."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Identifier, unique within its graph.")
    name: str = Field(..., description="Display name for the phase.")
    description: str = Field(default="", description="What happens during the phase.")
    objectives: tuple[str, ...] = Field(
        default=(),
        description="Ordered objectives an agent pursues in this phase.",
    )
    entry_conditions: tuple[str, ...] = Field(
        default=(),
        description="Conditions that should hold before entering the phase.",
    )
    exit_conditions: tuple[str, ...] = Field(
        default=(),
        description="Conditions that should hold before leaving the phase.",
    )
    next_phases: tuple[str, ...] = Field(
        default=(),
        description="Ids of the phases a session may transition to from here.",
    )

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Phase id must not be empty")
        return normalized

    @field_validator("objectives", "entry_conditions", "exit_conditions", "next_phases", mode="before")
    @classmethod
    def _ensure_sequence(cls, value: Any):
        if value is None:
            return ()
        if isinstance(value, str):
            raise TypeError("Phase lists must be sequences of strings, not a single string")
        return value

    @field_validator("next_phases")
    @classmethod
    def _dedupe_next_phases(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(item.strip() for item in value))


class PhaseGraph(BaseModel):
    """A named, ordered collection of phases.

    Graphs are swapped as a whole on the tracker; they are never merged.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., description="Name used to select the graph.")
    description: str = Field(default="")
    start_phase: str | None = Field(
        default=None,
        description="Phase new sessions begin in. Defaults to the first phase.",
    )
    phases: tuple[PhaseDefinition, ...] = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("Phase graph name must not be empty")
        return normalized

    @model_validator(mode="after")
    def _check_phase_ids(self) -> "PhaseGraph":
        seen: set[str] = set()
        for phase in self.phases:
            if phase.id in seen:
                raise ValueError(f"Duplicate phase id '{phase.id}' in graph '{self.name}'")
            seen.add(phase.id)
        if self.start_phase is not None and self.start_phase not in seen:
            raise ValueError(f"Start phase '{self.start_phase}' is not defined in graph '{self.name}'")
        return self

    @property
    def initial_phase(self) -> str:
        return self.start_phase or self.phases[0].id

    def __contains__(self, phase_id: object) -> bool:
        return any(phase.id == phase_id for phase in self.phases)

    def ids(self) -> list[str]:
        return [phase.id for phase in self.phases]

    def get(self, phase_id: str) -> PhaseDefinition | None:
        """Return the definition for ``phase_id`` or ``None`` when the graph lacks it."""

        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def allows(self, from_phase: str, to_phase: str) -> bool:
        definition = self.get(from_phase)
        return definition is not None and to_phase in definition.next_phases

    def dangling_references(self) -> list[tuple[str, str]]:
        """Return ``(phase_id, missing_id)`` pairs for next-phase ids not in the graph."""

        known = set(self.ids())
        return [
            (phase.id, target)
            for phase in self.phases
            for target in phase.next_phases
            if target not in known
        ]


__all__ = ["PhaseDefinition", "PhaseGraph"]
