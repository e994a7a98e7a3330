"""Configuration management for phase tracking."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class PhaseTrackingSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    data_dir: Path = Field(
        default=Path(".ai-sop/phase-tracking"), validation_alias="PHASE_TRACKING_DATA_DIR"
    )
    log_level: str = Field(default="INFO", validation_alias="PHASE_TRACKING_LOG_LEVEL")
    phase_graph: str = Field(default="constitution", validation_alias="PHASE_TRACKING_GRAPH")
    graph_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(), validation_alias="PHASE_TRACKING_GRAPH_PATHS"
    )
    require_approval: bool = Field(
        default=True, validation_alias="PHASE_TRACKING_REQUIRE_APPROVAL"
    )
    auto_log_decisions: bool = Field(
        default=True, validation_alias="PHASE_TRACKING_AUTO_LOG_DECISIONS"
    )
    strict_phase_validation: bool = Field(
        default=False, validation_alias="PHASE_TRACKING_STRICT_PHASES"
    )
    dashboard_host: str = Field(default="127.0.0.1", validation_alias="PHASE_TRACKING_DASHBOARD_HOST")
    dashboard_port: int = Field(default=3000, validation_alias="PHASE_TRACKING_DASHBOARD_PORT")
    cleanup_after_days: int = Field(default=30, validation_alias="PHASE_TRACKING_CLEANUP_DAYS")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "PHASE_TRACKING_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("phase_graph")
    @classmethod
    def _normalize_phase_graph(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("PHASE_TRACKING_GRAPH must not be empty")
        return normalized

    @field_validator("graph_paths", mode="before")
    @classmethod
    def _parse_graph_paths(cls, value):
        if value is None or value == "":
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts)
        raise TypeError("PHASE_TRACKING_GRAPH_PATHS must be a list of paths or a path-separated string")

    @field_validator("dashboard_port")
    @classmethod
    def _validate_dashboard_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("PHASE_TRACKING_DASHBOARD_PORT must be between 1 and 65535")
        return value

    @field_validator("cleanup_after_days")
    @classmethod
    def _validate_cleanup_after_days(cls, value: int) -> int:
        if value < 1:
            raise ValueError("PHASE_TRACKING_CLEANUP_DAYS must be >= 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> PhaseTrackingSettings:
    """Return cached settings instance."""

    settings = PhaseTrackingSettings()
    settings.data_dir = settings.data_dir.expanduser().resolve()
    settings.graph_paths = tuple(path.expanduser().resolve() for path in settings.graph_paths)
    return settings


__all__ = ["PhaseTrackingSettings", "get_settings"]
