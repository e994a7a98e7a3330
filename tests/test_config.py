from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from phase_tracking.config import PhaseTrackingSettings, get_settings


def test_defaults(monkeypatch) -> None:
    for name in list(os.environ):
        if name.startswith("PHASE_TRACKING_"):
            monkeypatch.delenv(name)

    settings = PhaseTrackingSettings()

    assert settings.data_dir == Path(".ai-sop/phase-tracking")
    assert settings.phase_graph == "constitution"
    assert settings.graph_paths == ()
    assert settings.require_approval is True
    assert settings.auto_log_decisions is True
    assert settings.strict_phase_validation is False
    assert settings.dashboard_port == 3000
    assert settings.cleanup_after_days == 30


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PHASE_TRACKING_LOG_LEVEL", " debug ")
    monkeypatch.setenv("PHASE_TRACKING_GRAPH", "Development")
    monkeypatch.setenv("PHASE_TRACKING_GRAPH_PATHS", os.pathsep.join([str(tmp_path / "a"), str(tmp_path / "b")]))
    monkeypatch.setenv("PHASE_TRACKING_REQUIRE_APPROVAL", "false")
    monkeypatch.setenv("PHASE_TRACKING_STRICT_PHASES", "true")

    settings = PhaseTrackingSettings()

    assert settings.log_level == "DEBUG"
    assert settings.phase_graph == "development"
    assert settings.graph_paths == (tmp_path / "a", tmp_path / "b")
    assert settings.require_approval is False
    assert settings.strict_phase_validation is True


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("PHASE_TRACKING_LOG_LEVEL", "LOUD"),
        ("PHASE_TRACKING_DASHBOARD_PORT", "70000"),
        ("PHASE_TRACKING_CLEANUP_DAYS", "0"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        PhaseTrackingSettings()


def test_get_settings_resolves_paths(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PHASE_TRACKING_DATA_DIR", str(tmp_path / "x" / ".." / "data"))
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.data_dir == (tmp_path / "data").resolve()
        assert get_settings() is settings
    finally:
        get_settings.cache_clear()
