from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from phase_tracking.storage import (
    AgentSession,
    DecisionLog,
    PBJCheckpoint,
    PhaseTransition,
    SessionStore,
)

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _session() -> AgentSession:
    return AgentSession(
        agent_id="agent-1",
        session_id="agent-1-1735732800000",
        start_time=T0,
        end_time=T0.replace(hour=13, minute=30),
        current_phase="build",
        status="completed",
        work_cycle_id="wc-1",
        issue_number="12",
        metadata={"team": "payments"},
        decisions=[
            DecisionLog(
                id="d1",
                timestamp=T0,
                agent_id="agent-1",
                phase="discovery",
                decision="Session started",
                reasoning="init",
                context={"nested": {"a": [1, 2]}, "flag": False},
                tags=("start",),
            ),
            DecisionLog(
                id="d2",
                timestamp=T0.replace(minute=5, microsecond=123456),
                agent_id="agent-1",
                phase="build",
                decision="Pick framework",
                reasoning="speed",
                outcome="fastapi",
            ),
        ],
        transitions=[
            PhaseTransition(
                id="t1",
                timestamp=T0.replace(minute=4),
                agent_id="agent-1",
                from_phase="discovery",
                to_phase="build",
                trigger="reqs done",
                approved_by="lead",
            )
        ],
        pbj_checkpoints=[
            PBJCheckpoint(
                id="p1",
                timestamp=T0.replace(minute=10),
                agent_id="agent-1",
                phase="build",
                checkpoint="Tests green?",
                status="fail",
                details="flaky",
                improvement_actions=("quarantine test",),
            )
        ],
    )


def test_save_and_reload_round_trip(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "data")
    session = _session()

    assert store.save(session) is True
    loaded = store.load_all()

    restored = loaded[session.session_id]
    assert restored == session
    assert isinstance(restored.start_time, datetime)
    assert restored.decisions[1].timestamp == session.decisions[1].timestamp
    assert [entry.id for entry in restored.decisions] == ["d1", "d2"]


def test_file_layout_uses_camel_case_and_iso_timestamps(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    session = _session()
    store.save(session)

    path = tmp_path / f"session-{session.session_id}.json"
    assert store.path_for(session.session_id) == path
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["sessionId"] == session.session_id
    assert document["currentPhase"] == "build"
    assert document["pbjCheckpoints"][0]["improvementActions"] == ["quarantine test"]
    assert document["transitions"][0]["approvedBy"] == "lead"
    assert datetime.fromisoformat(document["startTime"].replace("Z", "+00:00")) == T0


def test_loads_sessions_written_by_earlier_tool(tmp_path: Path) -> None:
    legacy = {
        "agentId": "security-agent",
        "sessionId": "security-agent-1719835200000",
        "startTime": "2024-07-01T12:00:00.000Z",
        "currentPhase": "discovery",
        "status": "active",
        "workCycleId": "auth-hardening",
        "gitBranch": "feature/auth",
        "issueNumber": 42,
        "priority": "high",
        "metadata": {"team": "security"},
        "decisions": [
            {
                "id": "security-agent-1719835200000-decision-1719835200001",
                "timestamp": "2024-07-01T12:00:00.001Z",
                "agentId": "security-agent",
                "phase": "discovery",
                "decision": "Session started",
                "reasoning": "Agent security-agent initialized in discovery phase",
                "context": {},
                "tags": [],
            }
        ],
        "transitions": [],
        "pbjCheckpoints": [],
    }
    (tmp_path / "session-security-agent-1719835200000.json").write_text(
        json.dumps(legacy), encoding="utf-8"
    )

    store = SessionStore(tmp_path)
    sessions = store.load_all()

    session = sessions["security-agent-1719835200000"]
    assert session.start_time == datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)
    assert session.decisions[0].timestamp.tzinfo is not None
    assert session.work_cycle_id == "auth-hardening"
    assert session.git_branch == "feature/auth"
    assert session.issue_number == "42"
    assert session.metadata == {"team": "security", "priority": "high"}
    assert session.end_time is None

    store.save(session)
    reloaded = store.load_all()["security-agent-1719835200000"]
    assert reloaded.metadata["priority"] == "high"


def test_numeric_work_cycle_in_legacy_file(tmp_path: Path) -> None:
    payload = _session().model_dump(mode="json", by_alias=True)
    payload["workCycleId"] = 12
    (tmp_path / f"session-{payload['sessionId']}.json").write_text(json.dumps(payload), encoding="utf-8")

    sessions = SessionStore(tmp_path).load_all()

    assert sessions[payload["sessionId"]].work_cycle_id == "12"


def test_naive_timestamps_are_treated_as_utc(tmp_path: Path) -> None:
    payload = _session().model_dump(mode="json", by_alias=True)
    payload["startTime"] = "2025-01-01T12:00:00"
    (tmp_path / "session-naive.json").write_text(json.dumps(payload), encoding="utf-8")

    session = next(iter(SessionStore(tmp_path).load_all().values()))
    assert session.start_time == T0


def test_unparsable_files_are_skipped(tmp_path: Path, caplog) -> None:
    store = SessionStore(tmp_path)
    store.save(_session())
    (tmp_path / "session-broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "session-invalid.json").write_text(json.dumps({"agentId": "x"}), encoding="utf-8")
    (tmp_path / "session-binary.json").write_bytes(b"\xff\xfe\x00garbage")
    (tmp_path / "notes.json").write_text("ignored", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        sessions = store.load_all()

    assert list(sessions) == [_session().session_id]
    skipped = [record for record in caplog.records if record.message == "Skipping unreadable session file"]
    assert len(skipped) == 3


def test_missing_directory_loads_nothing(tmp_path: Path) -> None:
    assert SessionStore(tmp_path / "absent").load_all() == {}


def test_delete(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    session = _session()
    store.save(session)

    assert store.delete(session.session_id) is True
    assert not store.path_for(session.session_id).exists()
    assert store.delete(session.session_id) is True


def test_save_failure_is_reported_not_raised(tmp_path: Path, caplog) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    store = SessionStore(blocker)

    with caplog.at_level(logging.ERROR):
        assert store.save(_session()) is False
    assert any(record.message == "Failed to persist session" for record in caplog.records)


def test_path_for_keeps_files_inside_data_dir(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    path = store.path_for("team/agent-1")
    assert path.parent == tmp_path
    assert path.name == "session-team_agent-1.json"
