"""Command line front end for phase tracking."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .config import PhaseTrackingSettings, get_settings
from .phases import DEVELOPMENT_GRAPH, ConfigurationError, PhaseGraph, resolve_graph
from .storage import AgentSession
from .tracker import PhaseTracker, PhaseTrackerError


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI and dashboard."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_context(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"--context is not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("--context must be a JSON object")
    return parsed


def _select_graph(settings: PhaseTrackingSettings, args: argparse.Namespace) -> PhaseGraph:
    if getattr(args, "dev_cycle", False):
        return DEVELOPMENT_GRAPH
    return resolve_graph(settings.phase_graph, settings.graph_paths)


def load_tracker(settings: PhaseTrackingSettings, args: argparse.Namespace) -> PhaseTracker:
    return PhaseTracker.from_settings(settings, graph=_select_graph(settings, args))


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2)


def _session_line(session: AgentSession) -> str:
    return (
        f"{session.session_id} [{session.status}] agent={session.agent_id} "
        f"phase={session.current_phase} started={session.start_time.isoformat()}"
    )


def cmd_start(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    context: dict[str, Any] = {}
    if args.work_cycle:
        context["work_cycle_id"] = args.work_cycle
    if args.branch:
        context["git_branch"] = args.branch
    if args.issue:
        context["issue_number"] = args.issue
    session = tracker.start_session(args.agent_id, args.phase, context)
    print(session.session_id)
    return 0


def cmd_transition(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    previous = tracker.get_current_phase(args.session_id)
    tracker.transition_phase(
        args.session_id,
        args.to_phase,
        args.trigger,
        approved_by=args.approved_by,
        notes=args.notes,
    )
    print(f"Transitioned {args.session_id}: {previous} -> {args.to_phase}")
    return 0


def cmd_decision(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    entry = tracker.log_decision(
        args.session_id,
        args.decision,
        args.reasoning,
        _parse_context(args.context),
        outcome=args.outcome,
        tags=_split_csv(args.tags),
    )
    print(f"Logged decision {entry.id} in phase {entry.phase}")
    return 0


def cmd_pbj(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    actions = _split_csv(args.actions)
    entry = tracker.record_pbj_checkpoint(
        args.session_id,
        args.checkpoint,
        args.status,
        args.details,
        actions or None,
    )
    print(f"Recorded PB&J checkpoint '{entry.checkpoint}' [{entry.status}] in phase {entry.phase}")
    return 0


def cmd_stats(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    stats = tracker.get_dashboard_stats()
    if args.json:
        print(_dump(stats.model_dump(mode="json", by_alias=True)))
        return 0

    print(f"Total sessions:      {stats.total_sessions}")
    print(f"Active sessions:     {stats.active_sessions}")
    print(f"PB&J success rate:   {stats.pbj_success_rate:.1f}%")
    print(f"Avg session (min):   {stats.avg_session_duration:.1f}")
    print("Phase distribution:")
    if not stats.phase_distribution:
        print("  (no active sessions)")
    for phase, count in sorted(stats.phase_distribution.items()):
        print(f"  {phase}: {count}")
    print(f"Decisions (24h):     {len(stats.recent_decisions)}")
    print(f"Transitions (24h):   {len(stats.recent_transitions)}")
    return 0


def cmd_sessions(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    sessions = tracker.get_all_sessions() if args.all else tracker.get_active_sessions()
    sessions.sort(key=lambda session: session.start_time)
    if args.json:
        print(_dump([session.model_dump(mode="json", by_alias=True) for session in sessions]))
        return 0
    if not sessions:
        print("No sessions found")
    for session in sessions:
        print(_session_line(session))
    return 0


def cmd_show(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    session = tracker.get_session(args.session_id)
    if session is None:
        print(f"Error: Session {args.session_id} not found", file=sys.stderr)
        return 1
    if args.json:
        print(_dump(session.model_dump(mode="json", by_alias=True)))
        return 0

    print(_session_line(session))
    for label, value in (
        ("work cycle", session.work_cycle_id),
        ("branch", session.git_branch),
        ("issue", session.issue_number),
    ):
        if value:
            print(f"  {label}: {value}")
    print(f"  decisions: {len(session.decisions)}")
    for entry in session.decisions:
        print(f"    {entry.timestamp.isoformat()} [{entry.phase}] {entry.decision}")
    print(f"  transitions: {len(session.transitions)}")
    for entry in session.transitions:
        approver = f" (approved by {entry.approved_by})" if entry.approved_by else ""
        print(f"    {entry.timestamp.isoformat()} {entry.from_phase} -> {entry.to_phase}{approver}")
    print(f"  pbj checkpoints: {len(session.pbj_checkpoints)}")
    for entry in session.pbj_checkpoints:
        print(f"    {entry.timestamp.isoformat()} [{entry.status}] {entry.checkpoint}")
    return 0


def cmd_status(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    session = tracker.set_status(args.session_id, args.status, args.reason)
    print(f"Session {session.session_id} is now {session.status}")
    return 0


def cmd_end(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    session = tracker.end_session(args.session_id, args.outcome)
    if session is None:
        print(f"Error: Session {args.session_id} not found", file=sys.stderr)
        return 1
    print(f"Ended session {session.session_id}")
    return 0


def cmd_cleanup(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    removed = tracker.cleanup_old_sessions(args.days)
    print(f"Removed {removed} completed session(s) older than {args.days} day(s)")
    return 0


def cmd_info(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    graph = tracker.phase_graph
    print(f"Phase graph: {graph.name}")
    if graph.description:
        print(graph.description)
    for phase in graph.phases:
        print()
        print(f"{phase.name} ({phase.id})")
        if phase.description:
            print(f"  {phase.description}")
        for label, items in (
            ("Objectives", phase.objectives),
            ("Entry conditions", phase.entry_conditions),
            ("Exit conditions", phase.exit_conditions),
        ):
            if items:
                print(f"  {label}:")
                for item in items:
                    print(f"    - {item}")
        print(f"  Next phases: {', '.join(phase.next_phases) or '(none)'}")
    return 0


def cmd_dashboard(tracker: PhaseTracker, args: argparse.Namespace) -> int:
    from .dashboard import run_dashboard

    settings = args.settings
    port = args.port or settings.dashboard_port
    print(f"Dashboard available at http://{settings.dashboard_host}:{port}")
    run_dashboard(tracker, host=settings.dashboard_host, port=port, log_level=settings.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phase", description="Track agent phases, decisions and PB&J checkpoints")
    parser.add_argument("--data-dir", type=Path, help="Directory holding session files")
    sub = parser.add_subparsers(dest="cmd")

    p_start = sub.add_parser("start", help="Start a new agent session")
    p_start.add_argument("agent_id")
    p_start.add_argument("--phase", help="Initial phase (defaults to the graph's first phase)")
    p_start.add_argument("--work-cycle")
    p_start.add_argument("--branch")
    p_start.add_argument("--issue")
    p_start.add_argument("--dev-cycle", action="store_true", help="Use the development cycle phases")
    p_start.set_defaults(func=cmd_start)

    p_transition = sub.add_parser("transition", help="Move a session to another phase")
    p_transition.add_argument("session_id")
    p_transition.add_argument("to_phase")
    p_transition.add_argument("--trigger", default="Manual transition")
    p_transition.add_argument("--approved-by")
    p_transition.add_argument("--notes")
    p_transition.add_argument("--dev-cycle", action="store_true", help="Validate against the development cycle phases")
    p_transition.set_defaults(func=cmd_transition)

    p_decision = sub.add_parser("decision", help="Log a decision")
    p_decision.add_argument("session_id")
    p_decision.add_argument("decision")
    p_decision.add_argument("--reasoning", default="")
    p_decision.add_argument("--context", help="JSON object with additional context")
    p_decision.add_argument("--outcome")
    p_decision.add_argument("--tags", help="Comma-separated tags")
    p_decision.set_defaults(func=cmd_decision)

    p_pbj = sub.add_parser("pbj", help="Record a PB&J checkpoint")
    p_pbj.add_argument("session_id")
    p_pbj.add_argument("checkpoint")
    p_pbj.add_argument("--status", choices=("pass", "fail", "pending"), default="pending")
    p_pbj.add_argument("--details", default="")
    p_pbj.add_argument("--actions", help="Comma-separated improvement actions")
    p_pbj.set_defaults(func=cmd_pbj)

    p_stats = sub.add_parser("stats", help="Show dashboard statistics")
    p_stats.add_argument("--json", action="store_true", help="Output JSON")
    p_stats.set_defaults(func=cmd_stats)

    p_sessions = sub.add_parser("sessions", help="List sessions")
    p_sessions.add_argument("--all", action="store_true", help="Include non-active sessions")
    p_sessions.add_argument("--json", action="store_true", help="Output JSON")
    p_sessions.set_defaults(func=cmd_sessions)

    p_show = sub.add_parser("show", help="Show one session with its events")
    p_show.add_argument("session_id")
    p_show.add_argument("--json", action="store_true", help="Output JSON")
    p_show.set_defaults(func=cmd_show)

    p_status = sub.add_parser("status", help="Pause, resume or flag a session as errored")
    p_status.add_argument("session_id")
    p_status.add_argument("status", choices=("active", "paused", "error"))
    p_status.add_argument("--reason")
    p_status.set_defaults(func=cmd_status)

    p_end = sub.add_parser("end", help="Complete a session")
    p_end.add_argument("session_id")
    p_end.add_argument("--outcome")
    p_end.set_defaults(func=cmd_end)

    p_cleanup = sub.add_parser("cleanup", help="Delete old completed sessions")
    p_cleanup.add_argument("--days", type=int, default=None, help="Age threshold in days")
    p_cleanup.set_defaults(func=cmd_cleanup)

    p_info = sub.add_parser("info", help="Describe the phase graph")
    p_info.add_argument("--dev-cycle", action="store_true", help="Show the development cycle phases")
    p_info.set_defaults(func=cmd_info)

    p_dashboard = sub.add_parser("dashboard", help="Serve the web dashboard")
    p_dashboard.add_argument("--port", type=int, default=None)
    p_dashboard.add_argument("--dev-cycle", action="store_true", help="Use the development cycle phases")
    p_dashboard.set_defaults(func=cmd_dashboard)

    return parser


def run(argv: list[str] | None = None, *, settings: PhaseTrackingSettings | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    settings = settings or get_settings()
    if args.data_dir is not None:
        settings = settings.model_copy(update={"data_dir": args.data_dir.expanduser().resolve()})
    if args.func is cmd_cleanup and args.days is None:
        args.days = settings.cleanup_after_days
    args.settings = settings
    configure_logging(settings.log_level)

    try:
        tracker = load_tracker(settings, args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        return args.func(tracker, args)
    except (PhaseTrackerError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    exit_code = run(argv)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
