from pathlib import Path
import textwrap

import pytest
from pydantic import ValidationError

from phase_tracking.phases import (
    BUILTIN_GRAPHS,
    CONSTITUTION_GRAPH,
    DEVELOPMENT_GRAPH,
    ConfigurationError,
    PhaseDefinition,
    PhaseGraph,
    PhaseGraphLoader,
    resolve_graph,
)


def write_graph(path: Path, *, description: str, review_next: str = "[ship]") -> None:
    path.write_text(
        textwrap.dedent(
            """
            name: Review
            description: {description}
            phases:
              - id: draft
                name: Draft
                objectives:
                  - write it
                next_phases: [review]
              - id: review
                name: Review
                nextPhases: {review_next}
              - id: ship
                name: Ship
            """
        ).strip().format(description=description, review_next=review_next),
        encoding="utf-8",
    )


@pytest.mark.parametrize("graph", list(BUILTIN_GRAPHS.values()), ids=lambda graph: graph.name)
def test_builtin_graphs_have_no_dangling_references(graph: PhaseGraph) -> None:
    assert graph.dangling_references() == []
    assert len(graph.phases) == 4


def test_constitution_graph_edges() -> None:
    graph = CONSTITUTION_GRAPH
    assert graph.ids() == ["discovery", "build", "delivery", "feedback"]
    assert graph.initial_phase == "discovery"
    assert graph.allows("discovery", "build")
    assert graph.allows("feedback", "discovery")
    assert graph.allows("feedback", "build")
    assert not graph.allows("build", "feedback")
    assert not graph.allows("unknown", "build")


def test_development_graph_edges() -> None:
    graph = DEVELOPMENT_GRAPH
    assert graph.ids() == ["discovery", "planning", "development", "quality"]
    assert graph.get("quality").next_phases == ("discovery", "planning")
    assert graph.get("build") is None
    assert "planning" in graph
    assert "build" not in graph


def test_graph_rejects_duplicate_ids_and_unknown_start() -> None:
    phase = PhaseDefinition(id="a", name="A")
    with pytest.raises(ValidationError):
        PhaseGraph(name="dup", phases=(phase, phase))
    with pytest.raises(ValidationError):
        PhaseGraph(name="bad-start", start_phase="zzz", phases=(phase,))


def test_dangling_references_reported() -> None:
    graph = PhaseGraph(
        name="loose",
        phases=(PhaseDefinition(id="a", name="A", next_phases=("b", "c")), PhaseDefinition(id="b", name="B")),
    )
    assert graph.dangling_references() == [("a", "c")]


def test_loader_merges_paths(tmp_path: Path) -> None:
    base = tmp_path / "base"
    base.mkdir()
    override = tmp_path / "override"
    override.mkdir()

    write_graph(base / "review.yaml", description="Base")
    write_graph(override / "review.yml", description="Override")

    graphs = PhaseGraphLoader([base, override]).load_all()

    graph = graphs["review"]
    assert graph.description == "Override"
    assert graph.get("draft").objectives == ("write it",)
    assert graph.allows("review", "ship")


def test_loader_handles_missing_paths(tmp_path: Path) -> None:
    loader = PhaseGraphLoader([tmp_path / "absent"])
    assert loader.search_paths == []
    assert loader.load_all() == {}


def test_loader_reports_validation_error(tmp_path: Path) -> None:
    (tmp_path / "broken.yaml").write_text("name: broken\nphases: []", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        PhaseGraphLoader([tmp_path]).load_all()


def test_loader_rejects_dangling_next_phase(tmp_path: Path) -> None:
    write_graph(tmp_path / "review.yaml", description="Bad", review_next="[publish]")

    with pytest.raises(ConfigurationError, match="review -> publish"):
        PhaseGraphLoader([tmp_path]).load_all()


def test_resolve_graph_prefers_custom_then_builtin(tmp_path: Path) -> None:
    write_graph(tmp_path / "review.yaml", description="Custom")

    assert resolve_graph("review", [tmp_path]).description == "Custom"
    assert resolve_graph("Development", [tmp_path]) is DEVELOPMENT_GRAPH
    assert resolve_graph("constitution") is CONSTITUTION_GRAPH

    with pytest.raises(ConfigurationError, match="not found"):
        resolve_graph("missing", [tmp_path])
