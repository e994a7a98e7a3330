"""Phase graphs shipped with the tracker."""

from __future__ import annotations

from .models import PhaseDefinition, PhaseGraph

CONSTITUTION_GRAPH = PhaseGraph(
    name="constitution",
    description="Discovery, build, delivery and feedback cycle from the agent constitution.",
    phases=(
        PhaseDefinition(
            id="discovery",
            name="Discovery",
            description="Understanding requirements and exploring options",
            objectives=(
                "Analyze user requirements and context",
                "Research existing solutions and patterns",
                "Identify constraints and dependencies",
                "Define problem scope and boundaries",
            ),
            entry_conditions=(
                "New work cycle initiated",
                "Requirements gathering needed",
                "Problem definition required",
            ),
            exit_conditions=(
                "Problem clearly defined",
                "Requirements documented",
                "Solution approach identified",
            ),
            next_phases=("build",),
        ),
        PhaseDefinition(
            id="build",
            name="Build",
            description="Creating the solution and implementation",
            objectives=(
                "Design system architecture",
                "Implement core functionality",
                "Write tests and documentation",
                "Ensure code quality standards",
            ),
            entry_conditions=(
                "Requirements clearly defined",
                "Solution approach approved",
                "Resources allocated",
            ),
            exit_conditions=(
                "Core functionality implemented",
                "Tests passing",
                "Code review completed",
            ),
            next_phases=("delivery",),
        ),
        PhaseDefinition(
            id="delivery",
            name="Delivery",
            description="Testing, validation, and deployment",
            objectives=(
                "Validate solution meets requirements",
                "Perform integration testing",
                "Deploy to target environment",
                "Monitor initial performance",
            ),
            entry_conditions=(
                "Implementation completed",
                "Quality checks passed",
                "Deployment environment ready",
            ),
            exit_conditions=(
                "Solution deployed successfully",
                "Performance metrics acceptable",
                "User acceptance achieved",
            ),
            next_phases=("feedback",),
        ),
        PhaseDefinition(
            id="feedback",
            name="Feedback",
            description="Review, iteration, and improvement",
            objectives=(
                "Collect user feedback",
                "Analyze performance metrics",
                "Identify improvement opportunities",
                "Plan next iteration if needed",
            ),
            entry_conditions=(
                "Solution deployed",
                "Initial usage data available",
                "Feedback collection mechanisms active",
            ),
            exit_conditions=(
                "Feedback analyzed",
                "Improvements prioritized",
                "Next steps planned",
            ),
            next_phases=("discovery", "build"),
        ),
    ),
)

DEVELOPMENT_GRAPH = PhaseGraph(
    name="development",
    description="Discovery, planning, development and quality cycle for code changes.",
    phases=(
        PhaseDefinition(
            id="discovery",
            name="Discovery",
            description="Research and problem analysis",
            objectives=(
                "Research existing solutions",
                "Analyze problem domain",
                "Define requirements",
            ),
            entry_conditions=("New development work needed",),
            exit_conditions=("Problem clearly defined",),
            next_phases=("planning",),
        ),
        PhaseDefinition(
            id="planning",
            name="Planning",
            description="Feature analysis and task planning",
            objectives=(
                "Apply Lighthouse Protocol",
                "Create GitHub issues",
                "Plan work breakdown",
            ),
            entry_conditions=("Requirements defined",),
            exit_conditions=("Work plan approved",),
            next_phases=("development",),
        ),
        PhaseDefinition(
            id="development",
            name="Development",
            description="Implementation and coding",
            objectives=(
                "Follow Git workflow",
                "Implement features",
                "Make structured commits",
            ),
            entry_conditions=("Work plan ready",),
            exit_conditions=("Implementation complete",),
            next_phases=("quality",),
        ),
        PhaseDefinition(
            id="quality",
            name="Quality",
            description="Testing and documentation",
            objectives=(
                "Run automated tests",
                "Update documentation",
                "Perform code review",
            ),
            entry_conditions=("Implementation complete",),
            exit_conditions=("Quality gates passed",),
            next_phases=("discovery", "planning"),
        ),
    ),
)

BUILTIN_GRAPHS: dict[str, PhaseGraph] = {
    CONSTITUTION_GRAPH.name: CONSTITUTION_GRAPH,
    DEVELOPMENT_GRAPH.name: DEVELOPMENT_GRAPH,
}


__all__ = ["BUILTIN_GRAPHS", "CONSTITUTION_GRAPH", "DEVELOPMENT_GRAPH"]
