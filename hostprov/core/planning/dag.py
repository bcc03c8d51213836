"""
DAG utilities for plan steps (pure).

Dependency validation, cycle detection and stable topological ordering.
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Sequence

from hostprov.core.models.plan import PlanStep


class PlanError(ValueError):
    """The step graph is malformed (duplicate ids, unknown deps, cycle)."""


def validate_dag(steps: Sequence[PlanStep]) -> list[str]:
    """Validate the step dependency DAG.

    Checks for:
    - Duplicate step IDs
    - References to non-existent step IDs
    - Cycles (Kahn's algorithm)

    Returns:
        List of error strings (empty = valid).
    """
    errors: list[str] = []
    ids = {s.id for s in steps}

    seen: set[str] = set()
    for s in steps:
        if s.id in seen:
            errors.append(f"Duplicate step ID: {s.id}")
        seen.add(s.id)

    for s in steps:
        for dep in s.depends_on:
            if dep not in ids:
                errors.append(f"Step '{s.id}' depends on unknown step '{dep}'")

    if errors:
        return errors

    try:
        topological_order(steps)
    except PlanError as e:
        errors.append(str(e))
    return errors


def topological_order(steps: Sequence[PlanStep]) -> list[PlanStep]:
    """Order steps so every dependency precedes its dependents.

    Kahn's algorithm, always picking the earliest-declared ready step, so
    a plan that is already ordered comes back unchanged.

    Raises:
        PlanError: If the graph has a cycle.
    """
    index = {s.id: i for i, s in enumerate(steps)}
    in_degree = {s.id: len(set(s.depends_on)) for s in steps}
    adj: dict[str, list[str]] = {s.id: [] for s in steps}
    for s in steps:
        for dep in set(s.depends_on):
            adj[dep].append(s.id)

    ready = sorted((sid for sid, deg in in_degree.items() if deg == 0), key=index.__getitem__)
    ordered: list[PlanStep] = []

    while ready:
        sid = ready.pop(0)
        ordered.append(steps[index[sid]])
        for successor in adj[sid]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                ready.append(successor)
        ready.sort(key=index.__getitem__)

    if len(ordered) < len(steps):
        stuck = sorted(sid for sid, deg in in_degree.items() if deg > 0)
        raise PlanError(f"Dependency cycle detected among steps: {', '.join(stuck)}")

    return ordered


def dependents_of(steps: Sequence[PlanStep], step_id: str) -> set[str]:
    """All steps that transitively depend on ``step_id``."""
    result: set[str] = set()
    frontier = [step_id]
    while frontier:
        current = frontier.pop()
        for s in steps:
            if current in s.depends_on and s.id not in result:
                result.add(s.id)
                frontier.append(s.id)
    return result
