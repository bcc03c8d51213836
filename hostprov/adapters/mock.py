"""
Mock provider — universal in-memory test double.

Used in mock mode to simulate providers without touching the host.
It keeps its own "host state": a step is unsatisfied until applied
once, so repeated ensures show the idempotent success → skipped
sequence. Individual steps can be configured to fail.
"""

from __future__ import annotations

from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.core.errors import PreconditionError, ProviderApplyError


class MockProvider(Provider):
    """In-memory provider for tests and ``--mock`` runs."""

    def __init__(self, provider_name: str = "mock", available: bool = True):
        super().__init__()
        self._name = provider_name
        self._available = available
        self._applied: set[str] = set()
        self._failures: dict[str, str] = {}
        self._preconditions: dict[str, str] = {}
        self._outputs: dict[str, dict[str, Any]] = {}
        self._call_log: list[ProviderContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ProviderContext]:
        """All contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def applied(self) -> set[str]:
        return set(self._applied)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, step_id: str, error: str = "Mock failure") -> None:
        """Configure a step to fail on apply."""
        self._failures[step_id] = error

    def clear_failure(self, step_id: str) -> None:
        self._failures.pop(step_id, None)

    def set_precondition_failure(self, step_id: str, error: str = "Mock tool missing") -> None:
        """Configure a step to raise PreconditionError."""
        self._preconditions[step_id] = error

    def set_outputs(self, step_id: str, outputs: dict[str, Any]) -> None:
        self._outputs[step_id] = outputs

    def mark_satisfied(self, step_id: str) -> None:
        self._applied.add(step_id)

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        self._call_log.append(context)
        return {"satisfied": context.step.id in self._applied}

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return bool(current["satisfied"])

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        step_id = context.step.id
        if step_id in self._preconditions:
            raise PreconditionError(self._preconditions[step_id], hint="[mock] install the tool")
        if step_id in self._failures:
            raise ProviderApplyError(self._failures[step_id])
        self._applied.add(step_id)

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return dict(self._outputs.get(context.step.id, {}))

    def reset(self) -> None:
        """Forget applied state, configured failures, outputs and the call log."""
        self._applied.clear()
        self._failures.clear()
        self._preconditions.clear()
        self._outputs.clear()
        self._call_log.clear()
