"""
ExecutionOutcome and ExecutionReport — the result contract.

Providers return outcomes, never raw exceptions. The engine collects
exactly one terminal outcome per plan step into a report, which is
frozen once emitted.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped-already-satisfied"
    FAILED = "failed"
    RETRIED_THEN_FAILED = "retried-then-failed"
    BLOCKED = "blocked"


# Statuses that let dependent steps proceed
COMPLETED_STATUSES = frozenset({OutcomeStatus.SUCCESS, OutcomeStatus.SKIPPED})
FAILED_STATUSES = frozenset({OutcomeStatus.FAILED, OutcomeStatus.RETRIED_THEN_FAILED})


class ExecutionOutcome(BaseModel):
    """Terminal result of one plan step (immutable)."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    capability: str = ""
    status: OutcomeStatus = OutcomeStatus.SUCCESS
    message: str = ""
    hint: str = ""
    warnings: tuple[str, ...] = ()
    outputs: dict[str, Any] = Field(default_factory=dict)

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def completed(self) -> bool:
        """Whether dependents may run after this step."""
        return self.status in COMPLETED_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES

    @classmethod
    def success(cls, step_id: str, capability: str, message: str = "", **kwargs: Any) -> ExecutionOutcome:
        """Create a success outcome."""
        return cls(step_id=step_id, capability=capability, status=OutcomeStatus.SUCCESS, message=message, **kwargs)

    @classmethod
    def skipped(cls, step_id: str, capability: str, message: str = "", **kwargs: Any) -> ExecutionOutcome:
        """Create an already-satisfied outcome."""
        return cls(step_id=step_id, capability=capability, status=OutcomeStatus.SKIPPED, message=message, **kwargs)

    @classmethod
    def failure(cls, step_id: str, capability: str, message: str, **kwargs: Any) -> ExecutionOutcome:
        """Create a failed outcome."""
        return cls(step_id=step_id, capability=capability, status=OutcomeStatus.FAILED, message=message, **kwargs)

    @classmethod
    def blocked(cls, step_id: str, capability: str, message: str, **kwargs: Any) -> ExecutionOutcome:
        """Create an outcome for a step that was never attempted."""
        return cls(step_id=step_id, capability=capability, status=OutcomeStatus.BLOCKED, message=message, **kwargs)


class ExecutionReport(BaseModel):
    """Ordered outcomes of one run, plus overall status."""

    model_config = ConfigDict(frozen=True)

    operation_id: str = ""
    outcomes: tuple[ExecutionOutcome, ...] = ()
    aborted: bool = False
    abort_reason: str = ""

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.completed)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def blocked(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.BLOCKED)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.blocked == 0

    @property
    def status(self) -> str:
        if self.ok:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def warnings(self) -> list[str]:
        return [f"{o.step_id}: {w}" for o in self.outcomes for w in o.warnings]

    @property
    def outputs(self) -> dict[str, dict[str, Any]]:
        return {o.step_id: o.outputs for o in self.outcomes if o.outputs}

    def get(self, step_id: str) -> ExecutionOutcome | None:
        for outcome in self.outcomes:
            if outcome.step_id == step_id:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "blocked": self.blocked,
            "warnings": self.warnings,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
