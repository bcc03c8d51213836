"""
HostState — what the last run left behind.

Serialized to ``<state_dir>/current.json``. The state is advisory: the
providers always re-query the host, the engine only reads it to tell a
repeated failure from a first one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    """Last recorded outcome of a plan step."""

    step_id: str
    last_status: str = ""
    last_message: str = ""
    last_run_at: str | None = None
    consecutive_failures: int = 0


class OperationRecord(BaseModel):
    """Summary of the last run."""

    operation_id: str = ""
    hostname: str = ""
    ended_at: str = ""
    status: str = ""  # ok, partial, failed
    steps_total: int = 0
    steps_succeeded: int = 0
    steps_failed: int = 0
    steps_blocked: int = 0


class HostState(BaseModel):
    """Root state model — serialized to current.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Component state ──────────────────────────────────────────
    steps: dict[str, StepState] = Field(default_factory=dict)
    onion_address: str | None = None

    # ── Last run ─────────────────────────────────────────────────
    last_operation: OperationRecord = Field(default_factory=OperationRecord)
    last_report: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def previous_status(self, step_id: str) -> str:
        step = self.steps.get(step_id)
        return step.last_status if step else ""

    def set_step_state(self, step_id: str, **kwargs: Any) -> None:
        """Update or create a step state entry."""
        if step_id in self.steps:
            for key, value in kwargs.items():
                setattr(self.steps[step_id], key, value)
        else:
            self.steps[step_id] = StepState(step_id=step_id, **kwargs)
