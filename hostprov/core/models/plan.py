"""
PlanStep and ExecutionPlan — the scheduled units of provisioning work.

A step names the provider capability it targets, the desired state the
provider must converge to, and the ids of the steps it depends on.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PlanStep(BaseModel):
    """One unit of provisioning work."""

    model_config = ConfigDict(frozen=True)

    id: str
    capability: str                   # provider name in the registry
    description: str = ""
    desired: dict[str, Any] = Field(default_factory=dict)
    depends_on: tuple[str, ...] = ()


class ExecutionPlan(BaseModel):
    """An ordered, dependency-checked list of steps."""

    model_config = ConfigDict(frozen=True)

    operation_id: str = ""
    steps: tuple[PlanStep, ...] = ()

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def get(self, step_id: str) -> PlanStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_json(self) -> str:
        """Canonical serialization of the steps (operation id excluded)."""
        data = [s.model_dump(mode="json") for s in self.steps]
        return json.dumps(data, indent=2, sort_keys=True)
