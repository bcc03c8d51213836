"""
Provider base — the check-then-ensure contract between engine and host.

Every capability provider describes the current host state, decides
whether it already matches the desired state of a plan step, and
applies changes when it does not. The engine only talks to providers
through ``ensure``, never directly to host tools.

To create a new provider:
    1. Subclass Provider
    2. Implement name, is_available, describe_current_state, is_satisfied, apply
    3. Register it in the ProviderRegistry under the capability name
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from hostprov.adapters.shell.command import CommandRunner
from hostprov.core.errors import ProviderApplyError, WarningCondition
from hostprov.core.models.outcome import ExecutionOutcome
from hostprov.core.models.plan import PlanStep
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import HostLayout, Settings


class ProviderContext(BaseModel):
    """Everything a provider needs to converge one step.

    ``outputs`` holds the outputs of the steps completed so far, keyed
    by step id. ``warnings`` collects non-fatal conditions raised while
    the step runs; they end up on the outcome.
    """

    step: PlanStep
    request: ProvisioningRequest
    settings: Settings
    outputs: dict[str, dict[str, Any]] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    @property
    def desired(self) -> dict[str, Any]:
        return self.step.desired

    @property
    def layout(self) -> HostLayout:
        return self.settings.layout

    def host_path(self, host_path: str) -> Path:
        """Resolve an absolute host path under the layout root."""
        return self.layout.path(host_path)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


class Provider(ABC):
    """Abstract base class for all capability providers.

    ``ensure`` is idempotent: once the host matches the desired state,
    further calls report "skipped-already-satisfied" without touching
    anything. Host commands go through ``self.runner``.
    """

    required_tools: tuple[str, ...] = ()
    install_hint: str = ""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @property
    @abstractmethod
    def name(self) -> str:
        """The capability identifier (e.g., 'packages', 'firewall')."""

    def is_available(self) -> bool:
        """Check if the provider's underlying tools are available.

        Should be fast and never raise.
        """
        return all(self.runner.which(tool) for tool in self.required_tools)

    @abstractmethod
    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        """Query the host for the state this provider manages."""

    @abstractmethod
    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        """Whether ``current`` already matches the step's desired state."""

    @abstractmethod
    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        """Change the host toward the desired state.

        Raises:
            ProviderApplyError: If a change could not be made.
            PreconditionError: If a required tool is missing.
        """

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        """Values later steps may consume (e.g., certificate paths)."""
        return {}

    def satisfied_message(self, current: dict[str, Any], context: ProviderContext) -> str:
        return "already satisfied"

    def ensure(self, context: ProviderContext) -> ExecutionOutcome:
        """Check, apply if needed, verify, and report.

        ProviderApplyError becomes a failed outcome. PreconditionError
        propagates so the engine can abort the run.
        """
        step = context.step
        current = self.describe_current_state(context)

        if self.is_satisfied(current, context):
            outputs = self._collect_outputs(current, context)
            return ExecutionOutcome.skipped(
                step.id,
                step.capability,
                message=self.satisfied_message(current, context),
                outputs=outputs,
                warnings=list(context.warnings),
            )

        try:
            self.apply(current, context)
        except ProviderApplyError as e:
            return ExecutionOutcome.failure(
                step.id,
                step.capability,
                message=e.message,
                hint=e.detail,
                warnings=list(context.warnings),
            )

        after = self.describe_current_state(context)
        if not self.is_satisfied(after, context):
            return ExecutionOutcome.failure(
                step.id,
                step.capability,
                message="host state did not converge after apply",
                hint=_diff_hint(after),
                warnings=list(context.warnings),
            )

        outputs = self._collect_outputs(after, context)
        return ExecutionOutcome.success(
            step.id,
            step.capability,
            message="applied",
            outputs=outputs,
            warnings=list(context.warnings),
        )

    def _collect_outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        try:
            return self.outputs(current, context)
        except WarningCondition as w:
            context.warn(str(w))
            return {}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def _diff_hint(state: dict[str, Any]) -> str:
    parts = [f"{k}={v!r}" for k, v in sorted(state.items()) if not isinstance(v, (dict, list))]
    return "observed: " + ", ".join(parts) if parts else ""
