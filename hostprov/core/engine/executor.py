"""
Engine executor — the central provisioning loop.

The engine takes a plan, walks its steps in dependency order on a
single thread, dispatches each step through the provider registry,
and collects exactly one terminal outcome per step.

Flow:
    plan → topological order → (blocked? | ensure) per step → report → audit

Failure semantics:
    - A step whose dependency did not complete is ``blocked``; the
      blocking propagates transitively. Independent steps still run.
    - A PreconditionError fails its step and blocks every step after it.
    - No step is retried within a run. A step that failed on the
      previous run and fails again is ``retried-then-failed``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from hostprov.adapters.base import ProviderContext
from hostprov.adapters.registry import ProviderRegistry
from hostprov.core.errors import PreconditionError
from hostprov.core.models.outcome import (
    FAILED_STATUSES,
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
)
from hostprov.core.models.plan import ExecutionPlan
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import Settings
from hostprov.core.models.state import HostState
from hostprov.core.persistence.audit import AuditEntry, AuditWriter
from hostprov.core.planning.dag import topological_order

logger = logging.getLogger(__name__)

_MARKERS = {
    OutcomeStatus.SUCCESS: "✓",
    OutcomeStatus.SKIPPED: "=",
    OutcomeStatus.FAILED: "✗",
    OutcomeStatus.RETRIED_THEN_FAILED: "✗",
    OutcomeStatus.BLOCKED: "⊘",
}

_FAILED_VALUES = {s.value for s in FAILED_STATUSES}


def execute_plan(
    plan: ExecutionPlan,
    registry: ProviderRegistry,
    request: ProvisioningRequest,
    settings: Settings,
    previous: HostState | None = None,
) -> ExecutionReport:
    """Execute all steps of a plan through the provider registry.

    Args:
        plan: The execution plan.
        registry: Provider registry for dispatch.
        request: The validated request (read-only).
        settings: Engine settings.
        previous: State left by the previous run, if any.

    Returns:
        ExecutionReport with one outcome per step, in execution order.
    """
    ordered = topological_order(plan.steps)
    outcomes: dict[str, ExecutionOutcome] = {}
    outputs: dict[str, dict[str, Any]] = {}
    abort: PreconditionError | None = None

    for step in ordered:
        if abort is not None:
            outcome = ExecutionOutcome.blocked(
                step.id, step.capability, message=f"run aborted: {abort.message}"
            )
        else:
            pending = [dep for dep in step.depends_on if not outcomes[dep].completed]
            if pending:
                outcome = ExecutionOutcome.blocked(
                    step.id,
                    step.capability,
                    message=f"dependency not completed: {', '.join(pending)}",
                )
            else:
                context = ProviderContext(
                    step=step,
                    request=request,
                    settings=settings,
                    outputs=dict(outputs),
                )
                try:
                    outcome = registry.ensure(context)
                except PreconditionError as e:
                    abort = e
                    outcome = ExecutionOutcome.failure(
                        step.id, step.capability, message=e.message, hint=e.hint
                    )

        if outcome.failed and previous is not None:
            if previous.previous_status(step.id) in _FAILED_VALUES:
                outcome = outcome.model_copy(update={"status": OutcomeStatus.RETRIED_THEN_FAILED})

        if outcome.completed:
            outputs[step.id] = outcome.outputs
        outcomes[step.id] = outcome

        logger.info(
            "%s %s (%s) → %s%s",
            _MARKERS[outcome.status],
            step.id,
            step.capability,
            outcome.status.value,
            f": {outcome.message}" if outcome.message else "",
        )
        for warning in outcome.warnings:
            logger.warning("%s: %s", step.id, warning)

    return ExecutionReport(
        operation_id=plan.operation_id,
        outcomes=tuple(outcomes[s.id] for s in ordered),
        aborted=abort is not None,
        abort_reason=abort.message if abort is not None else "",
    )


def update_state(state: HostState, report: ExecutionReport, hostname: str) -> HostState:
    """Fold a finished report into the persisted host state."""
    now = datetime.now(UTC).isoformat()

    for outcome in report.outcomes:
        previous = state.steps.get(outcome.step_id)
        failures = previous.consecutive_failures if previous else 0
        state.set_step_state(
            outcome.step_id,
            last_status=outcome.status.value,
            last_message=outcome.message,
            last_run_at=outcome.ended_at,
            consecutive_failures=failures + 1 if outcome.failed else 0,
        )
        address = outcome.outputs.get("onion_address")
        if address:
            state.onion_address = address

    record = state.last_operation
    record.operation_id = report.operation_id
    record.hostname = hostname
    record.ended_at = now
    record.status = report.status
    record.steps_total = report.total
    record.steps_succeeded = report.succeeded
    record.steps_failed = report.failed
    record.steps_blocked = report.blocked
    state.last_report = report.to_dict()
    return state


def write_audit_entry(
    report: ExecutionReport,
    audit_writer: AuditWriter,
    hostname: str = "",
    duration_ms: int = 0,
) -> None:
    """Write execution results to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type="provision",
        hostname=hostname,
        status=report.status,
        steps_total=report.total,
        steps_succeeded=report.succeeded,
        steps_failed=report.failed,
        steps_blocked=report.blocked,
        duration_ms=duration_ms,
        errors=[f"{o.step_id}: {o.message}" for o in report.outcomes if o.failed],
        warnings=report.warnings,
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
