"""
Provision use case — the full vertical slice of one run.

    raw fields → validate → plan → execute → persist state → audit

The CLI is a thin shell over the functions here; they never print and
never exit, they return result objects the CLI renders.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from hostprov.adapters.registry import ProviderRegistry, default_registry
from hostprov.adapters.shell.command import CommandRunner
from hostprov.core.engine.executor import (
    execute_plan,
    generate_operation_id,
    update_state,
    write_audit_entry,
)
from hostprov.core.errors import PreconditionError, ValidationError
from hostprov.core.models.outcome import ExecutionReport
from hostprov.core.models.plan import ExecutionPlan
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import Settings
from hostprov.core.observability.logging_config import register_secret
from hostprov.core.persistence.audit import AuditWriter
from hostprov.core.persistence.state_file import (
    default_audit_path,
    default_state_path,
    load_state,
    save_state,
)
from hostprov.core.planning.builder import build_plan
from hostprov.core.render.config_renderer import RenderedConfig, render
from hostprov.core.validation import validate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED_STEPS = 1
EXIT_VALIDATION = 2
EXIT_PRECONDITION = 3


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    request: ProvisioningRequest | None = None
    plan: ExecutionPlan | None = None
    report: ExecutionReport | None = None
    error: str | None = None
    error_field: str | None = None
    hint: str = ""
    exit_code: int = EXIT_OK
    duration_ms: int = 0
    mock: bool = False
    persist_error: str = ""

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
            if self.error_field:
                result["field"] = self.error_field
            if self.hint:
                result["hint"] = self.hint
            if self.report is None:
                return result

        if self.request:
            result["request"] = self.request.public_summary()
        result["mock"] = self.mock
        result["duration_ms"] = self.duration_ms
        if self.persist_error:
            result["persist_error"] = self.persist_error
        if self.report:
            result["report"] = self.report.to_dict()
        return result


@dataclass
class PlanResult:
    """A validated request and the plan it produces."""

    request: ProvisioningRequest | None = None
    plan: ExecutionPlan | None = None
    config: RenderedConfig | None = None
    error: str | None = None
    error_field: str | None = None


def prepare(raw_fields: Mapping[str, Any], settings: Settings) -> PlanResult:
    """Validate raw fields and build the plan without touching the host."""
    result = PlanResult()
    try:
        request = validate(raw_fields)
    except ValidationError as e:
        result.error = str(e)
        result.error_field = e.field
        return result

    result.request = request
    result.plan = build_plan(request, settings)
    result.config = render(request, settings)
    return result


def check_root(settings: Settings) -> None:
    """Raise PreconditionError unless running as root (when required)."""
    if settings.require_root and os.geteuid() != 0:
        raise PreconditionError(
            "hostprov must run as root",
            hint="Re-run with sudo, or set require_root: false for a re-rooted layout.",
        )


def provision(
    raw_fields: Mapping[str, Any],
    settings: Settings,
    registry: ProviderRegistry | None = None,
    runner: CommandRunner | None = None,
    mock_mode: bool = False,
) -> ProvisionResult:
    """Validate, plan and execute one provisioning run.

    Args:
        raw_fields: Unvalidated request fields (prompts or request file).
        settings: Engine settings.
        registry: Optional pre-configured provider registry.
        runner: Command runner for the default registry.
        mock_mode: Route every step to the in-memory mock provider and
            skip persistence.

    Returns:
        ProvisionResult with the report and the CLI exit code.
    """
    result = ProvisionResult(mock=mock_mode)
    start = time.monotonic()

    # ── Validate ─────────────────────────────────────────────────
    try:
        request = validate(raw_fields)
    except ValidationError as e:
        logger.info("Invalid request: %s", e)
        result.error = str(e)
        result.error_field = e.field
        result.exit_code = EXIT_VALIDATION
        return result
    result.request = request
    register_secret(request.rpc_password.get_secret_value())

    # ── Preconditions ────────────────────────────────────────────
    if not mock_mode:
        try:
            check_root(settings)
        except PreconditionError as e:
            result.error = e.message
            result.hint = e.hint
            result.exit_code = EXIT_PRECONDITION
            return result

    # ── Plan ─────────────────────────────────────────────────────
    operation_id = generate_operation_id()
    plan = build_plan(request, settings, operation_id=operation_id)
    result.plan = plan
    logger.info("Plan %s: %d steps for %s", operation_id, plan.total_steps, request.hostname)

    # ── Execute ──────────────────────────────────────────────────
    if registry is None:
        runner = runner or CommandRunner(timeout=settings.command_timeout)
        registry = default_registry(runner, mock_mode=mock_mode)

    state_path = default_state_path(settings)
    state = None if mock_mode else load_state(state_path)

    report = execute_plan(plan, registry, request, settings, previous=state)
    result.report = report
    result.duration_ms = int((time.monotonic() - start) * 1000)

    if report.aborted:
        aborting = next((o for o in report.outcomes if o.failed), None)
        result.error = report.abort_reason
        result.hint = aborting.hint if aborting else ""
        result.exit_code = EXIT_PRECONDITION
    elif not report.ok:
        result.exit_code = EXIT_FAILED_STEPS

    # ── Persist state and audit ──────────────────────────────────
    if state is not None:
        update_state(state, report, request.hostname)
        try:
            save_state(state, state_path)
            write_audit_entry(
                report,
                AuditWriter(default_audit_path(settings)),
                hostname=request.hostname,
                duration_ms=result.duration_ms,
            )
        except OSError as e:
            logger.warning("Run %s not recorded: %s", operation_id, e)
            result.persist_error = str(e)

    logger.info("Run %s finished: %s", operation_id, report.status)
    return result
