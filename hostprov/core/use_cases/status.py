"""
Status use case — the last persisted run, the audit history and
whether the host tools each provider needs are present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hostprov.adapters.registry import default_registry
from hostprov.adapters.shell.command import CommandRunner
from hostprov.core.models.settings import Settings
from hostprov.core.models.state import HostState
from hostprov.core.persistence.audit import AuditEntry, AuditWriter
from hostprov.core.persistence.state_file import (
    default_audit_path,
    default_state_path,
    load_state,
)


@dataclass
class StatusResult:
    """Persisted host state, recent audit entries and provider availability."""

    state: HostState | None = None
    recent: list[AuditEntry] = field(default_factory=list)
    providers: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def has_run(self) -> bool:
        return bool(self.state and self.state.last_operation.operation_id)

    @property
    def unavailable(self) -> list[dict[str, Any]]:
        return [p for p in self.providers.values() if not p["available"]]

    def to_dict(self) -> dict:
        result: dict = {"has_run": self.has_run}
        if self.state:
            result["last_operation"] = self.state.last_operation.model_dump()
            result["onion_address"] = self.state.onion_address
            result["steps"] = {
                step_id: step.model_dump() for step_id, step in sorted(self.state.steps.items())
            }
        result["recent"] = [e.model_dump(mode="json") for e in self.recent]
        result["providers"] = self.providers
        return result


def get_status(settings: Settings, recent: int = 5, runner: CommandRunner | None = None) -> StatusResult:
    state = load_state(default_state_path(settings))
    writer = AuditWriter(default_audit_path(settings))
    registry = default_registry(runner or CommandRunner(timeout=settings.command_timeout))
    return StatusResult(
        state=state,
        recent=writer.read_recent(recent),
        providers=registry.provider_status(),
    )
