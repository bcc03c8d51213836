"""Execution engine — runs a plan through the provider registry."""

from hostprov.core.engine.executor import (
    execute_plan,
    generate_operation_id,
    update_state,
    write_audit_entry,
)

__all__ = ["execute_plan", "generate_operation_id", "update_state", "write_audit_entry"]
