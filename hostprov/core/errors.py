"""
Error taxonomy — what can go wrong during a provisioning run.

    ValidationError      bad input; raised before any host mutation
    PreconditionError    a required tool or privilege is missing; aborts the run
    ProviderApplyError   an ensure failed part-way; halts dependent steps only
    WarningCondition     non-fatal; recorded in the report, never halts

ConfigError covers unreadable settings and request files.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for all hostprov errors."""


class ValidationError(ProvisioningError):
    """A provisioning parameter failed validation.

    Carries the name of the offending field so the CLI can point at it.
    """

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class PreconditionError(ProvisioningError):
    """A required external tool, privilege, or input is absent."""

    def __init__(self, message: str, hint: str = ""):
        self.message = message
        self.hint = hint
        super().__init__(message)


class ProviderApplyError(ProvisioningError):
    """An idempotent ensure failed while applying changes."""

    def __init__(self, message: str, detail: str = ""):
        self.message = message
        self.detail = detail
        super().__init__(message)


class WarningCondition(ProvisioningError):
    """Non-fatal condition worth surfacing to the operator."""


class ConfigError(ProvisioningError):
    """Settings or request file is missing or invalid."""
