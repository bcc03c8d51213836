"""
Domain models — Pydantic types for the provisioning engine.

All models are re-exported here for convenient access:

    from hostprov.core.models import ProvisioningRequest, PlanStep, ExecutionReport
"""

from hostprov.core.models.outcome import (
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
)
from hostprov.core.models.plan import ExecutionPlan, PlanStep
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import (
    CertificateSettings,
    HiddenServiceSettings,
    HostLayout,
    ServiceSettings,
    Settings,
    SourceSettings,
)
from hostprov.core.models.state import HostState, OperationRecord, StepState

__all__ = [
    # settings.py
    "CertificateSettings",
    # outcome.py
    "ExecutionOutcome",
    # plan.py
    "ExecutionPlan",
    "ExecutionReport",
    "HiddenServiceSettings",
    "HostLayout",
    # state.py
    "HostState",
    "OperationRecord",
    "OutcomeStatus",
    "PlanStep",
    # request.py
    "ProvisioningRequest",
    "ServiceSettings",
    "Settings",
    "SourceSettings",
    "StepState",
]
