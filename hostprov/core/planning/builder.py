"""
Plan builder — a validated request into an ordered list of steps.

The order and the dependency edges are fixed:

    packages → build → capability ─┐
    account ─────────→ config ─────┼→ service
    packages → certificate ─┘──────┘
    firewall            (independent)
    hidden_service      (after packages, optional)

Building is pure: the same request and settings always produce the
same plan, byte for byte.
"""

from __future__ import annotations

import logging

from hostprov.core.models.plan import ExecutionPlan, PlanStep
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import Settings
from hostprov.core.planning.dag import PlanError, topological_order, validate_dag
from hostprov.core.render.config_renderer import render

logger = logging.getLogger(__name__)


def package_set(request: ProvisioningRequest, settings: Settings) -> list[str]:
    """OS packages the run needs, deduplicated in declaration order."""
    packages = list(dict.fromkeys(settings.packages))
    if request.enable_hidden_service and "tor" not in packages:
        packages.append("tor")
    return packages


def build_plan(
    request: ProvisioningRequest,
    settings: Settings,
    operation_id: str = "",
) -> ExecutionPlan:
    """Build the provisioning plan for a request.

    Args:
        request: Validated provisioning request.
        settings: Engine settings.
        operation_id: Identifier stamped on the plan (not part of its
            canonical serialization).

    Returns:
        ExecutionPlan with steps in dependency order.

    Raises:
        PlanError: If the step graph is invalid (never for the fixed plan).
    """
    layout = settings.layout
    svc = settings.service
    certfile, keyfile = settings.cert_paths(request.hostname)
    config_sha = render(request, settings).sha256

    steps: list[PlanStep] = [
        PlanStep(
            id="packages",
            capability="packages",
            description="Install build and runtime packages",
            desired={"packages": package_set(request, settings)},
        ),
        PlanStep(
            id="build",
            capability="source_build",
            description="Build and install the server binary",
            desired={
                "repo_url": settings.source.repo_url,
                "ref": settings.source.ref,
                "source_dir": layout.source_dir,
                "binary_path": layout.binary_path,
            },
            depends_on=("packages",),
        ),
        PlanStep(
            id="account",
            capability="service_account",
            description="Create run-as account and data directory",
            desired={
                "user": svc.user,
                "data_dir": layout.data_dir,
                "mode": "750",
                "log_file": layout.log_file,
            },
        ),
        PlanStep(
            id="capability",
            capability="capability",
            description="Allow the binary to bind low ports",
            desired={"binary_path": layout.binary_path, "capability": "cap_net_bind_service"},
            depends_on=("build",),
        ),
        PlanStep(
            id="certificate",
            capability="certificate",
            description="Issue TLS certificate and schedule renewal",
            desired={
                "hostname": request.hostname,
                "certfile": certfile,
                "keyfile": keyfile,
                "renew_before_days": settings.certificate.renew_before_days,
                "renewal_cron": layout.renewal_cron,
            },
            depends_on=("packages",),
        ),
        PlanStep(
            id="config",
            capability="config_file",
            description="Render server configuration",
            desired={
                "path": layout.config_path,
                "owner": svc.user,
                "mode": "600",
                "sha256": config_sha,
            },
            depends_on=("account", "certificate"),
        ),
        PlanStep(
            id="service",
            capability="service",
            description="Register and start the service",
            desired={
                "name": svc.name,
                "unit_path": settings.unit_path,
                "config_sha256": config_sha,
                "enabled": True,
                "active": True,
            },
            depends_on=("build", "capability", "config", "certificate"),
        ),
    ]

    if request.enable_firewall:
        steps.append(
            PlanStep(
                id="firewall",
                capability="firewall",
                description="Open listener ports",
                desired={"ports": list(request.listener_ports), "protocol": "tcp"},
            )
        )

    if request.enable_hidden_service:
        steps.append(
            PlanStep(
                id="hidden_service",
                capability="hidden_service",
                description="Publish onion service",
                desired={
                    "torrc": layout.torrc,
                    "hidden_service_dir": layout.hidden_service_dir,
                    "onion_port": request.onion_port,
                    "target": f"127.0.0.1:{request.tcp_port}",
                },
                depends_on=("packages",),
            )
        )

    errors = validate_dag(steps)
    if errors:
        raise PlanError("; ".join(errors))

    plan = ExecutionPlan(operation_id=operation_id, steps=tuple(topological_order(steps)))
    logger.debug("Built plan %s with %d steps", operation_id or "(anonymous)", plan.total_steps)
    return plan
