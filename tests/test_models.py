"""
Tests for domain models — request, settings, plan and report.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from hostprov.core.models import (
    ExecutionOutcome,
    ExecutionPlan,
    ExecutionReport,
    HostLayout,
    OutcomeStatus,
    PlanStep,
    ProvisioningRequest,
    Settings,
)


def _request(**overrides) -> ProvisioningRequest:
    fields = {
        "hostname": "electrum.example.com",
        "acme_email": "admin@electrum.example.com",
        "rpc_user": "bitcoinrpc",
        "rpc_password": "s3cret",
    }
    fields.update(overrides)
    return ProvisioningRequest(**fields)


# ── Request ──────────────────────────────────────────────────────


class TestProvisioningRequest:
    def test_defaults(self):
        request = _request()
        assert request.rpc_host == "127.0.0.1"
        assert request.rpc_port == 8332
        assert request.enable_firewall is True
        assert request.enable_hidden_service is False

    def test_frozen(self):
        request = _request()
        with pytest.raises(PydanticValidationError):
            request.hostname = "other.example.com"

    def test_unknown_field_rejected(self):
        with pytest.raises(PydanticValidationError):
            _request(colour="blue")

    def test_listener_ports_deduplicated(self):
        assert _request().listener_ports == (443, 50001)
        assert _request(ssl_port=50001).listener_ports == (50001,)

    def test_public_summary_hides_password(self):
        summary = _request().public_summary()
        assert "rpc_password" not in summary
        assert summary["rpc_user"] == "bitcoinrpc"


# ── Settings ─────────────────────────────────────────────────────


class TestSettings:
    def test_layout_rerooting(self, tmp_path: Path):
        layout = HostLayout(root=tmp_path)
        assert layout.path("/etc/fulcrum/fulcrum.conf") == tmp_path / "etc/fulcrum/fulcrum.conf"

    def test_derived_paths(self):
        settings = Settings()
        assert settings.unit_path == "/etc/systemd/system/fulcrum.service"
        certfile, keyfile = settings.cert_paths("h.example")
        assert certfile == "/etc/letsencrypt/live/h.example/fullchain.pem"
        assert keyfile == "/etc/letsencrypt/live/h.example/privkey.pem"

    def test_packages_are_independent_copies(self):
        first, second = Settings(), Settings()
        first.packages.append("tor")
        assert "tor" not in second.packages


# ── Plan ─────────────────────────────────────────────────────────


class TestExecutionPlan:
    def test_lookup_and_ids(self):
        plan = ExecutionPlan(
            steps=(
                PlanStep(id="a", capability="packages"),
                PlanStep(id="b", capability="firewall", depends_on=("a",)),
            )
        )
        assert plan.total_steps == 2
        assert plan.step_ids == ["a", "b"]
        assert plan.get("b").depends_on == ("a",)
        assert plan.get("zzz") is None

    def test_to_json_excludes_operation_id(self):
        steps = (PlanStep(id="a", capability="packages"),)
        first = ExecutionPlan(operation_id="op-1", steps=steps)
        second = ExecutionPlan(operation_id="op-2", steps=steps)
        assert first.to_json() == second.to_json()
        assert "op-1" not in first.to_json()


# ── Report ───────────────────────────────────────────────────────


class TestExecutionReport:
    def test_all_completed_is_ok(self):
        report = ExecutionReport(
            outcomes=(
                ExecutionOutcome.success("a", "packages"),
                ExecutionOutcome.skipped("b", "firewall"),
            )
        )
        assert report.ok
        assert report.status == "ok"
        assert report.succeeded == 2

    def test_partial(self):
        report = ExecutionReport(
            outcomes=(
                ExecutionOutcome.success("a", "packages"),
                ExecutionOutcome.failure("b", "source_build", "make failed"),
                ExecutionOutcome.blocked("c", "capability", "dependency not completed: b"),
            )
        )
        assert report.status == "partial"
        assert (report.succeeded, report.failed, report.blocked) == (1, 1, 1)

    def test_nothing_completed_is_failed(self):
        report = ExecutionReport(outcomes=(ExecutionOutcome.failure("a", "packages", "apt broke"),))
        assert report.status == "failed"

    def test_retried_then_failed_counts_as_failed(self):
        outcome = ExecutionOutcome(
            step_id="a", capability="packages", status=OutcomeStatus.RETRIED_THEN_FAILED
        )
        assert outcome.failed
        assert not outcome.completed

    def test_warnings_and_outputs(self):
        report = ExecutionReport(
            outcomes=(
                ExecutionOutcome.success("hidden_service", "hidden_service", warnings=["no address"]),
                ExecutionOutcome.success("certificate", "certificate", outputs={"certfile": "/c.pem"}),
            )
        )
        assert report.warnings == ["hidden_service: no address"]
        assert report.outputs == {"certificate": {"certfile": "/c.pem"}}

    def test_frozen(self):
        report = ExecutionReport()
        with pytest.raises(PydanticValidationError):
            report.aborted = True

    def test_outcomes_frozen_after_emit(self):
        report = ExecutionReport(
            outcomes=(ExecutionOutcome.success("a", "packages", warnings=["slow mirror"]),)
        )
        with pytest.raises(PydanticValidationError):
            report.outcomes[0].status = OutcomeStatus.FAILED
        assert report.outcomes[0].warnings == ("slow mirror",)
        assert not hasattr(report.outcomes[0].warnings, "append")
        assert report.ok

    def test_to_dict(self):
        report = ExecutionReport(
            operation_id="op-1",
            outcomes=(ExecutionOutcome.skipped("a", "packages"),),
        )
        data = report.to_dict()
        assert data["operation_id"] == "op-1"
        assert data["outcomes"][0]["status"] == "skipped-already-satisfied"
