"""
hostprov — CLI entrypoint.

Usage:
    hostprov                      provision interactively
    hostprov provision --file request.yml
    hostprov plan --file request.yml --json
    hostprov status
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

import click

from hostprov import __version__
from hostprov.core.errors import ConfigError
from hostprov.core.models.settings import Settings
from hostprov.core.observability.logging_config import resolve_level, setup_logging
from hostprov.core.planning.dag import dependents_of
from hostprov.core.use_cases.provision import (
    EXIT_PRECONDITION,
    EXIT_VALIDATION,
    ProvisionResult,
)
from hostprov.core.validation.validator import DEFAULT_RPC_HOST, DEFAULT_RPC_PORT

_STATUS_STYLE = {
    "success": ("✓", "green"),
    "skipped-already-satisfied": ("=", "cyan"),
    "failed": ("✗", "red"),
    "retried-then-failed": ("✗", "red"),
    "blocked": ("⊘", "yellow"),
}

_RESULT_COLOR = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="hostprov")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostprov.yml settings (default: $HOSTPROV_CONFIG or /etc/hostprov/hostprov.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Provision a Fulcrum Electrum server on this host."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(verbose, quiet, debug, os.environ.get("HOSTPROV_LOG_LEVEL")),
        log_file=os.environ.get("HOSTPROV_LOG_FILE"),
        log_file_level=os.environ.get("HOSTPROV_LOG_FILE_LEVEL"),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(provision)


# ── Helpers ─────────────────────────────────────────────────────


def _settings(ctx: click.Context):
    from hostprov.core.config.loader import load_settings

    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_PRECONDITION)


def _prompt_fields() -> dict[str, Any]:
    """Ask for the five interactive fields; blanks fall back to defaults."""
    return {
        "hostname": click.prompt("Hostname (public DNS name)"),
        "rpc_user": click.prompt("Bitcoin RPC user"),
        "rpc_password": click.prompt("Bitcoin RPC password", hide_input=True),
        "rpc_host": click.prompt(
            f"Bitcoin RPC host (default: {DEFAULT_RPC_HOST})", default="", show_default=False
        ) or None,
        "rpc_port": click.prompt(
            f"Bitcoin RPC port (default: {DEFAULT_RPC_PORT})", default="", show_default=False
        ) or None,
    }


def _raw_fields(request_file: str | None) -> dict[str, Any]:
    if request_file is None:
        return _prompt_fields()

    from hostprov.core.config.loader import load_request_file

    try:
        return load_request_file(Path(request_file))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_PRECONDITION)


def _print_errors(result: ProvisionResult) -> None:
    """Diagnostics for a run that did not fully succeed, on stderr."""
    if result.report is None:
        prefix = "Invalid request — " if result.error_field else ""
        click.secho(f"❌ {prefix}{result.error}", fg="red", err=True)
        if result.hint:
            click.echo(f"   Hint: {result.hint}", err=True)
        return

    steps = result.plan.steps if result.plan else ()
    for outcome in result.report.outcomes:
        if not outcome.failed:
            continue
        click.secho(f"✗ {outcome.step_id} {outcome.status.value}: {outcome.message}", fg="red", err=True)
        hint_lines = outcome.hint.split("\n")[:5] if outcome.hint else []
        for line in hint_lines:
            click.echo(f"   │ {line}", err=True)
        blocked = sorted(dependents_of(steps, outcome.step_id))
        if blocked and not result.report.aborted:
            click.echo(f"   │ blocks: {', '.join(blocked)}", err=True)

    if result.report.aborted:
        click.secho(f"❌ Aborted: {result.report.abort_reason}", fg="red", err=True)
        if result.hint:
            click.echo(f"   Hint: {result.hint}", err=True)


def _print_result(result: ProvisionResult, settings: Settings, verbose: bool) -> None:
    if result.report is None:
        return

    report = result.report
    request = result.request
    assert request is not None

    mode_label = "[mock] " if result.mock else ""
    click.secho(f"\n⚡ {mode_label}provision — {request.hostname}", fg="cyan", bold=True)
    click.echo(f"   Steps: {report.total}")
    click.echo()

    for outcome in report.outcomes:
        marker, color = _STATUS_STYLE[outcome.status.value]
        click.secho(f"   {marker} {outcome.step_id}", fg=color, nl=False)
        timing = f" ({outcome.duration_ms}ms)" if outcome.duration_ms else ""
        click.echo(f" {outcome.status.value}{timing}")
        if outcome.message and (outcome.status.value == "blocked" or verbose):
            click.echo(f"     │ {outcome.message}")
        for warning in outcome.warnings:
            click.secho(f"     ⚠️  {warning}", fg="yellow")

    onion = report.outputs.get("hidden_service", {}).get("onion_address")
    if onion:
        click.echo()
        click.secho(f"   🧅 {onion}:{request.onion_port}", fg="magenta")

    click.echo()
    click.secho(
        f"   Result: {report.succeeded}/{report.total} succeeded",
        fg=_RESULT_COLOR.get(report.status, "white"),
        bold=True,
    )
    if report.ok and not result.mock:
        click.echo(f"   TCP:  {request.hostname}:{request.tcp_port}")
        click.echo(f"   SSL:  {request.hostname}:{request.ssl_port}")
        click.echo(f"   Logs: journalctl -u {settings.service.name} -f")
    click.echo()


# ── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option("--file", "-f", "request_file", type=click.Path(), default=None, help="Request YAML file (default: prompt).")
@click.option("--mock", is_flag=True, help="Use the mock provider (no host changes).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def provision(ctx: click.Context, request_file: str | None, mock: bool, as_json: bool) -> None:
    """Provision the server (idempotent; safe to re-run).

    Examples:

        hostprov provision

        hostprov provision --file request.yml --json
    """
    from hostprov.core.use_cases.provision import provision as run_provision

    settings = _settings(ctx)
    raw = _raw_fields(request_file)
    result = run_provision(raw, settings, mock_mode=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result, settings, ctx.obj.get("verbose", False))

    if result.persist_error:
        click.secho(f"⚠️  Run not recorded in state or audit log: {result.persist_error}", fg="yellow", err=True)

    if result.exit_code:
        _print_errors(result)
        sys.exit(result.exit_code)


@cli.command()
@click.option("--file", "-f", "request_file", type=click.Path(), default=None, help="Request YAML file (default: prompt).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, request_file: str | None, as_json: bool) -> None:
    """Show the steps a run would take, without touching the host."""
    from hostprov.core.use_cases.provision import prepare

    result = prepare(_raw_fields(request_file), _settings(ctx))

    if result.error:
        click.secho(f"❌ Invalid request — {result.error}", fg="red", err=True)
        sys.exit(EXIT_VALIDATION)

    assert result.plan is not None
    if as_json:
        click.echo(result.plan.to_json())
        return

    click.secho(f"\n📋 Plan — {result.request.hostname}", fg="cyan", bold=True)
    for index, step in enumerate(result.plan.steps, start=1):
        after = f"  (after {', '.join(step.depends_on)})" if step.depends_on else ""
        click.echo(f"   {index}. {step.id} [{step.capability}] {step.description}{after}")
    click.echo()


@cli.command()
@click.option("--file", "-f", "request_file", type=click.Path(), default=None, help="Request YAML file (default: prompt).")
@click.pass_context
def render(ctx: click.Context, request_file: str | None) -> None:
    """Print the server configuration (password masked)."""
    from hostprov.core.use_cases.provision import prepare

    result = prepare(_raw_fields(request_file), _settings(ctx))

    if result.error:
        click.secho(f"❌ Invalid request — {result.error}", fg="red", err=True)
        sys.exit(EXIT_VALIDATION)

    assert result.config is not None
    click.echo(result.config.masked_text(), nl=False)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the last provisioning run."""
    from hostprov.core.use_cases.status import get_status

    result = get_status(_settings(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.has_run:
        click.secho("No provisioning run recorded yet.", fg="yellow")
        _print_providers(result)
        return

    assert result.state is not None
    op = result.state.last_operation
    click.secho(f"\n📋 {op.hostname}", fg="cyan", bold=True)
    click.echo(f"   Last operation: {op.operation_id} — ", nl=False)
    click.secho(op.status, fg=_RESULT_COLOR.get(op.status, "white"))
    if op.ended_at:
        click.echo(f"     at {op.ended_at}")
    click.echo(
        f"   Steps: {op.steps_succeeded}/{op.steps_total} succeeded, "
        f"{op.steps_failed} failed, {op.steps_blocked} blocked"
    )

    for step_id, step in result.state.steps.items():
        marker, color = _STATUS_STYLE.get(step.last_status, ("•", "white"))
        click.secho(f"     {marker} {step_id}", fg=color, nl=False)
        click.echo(f" {step.last_status}")

    if result.state.onion_address:
        click.echo(f"   🧅 {result.state.onion_address}")
    _print_providers(result)
    click.echo()


def _print_providers(result) -> None:
    missing = result.unavailable
    if not missing:
        click.echo("   Host tools: all providers available")
        return
    click.secho(f"   Host tools: {len(missing)} provider(s) unavailable", fg="yellow")
    for entry in missing:
        click.echo(f"     ⊘ {entry['name']} (missing: {', '.join(entry['missing'])})")
        if entry["hint"]:
            click.echo(f"       {entry['hint']}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
