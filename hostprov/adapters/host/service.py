"""
Service registrar — systemd unit for the managed server.

The unit embeds the fingerprint of the rendered config, so a changed
configuration rewrites the unit and triggers a restart; an unchanged
one leaves the running service alone.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.filesystem import read_text, write_file_atomic
from hostprov.core.render.config_renderer import render
from hostprov.core.render.templates import render_unit

logger = logging.getLogger(__name__)

_ACTIVE_STATES = {"active", "activating"}


class ServiceRegistrar(Provider):
    """Install the unit, enable it and keep the service running.

    Desired state:
        name (str): Unit name without suffix.
        unit_path (str): Location of the unit file.
    """

    required_tools = ("systemctl",)
    install_hint = "hostprov requires systemd."

    @property
    def name(self) -> str:
        return "service"

    def _unit_text(self, context: ProviderContext) -> str:
        config_sha = render(context.request, context.settings, context.outputs).sha256
        return render_unit(context.settings, config_sha)

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        name = context.desired["name"]
        unit = read_text(context.host_path(context.desired["unit_path"]))
        enabled = self.runner.run(["systemctl", "is-enabled", name]).stdout.strip()
        active = self.runner.run(["systemctl", "is-active", name]).stdout.strip()
        return {
            "unit_matches": unit == self._unit_text(context),
            "enabled": enabled == "enabled",
            "active": active in _ACTIVE_STATES,
            "active_state": active,
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return current["unit_matches"] and current["enabled"] and current["active"]

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        name = context.desired["name"]

        if not current["unit_matches"]:
            logger.info("Writing unit %s", context.desired["unit_path"])
            write_file_atomic(context.host_path(context.desired["unit_path"]), self._unit_text(context))
            self.runner.check(["systemctl", "daemon-reload"])

        if not current["enabled"]:
            self.runner.check(["systemctl", "enable", name])

        if not current["unit_matches"] or not current["active"]:
            logger.info("Restarting %s", name)
            self.runner.check(["systemctl", "restart", name])

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"unit": context.desired["name"], "active_state": current["active_state"]}
