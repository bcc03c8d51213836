"""
Firewall configurator — allow the listener ports through ufw.

Hosts without ufw are left alone: the step is satisfied as a no-op.
Rules are only ever added, never removed.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext

logger = logging.getLogger(__name__)


def parse_added_rules(output: str) -> set[str]:
    """Rules from ``ufw show added``, e.g. {"443/tcp", "22"}."""
    rules: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) == 3 and parts[0] == "ufw" and parts[1] == "allow":
            rules.add(parts[2])
    return rules


class FirewallConfigurator(Provider):
    """Open inbound TCP ports when a firewall manager is present.

    Desired state:
        ports (list[int]): Listener ports to allow.
        protocol (str): Always "tcp".
    """

    @property
    def name(self) -> str:
        return "firewall"

    def _wanted(self, context: ProviderContext) -> list[str]:
        proto = context.desired.get("protocol", "tcp")
        return [f"{port}/{proto}" for port in context.desired["ports"]]

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        if self.runner.which("ufw") is None:
            return {"manager": None, "missing": []}
        result = self.runner.run(["ufw", "show", "added"])
        rules = parse_added_rules(result.stdout) if result.ok else set()
        return {
            "manager": "ufw",
            "missing": [rule for rule in self._wanted(context) if rule not in rules],
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return current["manager"] is None or not current["missing"]

    def satisfied_message(self, current: dict[str, Any], context: ProviderContext) -> str:
        if current["manager"] is None:
            return "no firewall manager installed; nothing to do"
        return "already satisfied"

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        for rule in current["missing"]:
            logger.info("Allowing %s", rule)
            self.runner.check(["ufw", "allow", rule])

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        if current["manager"] is None:
            return {}
        return {"manager": current["manager"], "rules": self._wanted(context)}
