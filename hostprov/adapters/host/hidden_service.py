"""
Hidden-service configurator — onion mapping for the TCP listener.

tor generates the onion address asynchronously after a reload, so the
address is polled a bounded number of times. A missing address is a
warning on the outcome, never a failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.command import CommandRunner
from hostprov.adapters.shell.filesystem import read_text, write_file_atomic
from hostprov.core.errors import WarningCondition
from hostprov.core.render.templates import (
    extract_torrc_block,
    render_torrc_block,
    replace_torrc_block,
)

logger = logging.getLogger(__name__)

_ACTIVE_STATES = {"active", "activating"}


class HiddenServiceConfigurator(Provider):
    """Maintain the HiddenService block in torrc and surface the address.

    Desired state:
        torrc (str): Path of the tor configuration file.
        hidden_service_dir (str): Directory tor writes ``hostname`` into.
        onion_port (int), target (str): External port → local listener.
    """

    required_tools = ("tor", "systemctl")
    install_hint = "Install tor (added to the packages step when the hidden service is enabled)."

    def __init__(
        self,
        runner: CommandRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(runner)
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "hidden_service"

    def _read_address(self, context: ProviderContext) -> str | None:
        hostname_file = context.host_path(context.desired["hidden_service_dir"]) / "hostname"
        text = read_text(hostname_file)
        if not text or not text.strip():
            return None
        return text.strip()

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        torrc = read_text(context.host_path(context.desired["torrc"])) or ""
        expected = render_torrc_block(context.request, context.settings)
        return {
            "mapping_present": extract_torrc_block(torrc) == expected,
            "tor_active": self.runner.run(["systemctl", "is-active", "tor"]).stdout.strip() in _ACTIVE_STATES,
            "onion_address": self._read_address(context),
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return current["mapping_present"] and current["tor_active"]

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        if not current["mapping_present"]:
            torrc_path = context.host_path(context.desired["torrc"])
            block = render_torrc_block(context.request, context.settings)
            existing = read_text(torrc_path) or ""

            logger.info("Updating hidden service mapping in %s", context.desired["torrc"])
            write_file_atomic(torrc_path, replace_torrc_block(existing, block))

        if not current["tor_active"]:
            logger.info("Starting tor")
            self.runner.check(["systemctl", "restart", "tor"])
        elif not self.runner.run(["systemctl", "reload", "tor"]).ok:
            self.runner.check(["systemctl", "restart", "tor"])

        self._wait_for_address(context)

    def _wait_for_address(self, context: ProviderContext) -> str | None:
        poll = context.settings.hidden_service
        for attempt in range(1, poll.poll_attempts + 1):
            address = self._read_address(context)
            if address:
                return address
            logger.debug("Onion address not ready (attempt %d/%d)", attempt, poll.poll_attempts)
            if attempt < poll.poll_attempts:
                self._sleep(poll.poll_interval)
        return None

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        address = current["onion_address"]
        if not address:
            raise WarningCondition(
                "onion address not available yet; read it later from "
                f"{context.desired['hidden_service_dir']}/hostname"
            )
        return {"onion_address": address, "onion_port": context.desired["onion_port"]}
