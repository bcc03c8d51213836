"""
Config file provider — write the rendered server configuration.

The file holds the RPC password, so it is readable by the run-as
account only (owner ``user:user``, mode 0600).
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.filesystem import read_text, write_file_atomic
from hostprov.core.render.config_renderer import RenderedConfig, render

logger = logging.getLogger(__name__)


class ConfigFileProvider(Provider):
    """Render and install the configuration file.

    Desired state:
        path (str): Destination of the config file.
        owner (str): Run-as account owning the file.
        mode (str): Octal permission string, e.g. "600".
    """

    required_tools = ("chown", "chmod", "stat")

    @property
    def name(self) -> str:
        return "config_file"

    def _rendered(self, context: ProviderContext) -> RenderedConfig:
        return render(context.request, context.settings, context.outputs)

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        path = context.host_path(context.desired["path"])
        content = read_text(path)

        owner = mode = None
        if content is not None:
            result = self.runner.run(["stat", "-c", "%U:%G %a", str(path)])
            if result.ok:
                owner, _, mode = result.stdout.strip().partition(" ")

        return {
            "present": content is not None,
            "content_matches": content == self._rendered(context).text,
            "owner": owner,
            "mode": mode,
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        user = context.desired["owner"]
        return (
            current["content_matches"]
            and current["owner"] == f"{user}:{user}"
            and current["mode"] == context.desired["mode"]
        )

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        desired = context.desired
        path = context.host_path(desired["path"])
        user = desired["owner"]

        if not current["content_matches"]:
            logger.info("Writing %s", desired["path"])
            write_file_atomic(path, self._rendered(context).text, mode=int(desired["mode"], 8))

        self.runner.check(["chown", f"{user}:{user}", str(path)])
        self.runner.check(["chmod", desired["mode"], str(path)])

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"path": context.desired["path"], "sha256": self._rendered(context).sha256}
