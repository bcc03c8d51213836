"""
Privilege grantor — let the server bind ports below 1024 without root.
"""

from __future__ import annotations

from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.core.errors import ProviderApplyError


class PrivilegeGrantor(Provider):
    """Grant a single file capability to the installed binary."""

    required_tools = ("getcap", "setcap")
    install_hint = "Install libcap2-bin (provides getcap/setcap)."

    @property
    def name(self) -> str:
        return "capability"

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        binary = context.host_path(context.desired["binary_path"])
        if not binary.is_file():
            return {"binary_present": False, "granted": False}
        result = self.runner.run(["getcap", str(binary)])
        return {
            "binary_present": True,
            "granted": result.ok and context.desired["capability"] in result.stdout,
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return current["granted"]

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        if not current["binary_present"]:
            raise ProviderApplyError(
                f"{context.desired['binary_path']} is not installed",
                detail="The build step must complete first.",
            )
        binary = context.host_path(context.desired["binary_path"])
        self.runner.check(["setcap", f"{context.desired['capability']}=+ep", str(binary)])
