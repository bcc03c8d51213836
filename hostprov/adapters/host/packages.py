"""
Package installer — ensure a set of Debian packages is installed.

Already-installed packages are a no-op; only the missing ones are
passed to ``apt-get install``.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
_INSTALLED_STATUS = "install ok installed"


class PackageInstaller(Provider):
    """Install OS packages with apt.

    Desired state:
        packages (list[str]): Package names that must be installed.
    """

    required_tools = ("apt-get", "dpkg-query")
    install_hint = "hostprov supports Debian-family hosts with apt-get and dpkg-query."

    @property
    def name(self) -> str:
        return "packages"

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        runner = self.runner
        installed: list[str] = []
        missing: list[str] = []
        for package in context.desired.get("packages", []):
            result = runner.run(["dpkg-query", "-W", "-f=${Status}", package])
            if result.ok and result.stdout.strip() == _INSTALLED_STATUS:
                installed.append(package)
            else:
                missing.append(package)
        return {"installed": installed, "missing": missing}

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return not current["missing"]

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        missing = current["missing"]
        logger.info("Installing %d packages: %s", len(missing), " ".join(missing))
        self.runner.check(["apt-get", "update"], env=_APT_ENV)
        self.runner.check(["apt-get", "install", "-y", *missing], env=_APT_ENV)

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"installed": len(current["installed"])}
