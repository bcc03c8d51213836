"""
Service account — unprivileged run-as user, data directory and log file.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.filesystem import touch

logger = logging.getLogger(__name__)


class ServiceAccountProvider(Provider):
    """Ensure the run-as account and its data directory exist.

    Desired state:
        user (str): System account name (also its group).
        data_dir (str): Owned ``user:user`` with ``mode``.
        mode (str): Octal permission string, e.g. "750".
        log_file (str): Server log file, owned by the account.
    """

    required_tools = ("id", "useradd", "chown", "chmod", "stat")

    @property
    def name(self) -> str:
        return "service_account"

    def _stat(self, path: str) -> tuple[str, str] | None:
        result = self.runner.run(["stat", "-c", "%U:%G %a", path])
        if not result.ok:
            return None
        owner, _, mode = result.stdout.strip().partition(" ")
        return owner, mode

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        desired = context.desired
        user = desired["user"]
        data_dir = context.host_path(desired["data_dir"])
        log_file = context.host_path(desired["log_file"])

        dir_stat = self._stat(str(data_dir)) if data_dir.is_dir() else None
        log_stat = self._stat(str(log_file)) if log_file.is_file() else None

        return {
            "user_exists": self.runner.run(["id", "-u", user]).ok,
            "data_dir_owner": dir_stat[0] if dir_stat else None,
            "data_dir_mode": dir_stat[1] if dir_stat else None,
            "log_file_owner": log_stat[0] if log_stat else None,
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        user = context.desired["user"]
        owner = f"{user}:{user}"
        return (
            current["user_exists"]
            and current["data_dir_owner"] == owner
            and current["data_dir_mode"] == context.desired["mode"]
            and current["log_file_owner"] == owner
        )

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        desired = context.desired
        user = desired["user"]
        owner = f"{user}:{user}"
        data_dir = context.host_path(desired["data_dir"])
        log_file = context.host_path(desired["log_file"])

        if not current["user_exists"]:
            logger.info("Creating system account %s", user)
            self.runner.check(
                [
                    "useradd",
                    "--system",
                    "--user-group",
                    "--no-create-home",
                    "--home-dir", desired["data_dir"],
                    "--shell", "/usr/sbin/nologin",
                    user,
                ]
            )

        data_dir.mkdir(parents=True, exist_ok=True)
        self.runner.check(["chown", "-R", owner, str(data_dir)])
        self.runner.check(["chmod", desired["mode"], str(data_dir)])

        touch(log_file)
        self.runner.check(["chown", owner, str(log_file)])

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"user": context.desired["user"], "data_dir": context.desired["data_dir"]}
