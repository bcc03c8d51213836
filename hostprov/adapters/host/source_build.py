"""
Source builder — fetch, compile and install the pinned upstream server.

The checkout directory is always recreated from scratch so a stale or
half-fetched tree never leaks into a build. A stamp file in the state
directory records which ref produced the installed binary.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.filesystem import read_text, write_file_atomic
from hostprov.core.errors import ProviderApplyError

logger = logging.getLogger(__name__)

BUILD_STAMP = "build.ref"


def _stamp_line(repo_url: str, ref: str) -> str:
    return f"{repo_url} {ref}\n"


class SourceBuilder(Provider):
    """Build the server binary from a pinned git ref with qmake/make.

    Desired state:
        repo_url, ref: Pinned upstream source.
        source_dir: Working checkout directory (recreated on every build).
        binary_path: Where ``make install`` puts the binary.
    """

    required_tools = ("git", "qmake", "make")
    install_hint = "Install git, qt5-qmake and build-essential (the packages step does this)."

    @property
    def name(self) -> str:
        return "source_build"

    def _stamp_path(self, context: ProviderContext) -> Path:
        return context.host_path(context.layout.state_dir) / BUILD_STAMP

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        binary = context.host_path(context.desired["binary_path"])
        stamp = read_text(self._stamp_path(context))
        return {
            "binary_present": binary.is_file(),
            "built_from": stamp.strip() if stamp else None,
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        expected = _stamp_line(context.desired["repo_url"], context.desired["ref"]).strip()
        return current["binary_present"] and current["built_from"] == expected

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        desired = context.desired
        source = context.settings.source
        src_dir = context.host_path(desired["source_dir"])

        if src_dir.exists():
            logger.info("Removing stale checkout %s", src_dir)
            shutil.rmtree(src_dir)
        src_dir.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Fetching %s at %s", desired["repo_url"], desired["ref"])
        self.runner.check(
            ["git", "clone", "--depth", "1", "--branch", desired["ref"], desired["repo_url"], str(src_dir)],
            timeout=source.build_timeout,
        )

        descriptor = src_dir / source.build_descriptor
        if not descriptor.is_file():
            raise ProviderApplyError(
                f"Build descriptor {source.build_descriptor} missing after fetch",
                detail="The checkout is incomplete or the upstream layout changed.",
            )

        logger.info("Compiling in %s with %d jobs", src_dir, source.build_jobs)
        self.runner.check(["qmake", source.build_descriptor], cwd=str(src_dir))
        self.runner.check(["make", f"-j{source.build_jobs}"], cwd=str(src_dir), timeout=source.build_timeout)
        self.runner.check(["make", "install"], cwd=str(src_dir))

        if not context.host_path(desired["binary_path"]).is_file():
            raise ProviderApplyError(
                f"make install did not produce {desired['binary_path']}",
                detail="Check the install target of the upstream build.",
            )

        write_file_atomic(self._stamp_path(context), _stamp_line(desired["repo_url"], desired["ref"]))

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"binary_path": context.desired["binary_path"], "ref": context.desired["ref"]}
