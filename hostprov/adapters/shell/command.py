"""
Command runner — the single gateway from providers to host tools.

Commands are always argument lists executed without a shell, so no
request value is ever re-parsed by ``sh``. Output is captured and
returned as a CommandResult; ``check`` turns a non-zero exit into a
ProviderApplyError, and a missing executable is a PreconditionError.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from hostprov.core.errors import PreconditionError, ProviderApplyError

logger = logging.getLogger(__name__)

TIMEOUT_RETURN_CODE = 124


@dataclass
class CommandResult:
    """Captured result of one command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.args)

    def summary(self, max_lines: int = 5) -> str:
        """Last lines of stderr (or stdout) for diagnostics."""
        text = self.stderr.strip() or self.stdout.strip()
        lines = text.splitlines()[-max_lines:]
        return "\n".join(lines)


class CommandRunner:
    """Run host commands and capture their output.

    Args:
        timeout: Default per-command timeout in seconds.
        env: Extra environment variables for every command.
    """

    def __init__(self, timeout: int = 1800, env: Mapping[str, str] | None = None):
        self._timeout = timeout
        self._env = dict(env or {})

    def which(self, name: str) -> str | None:
        """Resolve an executable on PATH."""
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: str | None = None,
        timeout: int | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and return its result (never raises on exit code).

        Raises:
            PreconditionError: If the executable does not exist.
        """
        argv = [str(a) for a in args]
        timeout = timeout or self._timeout
        merged_env = {**os.environ, **self._env, **(env or {})}

        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)
        start = time.monotonic()

        try:
            proc = subprocess.run(
                argv,
                cwd=cwd,
                env=merged_env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise PreconditionError(
                f"Required tool not found: {argv[0]}",
                hint=f"Install the package that provides '{argv[0]}' and re-run.",
            ) from e
        except subprocess.TimeoutExpired:
            return CommandResult(
                args=argv,
                returncode=TIMEOUT_RETURN_CODE,
                stderr=f"Command timed out after {timeout}s",
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"timeout": timeout},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            args=argv,
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration_ms=elapsed_ms,
        )
        if not result.ok:
            logger.debug("Command %s exited with %d", argv[0], proc.returncode)
        return result

    def check(self, args: Sequence[str], **kwargs) -> CommandResult:
        """Run a command and require a zero exit code.

        Raises:
            ProviderApplyError: If the command exits non-zero or times out.
        """
        result = self.run(args, **kwargs)
        if not result.ok:
            raise ProviderApplyError(
                f"'{result.command_line}' exited with code {result.returncode}",
                detail=result.summary(),
            )
        return result
