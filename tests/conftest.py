"""
Shared test fixtures and configuration.

``FakeHost`` stands in for the real host: it is a CommandRunner whose
``run`` simulates the handful of system tools the providers call, and
whose side effects land under the temporary layout root.
"""

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from hostprov.adapters.base import ProviderContext
from hostprov.adapters.registry import ProviderRegistry, default_registry
from hostprov.adapters.shell.command import CommandResult, CommandRunner
from hostprov.core.errors import PreconditionError
from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import HiddenServiceSettings, HostLayout, Settings
from hostprov.core.planning.builder import build_plan
from hostprov.core.validation import validate

HOST_TOOLS = frozenset(
    {
        "apt-get", "dpkg-query",
        "git", "qmake", "make",
        "id", "useradd", "chown", "chmod", "stat",
        "getcap", "setcap",
        "certbot", "openssl",
        "systemctl", "ufw", "tor",
    }
)

ONION = "abcdefghijklmnopqrstuvwxyz234567abcdefghijklmnopqrstuvwx.onion"


class FakeHost(CommandRunner):
    """Simulated Debian host driven through the command runner API."""

    def __init__(self, layout: HostLayout, tools: Sequence[str] = HOST_TOOLS):
        super().__init__()
        self.layout = layout
        self.tools = set(tools)
        self.calls: list[list[str]] = []
        self.failures: dict[str, str] = {}

        self.installed: set[str] = set()
        self.users: set[str] = set()
        self.owners: dict[str, str] = {}
        self.modes: dict[str, str] = {}
        self.caps: dict[str, str] = {}
        self.enabled: set[str] = set()
        self.active: set[str] = set()
        self.ufw_rules: list[str] = []

        self.clone_has_descriptor = True
        self.cert_valid = True
        self.onion_address: str | None = ONION

    # ── Configuration helpers ────────────────────────────────────

    def fail(self, command_prefix: str, stderr: str = "simulated failure") -> None:
        """Make every command starting with ``command_prefix`` exit 1."""
        self.failures[command_prefix] = stderr

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)

    def mutating_calls(self) -> list[list[str]]:
        readers = {"dpkg-query", "id", "stat", "getcap", "openssl"}
        result = []
        for call in self.calls:
            if call[0] in readers:
                continue
            if call[0] == "systemctl" and call[1] in {"is-enabled", "is-active"}:
                continue
            if call[:3] == ["ufw", "show", "added"]:
                continue
            result.append(call)
        return result

    # ── CommandRunner API ────────────────────────────────────────

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def run(self, args, *, cwd=None, timeout=None, env=None) -> CommandResult:
        argv = [str(a) for a in args]
        self.calls.append(argv)

        if argv[0] not in self.tools:
            raise PreconditionError(f"Required tool not found: {argv[0]}", hint=f"install {argv[0]}")

        line = " ".join(argv)
        for prefix, stderr in self.failures.items():
            if line.startswith(prefix):
                return CommandResult(args=argv, returncode=1, stderr=stderr)

        handler = getattr(self, "_" + argv[0].replace("-", "_"), None)
        if handler is None:
            return CommandResult(args=argv, returncode=0)
        returncode, stdout = handler(argv, cwd)
        return CommandResult(args=argv, returncode=returncode, stdout=stdout)

    # ── Simulated tools ──────────────────────────────────────────

    def _dpkg_query(self, argv, cwd):
        if argv[-1] in self.installed:
            return 0, "install ok installed"
        return 1, ""

    def _apt_get(self, argv, cwd):
        if argv[1] == "install":
            self.installed.update(a for a in argv[2:] if not a.startswith("-"))
        return 0, ""

    def _git(self, argv, cwd):
        dest = Path(argv[-1])
        dest.mkdir(parents=True, exist_ok=True)
        if self.clone_has_descriptor:
            (dest / "Fulcrum.pro").write_text("TEMPLATE = app\n")
        return 0, ""

    def _make(self, argv, cwd):
        if argv[1:] == ["install"]:
            binary = self.layout.path(self.layout.binary_path)
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_text("#!fulcrum\n")
        return 0, ""

    def _id(self, argv, cwd):
        return (0, "999\n") if argv[-1] in self.users else (1, "")

    def _useradd(self, argv, cwd):
        self.users.add(argv[-1])
        return 0, ""

    def _chown(self, argv, cwd):
        self.owners[argv[-1]] = argv[-2]
        return 0, ""

    def _chmod(self, argv, cwd):
        self.modes[argv[-1]] = argv[1]
        return 0, ""

    def _stat(self, argv, cwd):
        path = argv[-1]
        if not Path(path).exists():
            return 1, ""
        return 0, f"{self.owners.get(path, 'root:root')} {self.modes.get(path, '644')}\n"

    def _getcap(self, argv, cwd):
        path = argv[-1]
        return 0, f"{path} {self.caps[path]}\n" if path in self.caps else ""

    def _setcap(self, argv, cwd):
        self.caps[argv[-1]] = argv[1].replace("+", "")
        return 0, ""

    def _openssl(self, argv, cwd):
        return (0, "Certificate will not expire\n") if self.cert_valid else (1, "Certificate will expire\n")

    def _certbot(self, argv, cwd):
        domain = argv[argv.index("-d") + 1]
        live = self.layout.path(self.layout.letsencrypt_live) / domain
        live.mkdir(parents=True, exist_ok=True)
        (live / "fullchain.pem").write_text("CERT\n")
        (live / "privkey.pem").write_text("KEY\n")
        self.cert_valid = True
        return 0, ""

    def _systemctl(self, argv, cwd):
        sub, name = argv[1], argv[-1]
        if sub == "is-enabled":
            return (0, "enabled\n") if name in self.enabled else (1, "disabled\n")
        if sub == "is-active":
            return (0, "active\n") if name in self.active else (3, "inactive\n")
        if sub == "enable":
            self.enabled.add(name)
        if sub in ("restart", "reload"):
            self.active.add(name)
            if name == "tor" and self.onion_address:
                hs_dir = self.layout.path(self.layout.hidden_service_dir)
                hs_dir.mkdir(parents=True, exist_ok=True)
                (hs_dir / "hostname").write_text(self.onion_address + "\n")
        return 0, ""

    def _ufw(self, argv, cwd):
        if argv[1:3] == ["show", "added"]:
            lines = ["Added user rules (see 'ufw status' for running firewall):"]
            lines += [f"ufw allow {rule}" for rule in self.ufw_rules]
            return 0, "\n".join(lines) + "\n"
        if argv[1] == "allow":
            self.ufw_rules.append(argv[2])
        return 0, ""


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def layout(tmp_path: Path) -> HostLayout:
    """Host layout re-rooted under a temporary directory."""
    return HostLayout(root=tmp_path / "host")


@pytest.fixture
def settings(layout: HostLayout) -> Settings:
    return Settings(
        layout=layout,
        require_root=False,
        hidden_service=HiddenServiceSettings(poll_attempts=3, poll_interval=0),
    )


@pytest.fixture
def fake_host(layout: HostLayout) -> FakeHost:
    return FakeHost(layout)


@pytest.fixture
def make_host(layout: HostLayout) -> Callable[..., FakeHost]:
    """FakeHost factory with some tools removed from PATH."""

    def _make(without: Sequence[str] = ()) -> FakeHost:
        return FakeHost(layout, tools=HOST_TOOLS - set(without))

    return _make


@pytest.fixture
def registry(fake_host: FakeHost) -> ProviderRegistry:
    return default_registry(fake_host)


@pytest.fixture
def raw_request() -> dict[str, Any]:
    """Raw fields as the interactive prompts would produce them."""
    return {
        "hostname": "electrum.example.com",
        "rpc_user": "bitcoinrpc",
        "rpc_password": "s3cret-Pass_word",
        "rpc_host": "",
        "rpc_port": "",
    }


@pytest.fixture
def request_model(raw_request: dict[str, Any]) -> ProvisioningRequest:
    return validate(raw_request)


@pytest.fixture
def context_for(settings: Settings) -> Callable[..., ProviderContext]:
    """Build the ProviderContext for one step of the plan of a request."""

    def _make(
        step_id: str,
        request: ProvisioningRequest,
        outputs: dict[str, dict[str, Any]] | None = None,
    ) -> ProviderContext:
        step = build_plan(request, settings).get(step_id)
        assert step is not None, f"step {step_id} not in plan"
        return ProviderContext(step=step, request=request, settings=settings, outputs=outputs or {})

    return _make
