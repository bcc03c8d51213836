"""
Tests for CLI commands — provision, plan, render, status and exit codes.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from hostprov.adapters.registry import default_registry
from hostprov.main import cli


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Settings file re-rooting the host layout under tmp_path."""
    path = tmp_path / "hostprov.yml"
    path.write_text(textwrap.dedent(f"""\
        layout:
          root: {tmp_path / "host"}
        require_root: false
        hidden_service:
          poll_interval: 0
    """))
    return path


@pytest.fixture
def request_file(tmp_path: Path) -> Path:
    path = tmp_path / "request.yml"
    path.write_text(textwrap.dedent("""\
        request:
          hostname: electrum.example.com
          rpc_user: bitcoinrpc
          rpc_password: s3cret
    """))
    return path


@pytest.fixture
def simulated_host(monkeypatch, fake_host):
    """Route real (non-mock) CLI runs to the simulated host."""
    monkeypatch.setattr(
        "hostprov.core.use_cases.provision.default_registry",
        lambda runner=None, mock_mode=False: default_registry(fake_host, mock_mode=mock_mode),
    )
    return fake_host


class TestCLIGlobal:
    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Fulcrum" in result.output
        for command in ("provision", "plan", "render", "status"):
            assert command in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_bad_config_exits_3(self, tmp_path: Path, request_file: Path):
        bad = tmp_path / "bad.yml"
        bad.write_text("- not a mapping\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(bad), "plan", "--file", str(request_file)])
        assert result.exit_code == 3


class TestProvisionCommand:
    def test_mock_json(self, config_file: Path, request_file: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["-q", "--config", str(config_file), "provision", "--file", str(request_file), "--mock", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["mock"] is True
        assert data["report"]["status"] == "ok"
        assert "s3cret" not in result.output

    def test_mock_human_output(self, config_file: Path, request_file: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", str(config_file), "provision", "--file", str(request_file), "--mock"]
        )
        assert result.exit_code == 0
        assert "[mock] provision" in result.output
        assert "✓ packages" in result.output
        assert "Result: 8/8 succeeded" in result.output

    def test_validation_error_exits_2(self, tmp_path: Path, config_file: Path):
        bad = tmp_path / "bad-request.yml"
        bad.write_text("hostname: 'bad host'\nrpc_user: u\nrpc_password: p\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(bad), "--mock"])
        assert result.exit_code == 2
        assert "Invalid request" in result.stderr
        assert "hostname" in result.stderr

    def test_missing_request_file_exits_3(self, tmp_path: Path, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", str(config_file), "provision", "--file", str(tmp_path / "nope.yml")]
        )
        assert result.exit_code == 3

    def test_failed_step_exits_1(self, simulated_host, config_file: Path, request_file: Path):
        simulated_host.fail("certbot", stderr="Challenge failed")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(request_file)])
        assert result.exit_code == 1
        assert "✗ certificate" in result.stdout
        assert "⊘ service" in result.stdout
        assert "Challenge failed" in result.stderr
        assert "blocks: config, service" in result.stderr
        assert "✓ packages" not in result.stderr

    def test_precondition_exits_3(self, monkeypatch, make_host, config_file: Path, request_file: Path):
        host = make_host(without=["apt-get"])
        monkeypatch.setattr(
            "hostprov.core.use_cases.provision.default_registry",
            lambda runner=None, mock_mode=False: default_registry(host),
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(request_file)])
        assert result.exit_code == 3
        assert "Aborted" in result.stderr
        assert "Aborted" not in result.stdout

    def test_not_root_exits_3(self, monkeypatch, tmp_path: Path, request_file: Path):
        config = tmp_path / "root.yml"
        config.write_text(f"layout:\n  root: {tmp_path / 'host'}\nrequire_root: true\n")
        monkeypatch.setattr("hostprov.core.use_cases.provision.os.geteuid", lambda: 1000)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "provision", "--file", str(request_file)])
        assert result.exit_code == 3
        assert "must run as root" in result.stderr
        assert "sudo" in result.stderr
        assert result.stdout == ""

    def test_ok_run_prints_endpoints(self, simulated_host, config_file: Path, request_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(request_file)])
        assert result.exit_code == 0, result.output
        assert "TCP:  electrum.example.com:50001" in result.stdout
        assert "SSL:  electrum.example.com:443" in result.stdout
        assert "journalctl -u fulcrum -f" in result.stdout
        assert "❌" not in result.stderr

    def test_unwritable_state_is_reported(self, monkeypatch, simulated_host, config_file: Path, request_file: Path):
        def _fail(state, path):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr("hostprov.core.use_cases.provision.save_state", _fail)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(request_file)])
        assert result.exit_code == 0
        assert "Result: 8/8 succeeded" in result.stdout
        assert "Run not recorded" in result.stderr


class TestInteractive:
    def test_no_subcommand_prompts_and_provisions(self, simulated_host, config_file: Path):
        runner = CliRunner()
        answers = "electrum.example.com\nbitcoinrpc\ns3cret\n\n\n"
        result = runner.invoke(cli, ["--config", str(config_file)], input=answers)
        assert result.exit_code == 0, result.output
        assert "Hostname" in result.output
        assert "Bitcoin RPC host (default: 127.0.0.1)" in result.output
        assert "Bitcoin RPC port (default: 8332)" in result.output
        assert "Result: 8/8 succeeded" in result.output
        assert "s3cret" not in result.output
        assert simulated_host.ran("systemctl", "enable", "fulcrum")

    def test_rerun_is_all_skipped(self, simulated_host, config_file: Path):
        runner = CliRunner()
        answers = "electrum.example.com\nbitcoinrpc\ns3cret\n\n\n"
        runner.invoke(cli, ["--config", str(config_file)], input=answers)
        simulated_host.calls.clear()
        result = runner.invoke(cli, ["--config", str(config_file)], input=answers)
        assert result.exit_code == 0
        assert "✓ " not in result.output
        assert simulated_host.mutating_calls() == []

    def test_bad_port_exits_2(self, simulated_host, config_file: Path):
        runner = CliRunner()
        answers = "electrum.example.com\nbitcoinrpc\ns3cret\n\n70000\n"
        result = runner.invoke(cli, ["--config", str(config_file)], input=answers)
        assert result.exit_code == 2
        assert "rpc_port" in result.output
        assert simulated_host.calls == []


class TestPlanCommand:
    def test_json_is_deterministic(self, config_file: Path, request_file: Path):
        runner = CliRunner()
        args = ["-q", "--config", str(config_file), "plan", "--file", str(request_file), "--json"]
        first = runner.invoke(cli, args)
        second = runner.invoke(cli, args)
        assert first.exit_code == 0
        assert first.output == second.output
        assert [s["id"] for s in json.loads(first.output)][-1] == "firewall"

    def test_human(self, config_file: Path, request_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "plan", "--file", str(request_file)])
        assert result.exit_code == 0
        assert "1. packages [packages]" in result.output
        assert "(after account, certificate)" in result.output


class TestRenderCommand:
    def test_masks_password(self, config_file: Path, request_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "--config", str(config_file), "render", "--file", str(request_file)])
        assert result.exit_code == 0
        assert "[bitcoin]" in result.output
        assert "rpcpassword = **********" in result.output
        assert "s3cret" not in result.output


class TestStatusCommand:
    def test_no_run(self, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "status"])
        assert result.exit_code == 0
        assert "No provisioning run recorded yet" in result.output
        assert "Host tools:" in result.output

    def test_after_run(self, simulated_host, config_file: Path, request_file: Path):
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config_file), "provision", "--file", str(request_file)])
        result = runner.invoke(cli, ["--config", str(config_file), "status"])
        assert result.exit_code == 0
        assert "electrum.example.com" in result.output
        assert "8/8 succeeded" in result.output
        assert "Host tools:" in result.output

        as_json = runner.invoke(cli, ["-q", "--config", str(config_file), "status", "--json"])
        data = json.loads(as_json.output)
        assert data["has_run"] is True
        assert data["last_operation"]["status"] == "ok"
        assert "packages" in data["providers"]
