"""
Tests for the config renderer and the unit / cron / torrc templates.
"""

import pytest

from hostprov.core.render import (
    RenderedConfig,
    RenderError,
    render,
    render_renewal_cron,
    render_torrc_block,
    render_unit,
)
from hostprov.core.render.templates import (
    TORRC_BEGIN,
    TORRC_END,
    extract_torrc_block,
    replace_torrc_block,
)
from hostprov.core.validation import validate


class TestRenderConfig:
    def test_sections_in_order(self, request_model, settings):
        config = render(request_model, settings)
        assert [name for name, _ in config.sections] == ["bitcoin", "electrum", "logging", "database"]

    def test_values(self, request_model, settings):
        config = render(request_model, settings)
        assert config.get("bitcoin", "bitcoind") == "127.0.0.1:8332"
        assert config.get("bitcoin", "rpcuser") == "bitcoinrpc"
        assert config.get("bitcoin", "rpcpassword") == "s3cret-Pass_word"
        assert config.get("bitcoin", "datadir") == "/var/lib/fulcrum"
        assert config.get("electrum", "tcp") == "0.0.0.0:50001"
        assert config.get("electrum", "ssl") == "0.0.0.0:443"
        assert config.get("electrum", "admin") == "127.0.0.1:8000"
        assert config.get("electrum", "peer-discovery") == "true"
        assert config.get("database", "db-num-shards") == "32"
        assert config.get("electrum", "nope") is None

    def test_certificate_paths_default(self, request_model, settings):
        config = render(request_model, settings)
        assert config.get("electrum", "certfile") == "/etc/letsencrypt/live/electrum.example.com/fullchain.pem"
        assert config.get("electrum", "keyfile") == "/etc/letsencrypt/live/electrum.example.com/privkey.pem"

    def test_certificate_paths_from_outputs(self, request_model, settings):
        outputs = {"certificate": {"certfile": "/srv/cert.pem", "keyfile": "/srv/key.pem"}}
        config = render(request_model, settings, outputs)
        assert config.get("electrum", "certfile") == "/srv/cert.pem"
        assert config.get("electrum", "keyfile") == "/srv/key.pem"

    def test_text_layout(self, request_model, settings):
        text = render(request_model, settings).text
        assert text.startswith("# Fulcrum configuration\n")
        assert "\n[bitcoin]\ndatadir = /var/lib/fulcrum\n" in text
        assert text.endswith("db-num-shards = 32\n")

    def test_byte_identical_for_identical_requests(self, raw_request, settings):
        first = render(validate(raw_request), settings)
        second = render(validate(dict(raw_request)), settings)
        assert first.text == second.text
        assert first.sha256 == second.sha256

    def test_parse_round_trip(self, raw_request, settings):
        request = validate({**raw_request, "peer_discovery": "no", "rpc_host": "node.lan"})
        config = render(request, settings)
        assert RenderedConfig.parse(config.text) == config

    def test_masked_text(self, request_model, settings):
        masked = render(request_model, settings).masked_text()
        assert "s3cret" not in masked
        assert "rpcpassword = **********" in masked
        assert "rpcuser = bitcoinrpc" in masked

    def test_parse_rejects_garbage(self):
        with pytest.raises(RenderError):
            RenderedConfig.parse("key = value outside section\n")


class TestFormatting:
    def test_control_characters_refused(self, request_model, settings):
        settings.layout.log_file = "/var/log/ful\ncrum.log"
        with pytest.raises(RenderError):
            render(request_model, settings)

    def test_surrounding_whitespace_refused(self, request_model, settings):
        settings.layout.data_dir = " /var/lib/fulcrum"
        with pytest.raises(RenderError):
            render(request_model, settings)


class TestTemplates:
    def test_unit(self, settings):
        unit = render_unit(settings, "abc123")
        assert "# config-sha256: abc123\n" in unit
        assert "User=fulcrum\n" in unit
        assert "Group=fulcrum\n" in unit
        assert "ExecStart=/usr/local/bin/Fulcrum /etc/fulcrum/fulcrum.conf\n" in unit
        assert "Restart=always\n" in unit
        assert "LimitNOFILE=100000\n" in unit
        assert "WorkingDirectory=/var/lib/fulcrum\n" in unit

    def test_unit_changes_with_config(self, settings):
        assert render_unit(settings, "a") != render_unit(settings, "b")

    def test_renewal_cron(self, settings):
        cron = render_renewal_cron(settings)
        assert 'root certbot renew --quiet --deploy-hook "systemctl restart fulcrum"' in cron
        assert cron.splitlines()[-1].startswith("17 3 * * *")

    def test_torrc_block(self, raw_request, settings):
        request = validate({**raw_request, "onion_port": "50002", "tcp_port": "50011"})
        block = render_torrc_block(request, settings)
        assert block.startswith(TORRC_BEGIN)
        assert "HiddenServiceDir /var/lib/tor/fulcrum/\n" in block
        assert "HiddenServicePort 50002 127.0.0.1:50011\n" in block
        assert block.endswith(TORRC_END + "\n")


class TestTorrcBlock:
    def test_append_to_existing(self, request_model, settings):
        block = render_torrc_block(request_model, settings)
        text = replace_torrc_block("SocksPort 9050", block)
        assert text == "SocksPort 9050\n" + block
        assert extract_torrc_block(text) == block

    def test_replace_keeps_other_lines(self, request_model, settings):
        block = render_torrc_block(request_model, settings)
        old = f"SocksPort 9050\n{TORRC_BEGIN}\nHiddenServicePort 1 127.0.0.1:2\n{TORRC_END}\nLog notice syslog\n"
        text = replace_torrc_block(old, block)
        assert "HiddenServicePort 1 " not in text
        assert "Log notice syslog" in text
        assert text.count(TORRC_BEGIN) == 1

    def test_replace_is_idempotent(self, request_model, settings):
        block = render_torrc_block(request_model, settings)
        once = replace_torrc_block("", block)
        assert replace_torrc_block(once, block) == once

    def test_extract_missing(self):
        assert extract_torrc_block("SocksPort 9050\n") is None
