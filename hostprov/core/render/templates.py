"""
Fixed-text templates for the other files the engine manages.

    render_unit          systemd service unit
    render_renewal_cron  /etc/cron.d entry for certbot renewal
    render_torrc_block   marked HiddenService block inside torrc

All three are pure functions of settings and validated request fields.
"""

from __future__ import annotations

from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import Settings

TORRC_BEGIN = "# BEGIN hostprov hidden service"
TORRC_END = "# END hostprov hidden service"


def render_unit(settings: Settings, config_sha256: str) -> str:
    """Service unit for the managed server.

    The config fingerprint is embedded as a comment so that a changed
    configuration changes the unit, which forces a restart.
    """
    svc = settings.service
    layout = settings.layout
    return (
        "# Managed by hostprov\n"
        f"# config-sha256: {config_sha256}\n"
        "[Unit]\n"
        f"Description={svc.description}\n"
        "After=network-online.target\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        f"User={svc.user}\n"
        f"Group={svc.user}\n"
        f"ExecStart={layout.binary_path} {layout.config_path}\n"
        f"WorkingDirectory={layout.data_dir}\n"
        "Restart=always\n"
        f"RestartSec={svc.restart_sec}\n"
        f"LimitNOFILE={svc.limit_nofile}\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def render_renewal_cron(settings: Settings) -> str:
    """Cron entry renewing certificates and restarting the service on change."""
    schedule = settings.certificate.renewal_schedule
    service = settings.service.name
    return (
        "# Managed by hostprov\n"
        "SHELL=/bin/sh\n"
        "PATH=/usr/local/sbin:/usr/local/bin:/sbin:/bin:/usr/sbin:/usr/bin\n"
        f'{schedule} root certbot renew --quiet --deploy-hook "systemctl restart {service}"\n'
    )


def render_torrc_block(request: ProvisioningRequest, settings: Settings) -> str:
    """HiddenService mapping of the onion port to the local TCP listener."""
    return (
        f"{TORRC_BEGIN}\n"
        f"HiddenServiceDir {settings.layout.hidden_service_dir}/\n"
        f"HiddenServicePort {request.onion_port} 127.0.0.1:{request.tcp_port}\n"
        f"{TORRC_END}\n"
    )


def replace_torrc_block(torrc_text: str, block: str) -> str:
    """Return torrc text with the managed block replaced (or appended)."""
    lines = torrc_text.splitlines(keepends=True)
    kept: list[str] = []
    inside = False
    for line in lines:
        stripped = line.strip()
        if stripped == TORRC_BEGIN:
            inside = True
            continue
        if stripped == TORRC_END:
            inside = False
            continue
        if not inside:
            kept.append(line)
    text = "".join(kept)
    if text and not text.endswith("\n"):
        text += "\n"
    return text + block


def extract_torrc_block(torrc_text: str) -> str | None:
    """The managed block currently in torrc, or None."""
    start = torrc_text.find(TORRC_BEGIN)
    if start < 0:
        return None
    end = torrc_text.find(TORRC_END, start)
    if end < 0:
        return None
    return torrc_text[start:end + len(TORRC_END)] + "\n"
