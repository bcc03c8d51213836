"""
Engine settings — where things live on the host and how they are built.

Settings are not user input: they carry the fixed defaults for the
packaged application (Fulcrum) and can be overridden by an operator
YAML file. ``HostLayout.root`` re-roots every path, which lets tests
provision into a temporary directory.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

BASE_PACKAGES = [
    "build-essential",
    "qtbase5-dev",
    "qt5-qmake",
    "qtbase5-dev-tools",
    "libssl-dev",
    "zlib1g-dev",
    "libbz2-dev",
    "libzmq3-dev",
    "libcap2-bin",
    "git",
    "certbot",
    "python3-certbot-nginx",
    "nginx",
]


class HostLayout(BaseModel):
    """Absolute host paths used by the providers."""

    root: Path = Path("/")

    source_parent: str = "/opt"
    source_dir: str = "/opt/Fulcrum"
    binary_path: str = "/usr/local/bin/Fulcrum"
    data_dir: str = "/var/lib/fulcrum"
    config_path: str = "/etc/fulcrum/fulcrum.conf"
    log_file: str = "/var/log/fulcrum.log"
    unit_dir: str = "/etc/systemd/system"
    letsencrypt_live: str = "/etc/letsencrypt/live"
    renewal_cron: str = "/etc/cron.d/hostprov-certbot-renew"
    torrc: str = "/etc/tor/torrc"
    hidden_service_dir: str = "/var/lib/tor/fulcrum"
    state_dir: str = "/var/lib/hostprov"

    def path(self, host_path: str) -> Path:
        """Map an absolute host path under ``root``."""
        return self.root / host_path.lstrip("/")


class SourceSettings(BaseModel):
    """Pinned upstream source for the wrapped server."""

    repo_url: str = "https://github.com/cculianu/Fulcrum.git"
    ref: str = "v1.11.1"
    build_descriptor: str = "Fulcrum.pro"
    build_jobs: int = Field(default=4, ge=1)
    build_timeout: int = 7200


class ServiceSettings(BaseModel):
    """Managed service identity and limits."""

    name: str = "fulcrum"
    user: str = "fulcrum"
    description: str = "Fulcrum Electrum Server"
    limit_nofile: int = 100000
    restart_sec: int = 5


class CertificateSettings(BaseModel):
    """Certificate issuance and renewal."""

    authenticator: str = "nginx"
    renew_before_days: int = Field(default=30, ge=1)
    renewal_schedule: str = "17 3 * * *"


class HiddenServiceSettings(BaseModel):
    """Onion address polling after tor reload."""

    poll_attempts: int = Field(default=5, ge=1)
    poll_interval: float = Field(default=2.0, ge=0)


class Settings(BaseModel):
    """Root settings model — loaded from hostprov.yml or defaults."""

    layout: HostLayout = Field(default_factory=HostLayout)
    source: SourceSettings = Field(default_factory=SourceSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    certificate: CertificateSettings = Field(default_factory=CertificateSettings)
    hidden_service: HiddenServiceSettings = Field(default_factory=HiddenServiceSettings)
    packages: list[str] = Field(default_factory=lambda: list(BASE_PACKAGES))
    command_timeout: int = 1800
    require_root: bool = True

    @property
    def unit_path(self) -> str:
        return f"{self.layout.unit_dir}/{self.service.name}.service"

    def cert_paths(self, hostname: str) -> tuple[str, str]:
        """(certfile, keyfile) host paths for a hostname."""
        live = f"{self.layout.letsencrypt_live}/{hostname}"
        return f"{live}/fullchain.pem", f"{live}/privkey.pem"
