"""
ProvisioningRequest — the immutable input of one provisioning run.

Built once per run by the input validator from interactive prompts or a
request file, then passed read-only through planning, execution and
rendering.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

LogLevel = Literal["trace", "debug", "info", "warning", "error"]


class ProvisioningRequest(BaseModel):
    """Validated provisioning parameters.

    Construct through ``hostprov.core.validation.validate`` — the model
    itself only enforces types and ranges, not the field grammars.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ── Identity ─────────────────────────────────────────────────
    hostname: str
    acme_email: str

    # ── Node connection ──────────────────────────────────────────
    rpc_host: str = "127.0.0.1"
    rpc_port: int = Field(default=8332, ge=1, le=65535)
    rpc_user: str
    rpc_password: SecretStr

    # ── Listeners ────────────────────────────────────────────────
    tcp_port: int = Field(default=50001, ge=1, le=65535)
    ssl_port: int = Field(default=443, ge=1, le=65535)
    admin_port: int = Field(default=8000, ge=1, le=65535)
    onion_port: int = Field(default=50001, ge=1, le=65535)

    # ── Resource tuning ──────────────────────────────────────────
    workers: int = Field(default=16, ge=1)
    rpc_timeout: int = Field(default=60, ge=1)
    utxo_cache_mb: int = Field(default=1000, ge=1)
    cache_mb: int = Field(default=2000, ge=1)
    max_clients: int = Field(default=10000, ge=1)
    client_timeout: int = Field(default=300, ge=1)
    bandwidth_limit: int = Field(default=400000, ge=1)
    peer_discovery: bool = True
    db_max_mem_mb: int = Field(default=2000, ge=1)
    db_num_shards: int = Field(default=32, ge=1)
    log_level: LogLevel = "info"

    # ── Feature flags ────────────────────────────────────────────
    enable_hidden_service: bool = False
    enable_firewall: bool = True

    @property
    def listener_ports(self) -> tuple[int, ...]:
        """Inbound ports the firewall must allow, in a stable order."""
        ports: list[int] = []
        for port in (self.ssl_port, self.tcp_port):
            if port not in ports:
                ports.append(port)
        return tuple(ports)

    def public_summary(self) -> dict:
        """Loggable view of the request — credentials excluded."""
        return self.model_dump(mode="json", exclude={"rpc_password"})
