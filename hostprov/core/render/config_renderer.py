"""
Config renderer — the Fulcrum configuration file from typed settings.

The file layout is a fixed template: every section and key is known in
advance, every value comes from a validated request field or a settings
default, and values are formatted by type (booleans as ``true``/``false``,
integers in decimal). Nothing is spliced in as free-form text.

``RenderedConfig.parse`` reads a rendered file back; the round trip
``RenderedConfig.parse(cfg.text) == cfg`` holds for every rendered config.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from hostprov.core.models.request import ProvisioningRequest
from hostprov.core.models.settings import Settings

HEADER = (
    "# Fulcrum configuration",
    "# Managed by hostprov; local edits are overwritten on the next run.",
)

SECRET_KEYS = frozenset({"rpcpassword"})

Section = tuple[str, tuple[tuple[str, str], ...]]


class RenderError(ValueError):
    """A value cannot be represented safely in the config file."""


class RenderedConfig(BaseModel):
    """Ordered ``[section]`` blocks of ``key = value`` string pairs."""

    model_config = ConfigDict(frozen=True)

    sections: tuple[Section, ...] = ()

    @property
    def text(self) -> str:
        lines = list(HEADER)
        for name, entries in self.sections:
            lines.append("")
            lines.append(f"[{name}]")
            for key, value in entries:
                lines.append(f"{key} = {value}")
        return "\n".join(lines) + "\n"

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    def get(self, section: str, key: str) -> str | None:
        for name, entries in self.sections:
            if name != section:
                continue
            for k, v in entries:
                if k == key:
                    return v
        return None

    def masked_text(self) -> str:
        """Rendered text with secret values replaced — safe to print."""
        masked = RenderedConfig(
            sections=tuple(
                (name, tuple((k, "**********" if k in SECRET_KEYS else v) for k, v in entries))
                for name, entries in self.sections
            )
        )
        return masked.text

    @classmethod
    def parse(cls, text: str) -> RenderedConfig:
        """Re-derive a RenderedConfig from file text.

        Raises:
            RenderError: On a line that is not a comment, a section
                header, or a ``key = value`` pair inside a section.
        """
        sections: list[tuple[str, list[tuple[str, str]]]] = []
        for line_num, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("[") and line.endswith("]"):
                sections.append((line[1:-1].strip(), []))
                continue
            key, sep, value = line.partition("=")
            if not sep or not sections:
                raise RenderError(f"line {line_num}: expected 'key = value' inside a section")
            sections[-1][1].append((key.strip(), value.strip()))
        return cls(sections=tuple((name, tuple(entries)) for name, entries in sections))


def _format(value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, int):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        raise RenderError(f"unsupported value type {type(value).__name__}")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in text):
        raise RenderError("value contains a control character")
    if text != text.strip():
        raise RenderError("value has leading or trailing whitespace")
    return text


def _section(name: str, entries: list[tuple[str, Any]]) -> Section:
    return name, tuple((key, _format(value)) for key, value in entries)


def render(
    request: ProvisioningRequest,
    settings: Settings,
    provider_outputs: Mapping[str, Mapping[str, Any]] | None = None,
) -> RenderedConfig:
    """Populate the config template from a validated request.

    Args:
        request: Validated provisioning request.
        settings: Engine settings (paths).
        provider_outputs: Outputs of earlier steps, by step id. The
            certificate step's ``certfile``/``keyfile`` are used when
            present; otherwise the standard live paths for the hostname.

    Returns:
        The rendered configuration. Identical input yields identical text.
    """
    outputs = provider_outputs or {}
    layout = settings.layout

    certfile, keyfile = settings.cert_paths(request.hostname)
    cert_outputs = outputs.get("certificate", {})
    certfile = cert_outputs.get("certfile", certfile)
    keyfile = cert_outputs.get("keyfile", keyfile)

    return RenderedConfig(
        sections=(
            _section(
                "bitcoin",
                [
                    ("datadir", layout.data_dir),
                    ("bitcoind", f"{request.rpc_host}:{request.rpc_port}"),
                    ("rpcuser", request.rpc_user),
                    ("rpcpassword", request.rpc_password.get_secret_value()),
                    ("workers", request.workers),
                    ("rpc_timeout", request.rpc_timeout),
                    ("utxo_cache", request.utxo_cache_mb),
                ],
            ),
            _section(
                "electrum",
                [
                    ("tcp", f"0.0.0.0:{request.tcp_port}"),
                    ("ssl", f"0.0.0.0:{request.ssl_port}"),
                    ("certfile", certfile),
                    ("keyfile", keyfile),
                    ("banner", f"Welcome to Fulcrum Electrum Server at {request.hostname}"),
                    ("maxclients", request.max_clients),
                    ("clienttimeout", request.client_timeout),
                    ("admin", f"127.0.0.1:{request.admin_port}"),
                    ("cache", request.cache_mb),
                    ("peer-discovery", request.peer_discovery),
                    ("bandwidth-limit", request.bandwidth_limit),
                ],
            ),
            _section(
                "logging",
                [
                    ("level", request.log_level),
                    ("logfile", layout.log_file),
                ],
            ),
            _section(
                "database",
                [
                    ("db-max-mem", request.db_max_mem_mb),
                    ("db-num-shards", request.db_num_shards),
                ],
            ),
        )
    )
