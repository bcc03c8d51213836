"""
Input validator — raw provisioning fields into a ProvisioningRequest.

Raw fields come from interactive prompts (all strings) or a request
file (YAML scalars). Every field is checked against a strict grammar;
defaults fill only fields that were left absent or empty. The first
failing field raises ``ValidationError`` naming that field and the run
aborts — there is no re-prompt loop.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from hostprov.core.errors import ValidationError
from hostprov.core.models.request import ProvisioningRequest

logger = logging.getLogger(__name__)

_DOMAIN_RE = re.compile(r"[A-Za-z0-9.-]+")
_CREDENTIAL_RE = re.compile(r"[A-Za-z0-9_-]+")
_IPV4_RE = re.compile(r"[0-9]{1,3}(\.[0-9]{1,3}){3}")
_EMAIL_LOCAL_RE = re.compile(r"[A-Za-z0-9._+-]+")
_DIGITS_RE = re.compile(r"[0-9]+")

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}

_LOG_LEVELS = ("trace", "debug", "info", "warning", "error")

DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 8332

_PORT_FIELDS = ("tcp_port", "ssl_port", "admin_port", "onion_port")
_POSITIVE_INT_FIELDS = (
    "workers",
    "rpc_timeout",
    "utxo_cache_mb",
    "cache_mb",
    "max_clients",
    "client_timeout",
    "bandwidth_limit",
    "db_max_mem_mb",
    "db_num_shards",
)
_BOOL_FIELDS = ("peer_discovery", "enable_hidden_service", "enable_firewall")

KNOWN_FIELDS = frozenset(
    {"hostname", "acme_email", "rpc_host", "rpc_port", "rpc_user", "rpc_password", "log_level"}
    | set(_PORT_FIELDS)
    | set(_POSITIVE_INT_FIELDS)
    | set(_BOOL_FIELDS)
)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _as_text(field: str, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(field, f"expected a string, got {type(value).__name__}")
    return str(value)


# ── Field rules ─────────────────────────────────────────────────


def validate_hostname(value: Any, field: str = "hostname") -> str:
    """Domain grammar: ``[A-Za-z0-9.-]+``, no leading/trailing dot."""
    if _is_empty(value):
        raise ValidationError(field, "must not be empty")
    text = _as_text(field, value)
    if not _DOMAIN_RE.fullmatch(text):
        raise ValidationError(field, f"invalid characters in {text!r} (allowed: letters, digits, '.', '-')")
    if text.startswith(".") or text.endswith("."):
        raise ValidationError(field, "must not start or end with a dot")
    if ".." in text:
        raise ValidationError(field, "must not contain empty labels")
    if len(text) > 253:
        raise ValidationError(field, "longer than 253 characters")
    return text


def validate_credential(value: Any, field: str) -> str:
    """Credential grammar: ``[A-Za-z0-9_-]+``."""
    if _is_empty(value):
        raise ValidationError(field, "must not be empty")
    text = _as_text(field, value)
    if not _CREDENTIAL_RE.fullmatch(text):
        # never echo the value: it may be the password
        raise ValidationError(field, "only letters, digits, '_' and '-' are allowed")
    return text


def validate_ipv4(text: str) -> bool:
    if not _IPV4_RE.fullmatch(text):
        return False
    return all(0 <= int(octet) <= 255 for octet in text.split("."))


def validate_rpc_host(value: Any, field: str = "rpc_host") -> str:
    """Dotted IPv4 literal or a hostname."""
    text = _as_text(field, value)
    if _IPV4_RE.fullmatch(text):
        if not validate_ipv4(text):
            raise ValidationError(field, f"invalid IPv4 address {text!r}")
        return text
    return validate_hostname(text, field=field)


def validate_port(value: Any, field: str) -> int:
    """Integer in [1, 65535]."""
    number = _parse_int(value, field)
    if not 1 <= number <= 65535:
        raise ValidationError(field, f"port {number} out of range 1-65535")
    return number


def validate_positive_int(value: Any, field: str) -> int:
    number = _parse_int(value, field)
    if number < 1:
        raise ValidationError(field, f"must be a positive integer, got {number}")
    return number


def validate_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = _as_text(field, value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(field, f"expected a boolean, got {value!r}")


def validate_email(value: Any, field: str = "acme_email") -> str:
    text = _as_text(field, value)
    local, sep, domain = text.partition("@")
    if not sep or not local or not _EMAIL_LOCAL_RE.fullmatch(local):
        raise ValidationError(field, f"invalid e-mail address {text!r}")
    validate_hostname(domain, field=field)
    return text


def _parse_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(field, "expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    text = _as_text(field, value).strip()
    if not _DIGITS_RE.fullmatch(text):
        raise ValidationError(field, f"expected an integer, got {text!r}")
    return int(text)


# ── Entry point ─────────────────────────────────────────────────


def validate(raw_fields: Mapping[str, Any]) -> ProvisioningRequest:
    """Validate raw fields and build the immutable request.

    Args:
        raw_fields: Field name → raw value. Absent, ``None`` and blank
            values count as "left empty".

    Returns:
        The validated ProvisioningRequest.

    Raises:
        ValidationError: On the first field that fails its rule.
    """
    unknown = sorted(set(raw_fields) - KNOWN_FIELDS)
    if unknown:
        raise ValidationError(unknown[0], "unknown field")

    def given(name: str) -> bool:
        return not _is_empty(raw_fields.get(name))

    values: dict[str, Any] = {}

    values["hostname"] = validate_hostname(raw_fields.get("hostname"))
    values["rpc_user"] = validate_credential(raw_fields.get("rpc_user"), "rpc_user")
    values["rpc_password"] = validate_credential(raw_fields.get("rpc_password"), "rpc_password")

    values["rpc_host"] = (
        validate_rpc_host(raw_fields["rpc_host"]) if given("rpc_host") else DEFAULT_RPC_HOST
    )
    values["rpc_port"] = (
        validate_port(raw_fields["rpc_port"], "rpc_port") if given("rpc_port") else DEFAULT_RPC_PORT
    )

    values["acme_email"] = (
        validate_email(raw_fields["acme_email"])
        if given("acme_email")
        else f"admin@{values['hostname']}"
    )

    for name in _PORT_FIELDS:
        if given(name):
            values[name] = validate_port(raw_fields[name], name)
    for name in _POSITIVE_INT_FIELDS:
        if given(name):
            values[name] = validate_positive_int(raw_fields[name], name)
    for name in _BOOL_FIELDS:
        if given(name):
            values[name] = validate_bool(raw_fields[name], name)

    if given("log_level"):
        level = _as_text("log_level", raw_fields["log_level"]).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValidationError("log_level", f"must be one of {', '.join(_LOG_LEVELS)}")
        values["log_level"] = level

    request = ProvisioningRequest(**values)
    logger.debug("Validated request for %s", request.hostname)
    return request
