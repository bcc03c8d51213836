"""
Certificate issuer — Let's Encrypt certificate plus scheduled renewal.

A certificate that exists and is valid beyond the renewal window is
left untouched; certbot runs only when it is missing or expiring. The
renewal job is a cron entry whose content is rendered from settings.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.shell.filesystem import read_text, write_file_atomic
from hostprov.core.errors import ProviderApplyError
from hostprov.core.render.templates import render_renewal_cron

logger = logging.getLogger(__name__)


class CertificateIssuer(Provider):
    """Request or renew a TLS certificate with certbot.

    Desired state:
        hostname (str): Domain validated by the ACME challenge.
        certfile, keyfile (str): Expected live paths.
        renew_before_days (int): Minimum remaining validity.
        renewal_cron (str): Path of the renewal cron entry.
    """

    required_tools = ("certbot", "openssl")
    install_hint = "Install certbot and openssl (the packages step does this)."

    @property
    def name(self) -> str:
        return "certificate"

    def describe_current_state(self, context: ProviderContext) -> dict[str, Any]:
        desired = context.desired
        certfile = context.host_path(desired["certfile"])

        valid = False
        if certfile.is_file():
            seconds = int(desired["renew_before_days"]) * 86400
            result = self.runner.run(
                ["openssl", "x509", "-checkend", str(seconds), "-noout", "-in", str(certfile)]
            )
            valid = result.ok

        cron = read_text(context.host_path(desired["renewal_cron"]))
        return {
            "cert_present": certfile.is_file(),
            "cert_valid": valid,
            "renewal_scheduled": cron == render_renewal_cron(context.settings),
        }

    def is_satisfied(self, current: dict[str, Any], context: ProviderContext) -> bool:
        return current["cert_valid"] and current["renewal_scheduled"]

    def apply(self, current: dict[str, Any], context: ProviderContext) -> None:
        desired = context.desired
        request = context.request
        cert_settings = context.settings.certificate

        if not current["cert_valid"]:
            logger.info("Requesting certificate for %s", desired["hostname"])
            self.runner.check(
                [
                    "certbot",
                    "certonly",
                    f"--{cert_settings.authenticator}",
                    "-d", desired["hostname"],
                    "--non-interactive",
                    "--agree-tos",
                    "--email", request.acme_email,
                ]
            )
            if not context.host_path(desired["certfile"]).is_file():
                raise ProviderApplyError(
                    f"certbot finished but {desired['certfile']} does not exist",
                    detail="Check /var/log/letsencrypt/letsencrypt.log.",
                )

        if not current["renewal_scheduled"]:
            write_file_atomic(
                context.host_path(desired["renewal_cron"]),
                render_renewal_cron(context.settings),
                mode=0o644,
            )

    def outputs(self, current: dict[str, Any], context: ProviderContext) -> dict[str, Any]:
        return {"certfile": context.desired["certfile"], "keyfile": context.desired["keyfile"]}
