"""Capability providers that act on the local host."""

from hostprov.adapters.host.accounts import ServiceAccountProvider
from hostprov.adapters.host.capability import PrivilegeGrantor
from hostprov.adapters.host.certificate import CertificateIssuer
from hostprov.adapters.host.config_file import ConfigFileProvider
from hostprov.adapters.host.firewall import FirewallConfigurator
from hostprov.adapters.host.hidden_service import HiddenServiceConfigurator
from hostprov.adapters.host.packages import PackageInstaller
from hostprov.adapters.host.service import ServiceRegistrar
from hostprov.adapters.host.source_build import SourceBuilder

__all__ = [
    "CertificateIssuer",
    "ConfigFileProvider",
    "FirewallConfigurator",
    "HiddenServiceConfigurator",
    "PackageInstaller",
    "PrivilegeGrantor",
    "ServiceAccountProvider",
    "ServiceRegistrar",
    "SourceBuilder",
]
