"""
Provider registry — central dispatch for all provider operations.

The registry is the single point of provider management. It handles
registration, lookup, mock mode, and step execution. The engine never
talks to providers directly — always through the registry.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.mock import MockProvider
from hostprov.adapters.shell.command import CommandRunner
from hostprov.core.errors import PreconditionError
from hostprov.core.models.outcome import ExecutionOutcome

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Central registry and dispatcher for providers.

    Features:
        - Register providers by capability name
        - Mock mode: route every capability to one in-memory provider
        - Ensure plan steps through the matching provider
        - Query provider availability
    """

    def __init__(self, mock_mode: bool = False):
        self._providers: dict[str, Provider] = {}
        self._mock_mode = mock_mode
        self._mock_provider: Provider | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_provider: Provider | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_provider: Optional custom mock. If None, a MockProvider is used.
        """
        self._mock_mode = enabled
        self._mock_provider = mock_provider

    def register(self, provider: Provider) -> None:
        """Register a provider under its capability name."""
        name = provider.name
        if name in self._providers:
            logger.warning("Overwriting existing provider: %s", name)
        self._providers[name] = provider
        logger.debug("Registered provider: %s", name)

    def get(self, name: str) -> Provider | None:
        """Look up a provider by capability name."""
        return self._providers.get(name)

    def list_providers(self) -> list[str]:
        """List all registered capability names."""
        return list(self._providers.keys())

    def provider_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered provider, for ``hostprov status``."""
        status = {}
        for name in self.list_providers():
            provider = self._providers[name]
            try:
                available = provider.is_available()
            except Exception as e:
                logger.debug("Availability check for %s raised: %s", name, e)
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": provider.__class__.__name__,
                "missing": [t for t in provider.required_tools if not provider.runner.which(t)],
                "hint": "" if available else provider.install_hint,
            }
        return status

    def _resolve(self, capability: str) -> Provider | None:
        if self._mock_mode:
            if self._mock_provider is None:
                self._mock_provider = MockProvider()
            return self._mock_provider
        return self._providers.get(capability)

    def ensure(self, context: ProviderContext) -> ExecutionOutcome:
        """Converge one plan step through the appropriate provider.

        This is the main dispatch method. It:
        1. Resolves the provider (or mock)
        2. Checks the provider's tools are available
        3. Runs provider.ensure (check, apply, verify)
        4. Stamps timing on the outcome

        Raises:
            PreconditionError: No provider registered, provider tools
                missing, or raised by the provider itself.
        """
        step = context.step
        started_at = datetime.now(UTC).isoformat()
        start_time = time.monotonic()

        provider = self._resolve(step.capability)
        if provider is None:
            raise PreconditionError(
                f"No provider registered for '{step.capability}'",
                hint="This is a packaging error; reinstall hostprov.",
            )

        if not provider.is_available():
            raise PreconditionError(
                f"Provider '{step.capability}' is unavailable: required tools are missing",
                hint=provider.install_hint,
            )

        try:
            outcome = provider.ensure(context)
        except PreconditionError:
            raise
        except Exception as e:
            # Providers should only raise the taxonomy errors
            logger.error("Provider %s raised during ensure: %s", step.capability, e)
            outcome = ExecutionOutcome.failure(
                step.id,
                step.capability,
                message=f"Unexpected error: {e}",
                warnings=list(context.warnings),
            )

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        return outcome.model_copy(
            update={
                "started_at": started_at,
                "ended_at": datetime.now(UTC).isoformat(),
                "duration_ms": elapsed_ms,
            }
        )


def default_registry(runner: CommandRunner | None = None, mock_mode: bool = False) -> ProviderRegistry:
    """Registry with every host provider, sharing one command runner."""
    from hostprov.adapters.host import (
        CertificateIssuer,
        ConfigFileProvider,
        FirewallConfigurator,
        HiddenServiceConfigurator,
        PackageInstaller,
        PrivilegeGrantor,
        ServiceAccountProvider,
        ServiceRegistrar,
        SourceBuilder,
    )

    runner = runner or CommandRunner()
    registry = ProviderRegistry(mock_mode=mock_mode)
    registry.register(PackageInstaller(runner))
    registry.register(SourceBuilder(runner))
    registry.register(ServiceAccountProvider(runner))
    registry.register(PrivilegeGrantor(runner))
    registry.register(CertificateIssuer(runner))
    registry.register(ConfigFileProvider(runner))
    registry.register(ServiceRegistrar(runner))
    registry.register(FirewallConfigurator(runner))
    registry.register(HiddenServiceConfigurator(runner))
    return registry
