"""Input validation for provisioning requests."""

from hostprov.core.validation.validator import KNOWN_FIELDS, validate

__all__ = ["KNOWN_FIELDS", "validate"]
