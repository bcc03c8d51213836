"""hostprov — idempotent host service provisioning engine."""

__version__ = "0.1.0"
