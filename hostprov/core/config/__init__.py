"""Settings and request file loading."""

from hostprov.core.config.loader import load_request_file, load_settings

__all__ = ["load_request_file", "load_settings"]
