"""Deterministic renderers for every file the engine writes."""

from hostprov.core.render.config_renderer import RenderedConfig, RenderError, render
from hostprov.core.render.templates import (
    render_renewal_cron,
    render_torrc_block,
    render_unit,
)

__all__ = [
    "RenderError",
    "RenderedConfig",
    "render",
    "render_renewal_cron",
    "render_torrc_block",
    "render_unit",
]
