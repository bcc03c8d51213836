"""
State file persistence — atomic read/write for HostState.

State is stored as JSON in ``<state_dir>/current.json``. Writes are
atomic (write to temp file, then rename) to prevent corruption if the
process is interrupted mid-write.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from hostprov.adapters.shell.filesystem import write_file_atomic
from hostprov.core.models.settings import Settings
from hostprov.core.models.state import HostState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "current.json"


def default_state_path(settings: Settings) -> Path:
    """State file path for the configured layout."""
    layout = settings.layout
    return layout.path(layout.state_dir) / DEFAULT_STATE_FILE


def default_audit_path(settings: Settings) -> Path:
    layout = settings.layout
    return layout.path(layout.state_dir) / "audit.ndjson"


def load_state(path: Path) -> HostState:
    """Load host state from a JSON file.

    Returns:
        HostState. If the file is missing or unreadable, a fresh state.
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return HostState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = HostState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return HostState()
    except (OSError, PydanticValidationError) as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return HostState()


def save_state(state: HostState, path: Path) -> None:
    """Save host state to a JSON file (atomic write)."""
    state.touch()
    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
    try:
        write_file_atomic(path, content, mode=0o600)
        logger.debug("State saved to %s", path)
    except OSError as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise
