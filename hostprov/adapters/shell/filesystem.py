"""
Filesystem helpers shared by the file-writing providers.

Managed files are written atomically (temp file in the same directory,
then rename) so a crash never leaves a half-written config or unit.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def read_text(path: Path) -> str | None:
    """File content, or None if the file does not exist."""
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


def write_file_atomic(path: Path, content: str, mode: int = 0o644) -> None:
    """Write ``content`` to ``path`` atomically with the given mode."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s (%d bytes)", path, len(content))
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def touch(path: Path, mode: int = 0o640) -> None:
    """Create an empty file if it does not exist."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.touch(mode=mode)
