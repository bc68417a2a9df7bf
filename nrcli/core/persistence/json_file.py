"""
JSON file persistence — read and atomic write for the config directory.

Writes go to a temp file in the same directory and are renamed into
place, so a crash mid-write never leaves a truncated config or
credentials file behind. Files are created 0600 (credentials live here).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from nrcli.core.errors import ConfigError

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any = None) -> Any:
    """Load JSON from ``path``; return ``default`` when the file is absent.

    Raises:
        ConfigError: The file exists but is unreadable or not valid JSON.
    """
    if not path.is_file():
        logger.debug("No file at %s, using defaults", path)
        return default

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if not raw.strip():
        return default

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    logger.debug("Loaded %s", path)
    return data


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize ``data`` to ``path`` (atomic write)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Saved %s", path)
    except Exception as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save %s: %s", path, e)
        raise
