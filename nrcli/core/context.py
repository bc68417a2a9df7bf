"""
Runtime context — everything one CLI invocation works against.

Built once by the entry point (``main.py``) and handed down through
``click.Context.obj``:

    - CLI:    main.py  → RuntimeContext.load(config_dir)
    - Tests:  conftest → RuntimeContext.load(tmp_path)

Nothing here is module-level state; two contexts over two directories
can coexist in one process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from nrcli.core.config.credentials import CredentialStore
from nrcli.core.config.loader import Config, default_config_dir

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    config_dir: Path
    config: Config
    credentials: CredentialStore

    @classmethod
    def load(cls, config_dir: Path | None = None) -> RuntimeContext:
        """Read config and credentials from ``config_dir``.

        Raises:
            ConfigError: Either file is malformed.
        """
        directory = (config_dir or default_config_dir()).expanduser()
        logger.debug("Using config directory %s", directory)
        return cls(
            config_dir=directory,
            config=Config.load(directory),
            credentials=CredentialStore.load(directory),
        )

    @property
    def configured_log_level(self) -> str | None:
        """``logLevel`` from config.json or env, None when left at default."""
        value = self.config.lookup("logLevel")
        return None if value.source == "default" else value.value
