"""
Runtime configuration for userproof.

Settings are read from the environment once, at startup:

  USERPROOF_HOME         root directory holding keys/ (default: cwd)
  USERPROOF_SCHEMA_PATH  schema description (default: packaged schema)
  USERPROOF_LOG_LEVEL    logging level for entry points (default: INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "user.schema.json"

KEY_DIR_NAME = "keys"
PRIVATE_KEY_FILE = "private.pem"
PUBLIC_KEY_FILE = "public.pem"


@dataclass
class Settings:
    """Filesystem locations and logging level for one process."""
    root_dir: Path = field(default_factory=Path.cwd)
    schema_path: Path = DEFAULT_SCHEMA_PATH
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir)
        self.schema_path = Path(self.schema_path)

    @property
    def key_dir(self) -> Path:
        return self.root_dir / KEY_DIR_NAME

    @property
    def private_key_path(self) -> Path:
        return self.key_dir / PRIVATE_KEY_FILE

    @property
    def public_key_path(self) -> Path:
        return self.key_dir / PUBLIC_KEY_FILE

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            root_dir=Path(env.get("USERPROOF_HOME") or Path.cwd()),
            schema_path=Path(env.get("USERPROOF_SCHEMA_PATH") or DEFAULT_SCHEMA_PATH),
            log_level=(env.get("USERPROOF_LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler for the server and CLI entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
