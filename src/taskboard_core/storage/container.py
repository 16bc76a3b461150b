from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import CoreConfig, load_core_config
from ..constants import COLLECTIONS, STATE_DIR_NAME
from .file_store import YamlRecordStore

STORE_DIR_NAME = "store"


def ensure_state_root(project_dir: Path) -> Path:
    """Create ``.taskboard/store`` with an empty file per collection."""
    root = project_dir / STATE_DIR_NAME / STORE_DIR_NAME
    root.mkdir(parents=True, exist_ok=True)
    for name in COLLECTIONS:
        target = root / f"{name}.yaml"
        if not target.exists():
            target.write_text(f"version: 1\n{name}: []\n", encoding="utf-8")
    return root


class Container:
    """Wire a project directory to its store and configuration."""

    def __init__(self, project_dir: Path, config: Optional[CoreConfig] = None) -> None:
        self.project_dir = project_dir.resolve()
        self.store_root = ensure_state_root(self.project_dir)
        self.store = YamlRecordStore(self.store_root)
        if config is None:
            config, err = load_core_config(self.project_dir)
            if err:
                logger.warning("Ignoring invalid config, using defaults: {}", err)
        self.config = config

    @property
    def project_id(self) -> str:
        return self.project_dir.name
