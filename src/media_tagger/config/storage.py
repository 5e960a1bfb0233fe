"""JSON persistence backend for the live configuration."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Store JSON documents as files under a base directory, one per key."""

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir).expanduser()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        return self._base_dir / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read_json(self, key: str) -> Any | None:
        """Return the parsed document, or None if it does not exist.

        Malformed JSON propagates as ``ValueError``.
        """
        path = self.path_for(key)
        if not path.is_file():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write_json(self, key: str, data: Any) -> bool:
        """Overwrite the document for ``key``. Returns False on failure."""
        path = self.path_for(key)
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {path}: {e}")
            return False
