"""
Local Key-Value Storage

Durable string storage used by the entry store (journal snapshot) and the
insight analyzer (cached insights). Each key is kept in its own JSON file
under the data directory.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStorage:
    """
    File-backed key-value storage.

    get/set/remove never raise: read failures return None and write failures
    return False, so callers can fall back to their defaults.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize the storage.

        Args:
            base_dir: Directory that holds one file per key
        """
        self.base_dir = Path(base_dir)
        logger.info(f"JsonFileStorage initialized at: {self.base_dir}")

    def _path_for(self, key: str) -> Path:
        return self.base_dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            Stored string, or None if the key is missing or unreadable
        """
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                record = json.load(f)
            value = record.get("value") if isinstance(record, dict) else None
            if value is not None and not isinstance(value, str):
                logger.error(f"Stored value for '{key}' is not a string")
                return None
            return value
        except Exception as e:
            logger.error(f"Failed to read storage key '{key}': {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        """
        Replace the value stored under key.

        The file is written to a temporary sibling and swapped in, so a reader
        sees either the old or the new value in full.

        Returns:
            True if successful, False otherwise
        """
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=str(path.parent))
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump({"key": key, "value": value}, f, ensure_ascii=False)
                os.replace(tmp_name, path)
            except Exception:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
            return True
        except Exception as e:
            logger.error(f"Failed to write storage key '{key}': {e}")
            return False

    def remove(self, key: str) -> bool:
        """Delete the value stored under key (missing keys count as removed)."""
        path = self._path_for(key)
        try:
            if path.exists():
                path.unlink()
            return True
        except Exception as e:
            logger.error(f"Failed to remove storage key '{key}': {e}")
            return False
