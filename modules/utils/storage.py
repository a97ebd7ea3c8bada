"""
Minimal file-backed key-value store.

One JSON-text file per key under a storage directory. Values are opaque
strings; callers own their serialization.
"""

import os
import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore:
    """Stores string values as <directory>/<key>.json."""

    def __init__(self, directory: str):
        self._directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self._directory, _SAFE_KEY.sub("_", key) + ".json")

    def get(self, key: str) -> Optional[str]:
        """Return the stored text, or None when the key is absent or unreadable."""
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read '%s' from store: %s", key, e)
            return None

    def set(self, key: str, value: str):
        os.makedirs(self._directory, exist_ok=True)
        path = self._path(key)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp_path, path)
        logger.debug("Stored '%s' at %s", key, path)

    def delete(self, key: str):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
