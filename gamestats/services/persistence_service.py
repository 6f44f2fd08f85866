"""
Persistence service for the Game Stats Tracker application.

This module keeps the durable local copy of each scope's game records as a
JSON file, and reads/writes JSON backup files.
"""
import json
import logging
import os
import re
import tempfile
from typing import Any, Dict, List

from ..utils.constants import CACHE_FILE_TEMPLATE

logger = logging.getLogger(__name__)

_UNSAFE_SCOPE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class PersistenceService:
    """
    Local key-value cache of game records keyed by scope.

    Each scope is stored as one JSON array in ``cache_dir``. Writes go to a
    temporary file that atomically replaces the old one, so a crash mid-write
    never leaves a half-written cache behind.
    """

    def __init__(self, cache_dir: str = ".gamestats"):
        self.cache_dir = cache_dir

    def cache_path(self, scope: str) -> str:
        safe_scope = _UNSAFE_SCOPE_CHARS.sub("_", str(scope)) or "default"
        return os.path.join(self.cache_dir, CACHE_FILE_TEMPLATE.format(scope=safe_scope))

    def load_records(self, scope: str) -> List[Dict[str, Any]]:
        """
        Load the cached records for a scope.

        Returns:
            List of record documents; empty if nothing is cached yet

        Raises:
            ValueError: If the cache file does not contain a JSON array
        """
        path = self.cache_path(scope)
        if not os.path.exists(path):
            return []

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"Cache file {path} does not contain a list of games")
        return data

    def replace_records(self, scope: str, records: List[Dict[str, Any]]) -> None:
        """
        Atomically replace everything cached for a scope.

        Raises:
            OSError: If the cache directory cannot be written
        """
        self.write_json_file(self.cache_path(scope), records)

    def clear(self, scope: str) -> None:
        path = self.cache_path(scope)
        if os.path.exists(path):
            os.remove(path)

    def quarantine(self, scope: str) -> str:
        """
        Move an unreadable cache file aside so it is not overwritten.

        Returns:
            Path the file was moved to
        """
        path = self.cache_path(scope)
        target = f"{path}.corrupt"
        os.replace(path, target)
        logger.warning("Moved unreadable cache %s to %s", path, target)
        return target

    @staticmethod
    def write_json_file(file_path: str, payload: Any) -> None:
        """
        Write JSON to ``file_path`` through a temporary file and rename.

        Args:
            file_path: Destination path
            payload: JSON-serialisable data
        """
        directory = os.path.dirname(file_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

        fd, tmp_path = tempfile.mkstemp(dir=directory or ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug("Wrote %s", file_path)

    @staticmethod
    def read_json_file(file_path: str) -> Any:
        """
        Load JSON from a file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file contains invalid JSON
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
