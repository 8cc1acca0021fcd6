"""
Key-Value Storage

A minimal persistence contract used to snapshot and restore a training
session between runs:

    get(key)        -> stored value, or None if the key is absent
    set(key, value) -> store a JSON-compatible value
    remove(key)     -> delete the key (no error if it is absent)

Values are plain JSON data (dicts, lists, strings, numbers, booleans, None).

Classes:
    Storage: Abstract interface
    InMemoryStorage: Dictionary-backed storage for tests and one-off runs
    JsonFileStorage: One JSON file per key inside a directory
"""

import copy
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class Storage(ABC):
    """Interface of a key-value store holding JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under key, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Removing a missing key does nothing."""


class InMemoryStorage(Storage):
    """
    Storage backed by a dictionary.

    Values are deep-copied on the way in and out, so callers can never mutate
    what is stored by holding on to a reference.
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStorage(Storage):
    """
    Storage that keeps each key in its own "<key>.json" file.

    A file that cannot be decoded or parsed is treated as missing: a warning
    is logged and get() returns None, so a corrupt snapshot falls back to a
    fresh start instead of blocking the session.

    Args:
        directory: Folder holding the files (created if needed)
    """

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        if not _VALID_KEY.match(key):
            raise ValueError(
                f"Invalid storage key {key!r}: use letters, digits, '_', '-' and '.'"
            )
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not os.path.exists(path):
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as error:
            logger.warning("Ignoring unreadable storage entry %s: %s", path, error)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)

        # Write to a temporary file first so a crash never leaves half a file
        temp_path = f"{path}.tmp"
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)
        os.replace(temp_path, path)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)
