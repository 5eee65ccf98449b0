"""
File-backed JSON documents guarded by an advisory lock.
Used for AI settings and chat history.
"""

import copy
import fcntl
import json
import logging
import os
import secrets
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


class JsonStoreError(Exception):
    """Base error for JSON stores."""
    pass


class StorageError(JsonStoreError):
    """Lock, write or encode failure. Not something the user can fix."""
    pass


class ParseError(JsonStoreError):
    """Stored document is not valid JSON (recovered by using defaults)."""
    pass


def merge_defaults(defaults: Any, data: Any) -> Any:
    """
    Overlay stored data on the defaults, recursively for mappings.
    Keys added to the defaults later appear in old documents this way.
    """
    if isinstance(defaults, dict) and isinstance(data, dict):
        merged = copy.deepcopy(defaults)
        for key, value in data.items():
            merged[key] = merge_defaults(defaults[key], value) if key in defaults else value
        return merged
    return data


class LockedJsonStore:
    """
    One JSON document on disk plus a sidecar lock file.

    Reads take no lock. Read-modify-write cycles go through update() (or
    locked()), which hold an exclusive flock on `<path>.lock` for the whole
    cycle. Writes replace the file atomically, so a reader sees either the
    old or the new document, never a partial one.

    Args:
        path: Document location
        default: Value used when the file is missing, empty or corrupt
    """

    def __init__(self, path: Union[str, Path], default: Any):
        self.path = Path(path)
        self.lock_path = Path(f"{self.path}{LOCK_SUFFIX}")
        self._default = default
        self._local = threading.local()

    @property
    def default(self) -> Any:
        return copy.deepcopy(self._default)

    def _load(self) -> Any:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self.default
        except UnicodeDecodeError as e:
            raise ParseError(f"Invalid UTF-8 in {self.path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Unable to read {self.path}: {e}") from e

        if not raw.strip():
            return self.default

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in {self.path}: {e}") from e

        if self._default is not None and not isinstance(data, type(self._default)):
            raise ParseError(
                f"Expected {type(self._default).__name__} in {self.path}, "
                f"got {type(data).__name__}"
            )

        return merge_defaults(self.default, data)

    def read(self) -> Any:
        """Current document, or the default if missing/empty/corrupt."""
        try:
            return self._load()
        except ParseError as e:
            logger.warning(f"{e} - starting from defaults")
            return self.default

    def write(self, value: Any) -> None:
        """
        Replace the document.
        Hold the lock (locked()/update()) when this is part of a read-modify-write.
        """
        try:
            payload = json.dumps(value, indent=4, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Unable to encode {self.path.name}: {e}") from e

        tmp_path = self.path.with_name(f"{self.path.name}.{secrets.token_hex(4)}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(f"Unable to write {self.path}: {e}") from e

    @contextmanager
    def locked(self) -> Iterator[None]:
        """
        Hold the exclusive lock for the duration of the block.
        Re-entrant within a thread; released on every exit path.
        """
        depth = getattr(self._local, "depth", 0)
        if depth:
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth -= 1
            return

        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.lock_path, "a+")
        except OSError as e:
            raise StorageError(f"Unable to open lock {self.lock_path}: {e}") from e

        try:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            except OSError as e:
                raise StorageError(f"Unable to acquire lock {self.lock_path}: {e}") from e

            self._local.depth = 1
            try:
                yield
            finally:
                self._local.depth = 0
                handle.flush()
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def update(self, mutate: Callable[[Any], Optional[Any]]) -> Any:
        """
        Read, apply `mutate`, write back; all under the lock.

        `mutate` may return a new value or modify its argument in place
        and return None.

        Returns:
            The value written
        """
        with self.locked():
            current = self.read()
            updated = mutate(current)
            if updated is None:
                updated = current
            self.write(updated)
            return updated
