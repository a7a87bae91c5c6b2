"""Filesystem storage backend.

The store document is one file, ``<storage_dir>/<key>.store``, replaced
atomically on every save.  The extension says nothing about the payload
format, which may be JSON or YAML.

Classes
-------
- FilesystemBackend  — one file per store document
"""
from __future__ import annotations

import os
from pathlib import Path

from chat_timeline.storage.base import StorageBackend
from chat_timeline.storage.locking import FileLock

_DEFAULT_STORAGE_DIR: Path = Path.home() / ".chat-timeline"
DOCUMENT_SUFFIX = ".store"


class FilesystemBackend(StorageBackend):
    """Keep the store document in a file under ``storage_dir``.

    A save writes ``<name>.tmp`` next to the document and moves it into
    place with ``os.replace`` while holding ``<name>.lock``, so a reader
    sees either the previous document or the new one.

    Parameters
    ----------
    storage_dir:
        Directory holding the document.  Defaults to ``~/.chat-timeline/``
        and is created on the first save.
    lock_timeout:
        Seconds to wait for another writer before ``TimeoutError``.
    """

    def __init__(
        self,
        storage_dir: str | Path | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        self._storage_dir: Path = (
            Path(storage_dir) if storage_dir is not None else _DEFAULT_STORAGE_DIR
        )
        self._lock_timeout = lock_timeout

    @property
    def storage_dir(self) -> Path:
        """Directory holding the document."""
        return self._storage_dir

    def path_for(self, key: str) -> Path:
        """Return the file holding the document named ``key``."""
        # Keys never leave storage_dir.
        return self._storage_dir / f"{os.path.basename(key)}{DOCUMENT_SUFFIX}"

    def save(self, key: str, payload: str) -> None:
        path = self.path_for(key)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        staged = path.with_name(path.name + ".tmp")
        with FileLock(path.with_name(path.name + ".lock"), timeout=self._lock_timeout):
            staged.write_text(payload, encoding="utf-8")
            os.replace(staged, path)

    def load(self, key: str) -> str:
        """Read the document named ``key``.

        Raises
        ------
        KeyError
            If the file has not been written yet.
        UnicodeDecodeError
            If the file is not UTF-8 text.
        """
        path = self.path_for(key)
        if not path.is_file():
            raise KeyError(f"No document {key!r} at {path}")
        return path.read_text(encoding="utf-8")

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def __repr__(self) -> str:
        return f"FilesystemBackend(storage_dir={str(self._storage_dir)!r})"
