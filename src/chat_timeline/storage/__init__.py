"""Storage backend subpackage.

A backend holds the serialised conversation store under a document name.

Public surface
--------------
- StorageBackend    — abstract base class
- InMemoryBackend   — in-process dict (useful for testing)
- FilesystemBackend — one ``.store`` file, replaced atomically
- SQLiteBackend     — one row in a local SQLite database
"""
from __future__ import annotations

from chat_timeline.storage.base import StorageBackend
from chat_timeline.storage.filesystem import FilesystemBackend
from chat_timeline.storage.memory import InMemoryBackend
from chat_timeline.storage.sqlite import SQLiteBackend

__all__ = [
    "FilesystemBackend",
    "InMemoryBackend",
    "SQLiteBackend",
    "StorageBackend",
]
