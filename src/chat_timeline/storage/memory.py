"""Process-local storage backend.

Documents live in a dict and disappear with the process.  The facade uses
it when no backend is given, and the tests use it everywhere else.
"""
from __future__ import annotations

from chat_timeline.storage.base import StorageBackend


class InMemoryBackend(StorageBackend):
    """Hold store documents in memory.

    Parameters
    ----------
    initial_data:
        Documents to start from, keyed by name.  Copied, never aliased.
    """

    def __init__(self, initial_data: dict[str, str] | None = None) -> None:
        self._documents: dict[str, str] = dict(initial_data or {})

    def save(self, key: str, payload: str) -> None:
        self._documents[key] = payload

    def load(self, key: str) -> str:
        if key not in self._documents:
            raise KeyError(f"No document {key!r} in memory.")
        return self._documents[key]

    def exists(self, key: str) -> bool:
        return key in self._documents

    def __repr__(self) -> str:
        return f"InMemoryBackend(documents={sorted(self._documents)!r})"
