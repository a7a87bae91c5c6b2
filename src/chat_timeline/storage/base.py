"""Durable slot for the serialised conversation store.

The conversation store is written as one document: ``ConversationPersistence``
serialises every conversation into a single payload and overwrites it on each
save.  A backend only has to hold that payload under a name and hand it back.

Classes
-------
- StorageBackend  — abstract base for all backends
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Where the store document lives between runs.

    ``key`` names the document (``TimelineConfig.storage_key``).  Backends
    never parse the payload; JSON or YAML is the serializer's business.
    """

    @abstractmethod
    def save(self, key: str, payload: str) -> None:
        """Replace the document stored under ``key`` with ``payload``.

        Parameters
        ----------
        key:
            Document name.
        payload:
            Serialised conversation store.
        """

    @abstractmethod
    def load(self, key: str) -> str:
        """Return the document stored under ``key``.

        Raises
        ------
        KeyError
            If nothing has been saved under ``key``.
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True once a document has been saved under ``key``."""
