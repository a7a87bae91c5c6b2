"""Whole-store persistence of the conversation list.

``ConversationPersistence`` is the durability collaborator used by
``ConversationStore``.  It owns the byte format: the list is serialised
into one document and written under a single key of a raw
``StorageBackend``, overwriting the previous document.

Classes
-------
- ConversationPersistence  — load/save the full conversation list
"""
from __future__ import annotations

import logging
from typing import Literal

import yaml

from chat_timeline.conversation.serializer import ConversationSerializer
from chat_timeline.conversation.state import Conversation
from chat_timeline.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class ConversationPersistence:
    """Load and save the complete list of conversations.

    Parameters
    ----------
    backend:
        Raw storage to write the store document into.
    key:
        Storage key holding the document.
    serializer:
        Optional custom serializer.
    format:
        Document format, ``"json"`` (default) or ``"yaml"``.
    """

    def __init__(
        self,
        backend: StorageBackend,
        key: str = "conversations_v1",
        serializer: ConversationSerializer | None = None,
        format: Literal["json", "yaml"] = "json",
    ) -> None:
        self._backend = backend
        self._key = key
        self._serializer = serializer or ConversationSerializer()
        self._format: Literal["json", "yaml"] = format

    @property
    def backend(self) -> StorageBackend:
        """The underlying storage backend."""
        return self._backend

    @property
    def key(self) -> str:
        """Storage key holding the store document."""
        return self._key

    def load(self) -> list[Conversation]:
        """Return the stored conversations in their saved order.

        A missing document yields an empty list.  A document that cannot be
        decoded is logged and also treated as empty, so a corrupt store never
        prevents start-up.
        """
        if not self._backend.exists(self._key):
            return []
        try:
            raw = self._backend.load(self._key)
            conversations = self._serializer.deserialize(raw, self._format)
        except (ValueError, yaml.YAMLError) as exc:
            logger.warning(
                "ConversationPersistence: discarding unreadable store %r: %s",
                self._key,
                exc,
            )
            return []
        logger.debug(
            "ConversationPersistence: loaded %d conversation(s) from %r",
            len(conversations),
            self._key,
        )
        return conversations

    def save(self, conversations: list[Conversation]) -> None:
        """Overwrite the stored document with ``conversations``."""
        raw = self._serializer.serialize(conversations, self._format)
        self._backend.save(self._key, raw)
        logger.debug(
            "ConversationPersistence: saved %d conversation(s) to %r",
            len(conversations),
            self._key,
        )

    def __repr__(self) -> str:
        return f"ConversationPersistence(backend={self._backend!r}, key={self._key!r})"
