"""Conversation store.

Holds every conversation in memory and writes the whole set through a
``ConversationPersistence`` collaborator after each mutation that must
survive a reload.

Classes
-------
- ConversationStore  — create / get / list / delete / clear conversations
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from chat_timeline.config import TimelineConfig
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.state import Conversation
from chat_timeline.errors import ConversationNotFoundError

logger = logging.getLogger(__name__)

RECENCY_GROUPS: tuple[str, ...] = ("Today", "Yesterday", "Previous 7 Days", "Older")


class ConversationStore:
    """In-memory set of conversations backed by whole-store persistence.

    The stored list is loaded once on construction.  Conversations are kept
    newest-first by insertion; ``list_conversations`` orders them by
    ``updated_at``.

    Parameters
    ----------
    persistence:
        Durability collaborator.  ``save`` overwrites the whole store.
    config:
        Optional :class:`TimelineConfig` used for default titles.
    """

    def __init__(
        self,
        persistence: ConversationPersistence,
        config: TimelineConfig | None = None,
    ) -> None:
        self._persistence = persistence
        self._config = config or TimelineConfig()
        self._conversations: list[Conversation] = persistence.load()

    @property
    def config(self) -> TimelineConfig:
        """The active configuration."""
        return self._config

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    def create_conversation(self, title: str | None = None) -> Conversation:
        """Create, store and persist an empty conversation.

        The new conversation is placed first, ahead of existing ones.
        """
        conversation = Conversation(title=title or self._config.default_title)
        self._conversations.insert(0, conversation)
        self.save()
        logger.debug(
            "ConversationStore: created conversation %r", conversation.conversation_id
        )
        return conversation

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, conversation_id: str) -> Conversation | None:
        """Return the conversation with ``conversation_id`` or None."""
        for conversation in self._conversations:
            if conversation.conversation_id == conversation_id:
                return conversation
        return None

    def get(self, conversation_id: str) -> Conversation:
        """Return the conversation with ``conversation_id``.

        Raises
        ------
        ConversationNotFoundError
            If no such conversation exists.
        """
        conversation = self.find(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def list_conversations(self) -> list[Conversation]:
        """Return all conversations, most recently updated first."""
        return sorted(self._conversations, key=lambda c: c.updated_at, reverse=True)

    def most_recent(self) -> Conversation | None:
        """Return the most recently updated conversation, if any."""
        ordered = self.list_conversations()
        return ordered[0] if ordered else None

    def group_by_recency(
        self, now: datetime | None = None
    ) -> dict[str, list[Conversation]]:
        """Bucket conversations by how recently they were updated.

        Buckets are ``Today``, ``Yesterday``, ``Previous 7 Days`` and
        ``Older``, always present and in that order.  Calendar days are
        taken in the timezone of ``now`` (UTC by default).

        Parameters
        ----------
        now:
            Reference time.  Defaults to the current UTC time.

        Returns
        -------
        dict[str, list[Conversation]]
            Newest first within each bucket.
        """
        now = now or datetime.now(timezone.utc)
        today = now.date()
        groups: dict[str, list[Conversation]] = {label: [] for label in RECENCY_GROUPS}
        for conversation in self.list_conversations():
            day = conversation.updated_at.astimezone(now.tzinfo).date()
            if day >= today:
                groups["Today"].append(conversation)
            elif day == today - timedelta(days=1):
                groups["Yesterday"].append(conversation)
            elif day > today - timedelta(days=7):
                groups["Previous 7 Days"].append(conversation)
            else:
                groups["Older"].append(conversation)
        return groups

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def delete(self, conversation_id: str) -> None:
        """Remove a conversation and persist the store.

        Raises
        ------
        ConversationNotFoundError
            If no such conversation exists.
        """
        conversation = self.get(conversation_id)
        self._conversations.remove(conversation)
        self.save()
        logger.debug("ConversationStore: deleted conversation %r", conversation_id)

    def clear_all(self) -> None:
        """Remove every conversation and persist the empty store."""
        count = len(self._conversations)
        self._conversations.clear()
        self.save()
        logger.debug("ConversationStore: cleared %d conversation(s)", count)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Overwrite the persisted store with the current conversations."""
        self._persistence.save(list(self._conversations))

    def __contains__(self, conversation_id: object) -> bool:
        return any(c.conversation_id == conversation_id for c in self._conversations)

    def __len__(self) -> int:
        return len(self._conversations)

    def __repr__(self) -> str:
        return f"ConversationStore(conversations={len(self._conversations)})"
