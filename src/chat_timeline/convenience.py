"""Convenience API for chat-timeline — one object wiring the whole engine.

Example
-------
::

    from chat_timeline import ChatTimeline
    timeline = ChatTimeline(provider=my_provider)
    chat = timeline.new_conversation()
    reply = await timeline.send(chat.conversation_id, "hi")
    await timeline.edit(chat.conversation_id, chat.messages[0].message_id, "hey")
    timeline.switch_version(chat.conversation_id, chat.messages[0].message_id, -1)

"""
from __future__ import annotations

from chat_timeline.config import TimelineConfig
from chat_timeline.conversation.navigator import TimelineNavigator
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.state import Conversation, Message, MessageContent
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.generation.coordinator import GenerationCoordinator
from chat_timeline.generation.provider import ModelProvider
from chat_timeline.storage.base import StorageBackend


class ChatTimeline:
    """Store, coordinator and navigator behind a single facade.

    Uses in-memory storage unless a backend is given.

    Parameters
    ----------
    provider:
        Model provider that answers sends and edits.
    backend:
        Raw storage backend.  Defaults to :class:`InMemoryBackend`.
    config:
        Optional :class:`TimelineConfig`.
    """

    def __init__(
        self,
        provider: ModelProvider,
        backend: StorageBackend | None = None,
        config: TimelineConfig | None = None,
    ) -> None:
        if backend is None:
            from chat_timeline.storage.memory import InMemoryBackend

            backend = InMemoryBackend()

        self.config = config or TimelineConfig()
        self.store = ConversationStore(
            ConversationPersistence(backend, key=self.config.storage_key),
            config=self.config,
        )
        self.coordinator = GenerationCoordinator(self.store, provider)
        self.navigator = TimelineNavigator(self.store, self.coordinator)

    def new_conversation(self, title: str | None = None) -> Conversation:
        """Create and persist an empty conversation."""
        return self.store.create_conversation(title)

    async def send(
        self,
        conversation_id: str,
        text: str,
        images: list[str] | None = None,
    ) -> Message | None:
        """Send a new user message and wait for the complete response.

        Returns
        -------
        Message | None
            The finalized assistant message, or None if the conversation was
            deleted before the response arrived.
        """
        pending = self.navigator.send(
            conversation_id, MessageContent(text=text, images=images or [])
        )
        return await self.coordinator.generate(pending)

    async def edit(
        self,
        conversation_id: str,
        message_id: str,
        text: str,
        images: list[str] | None = None,
    ) -> Message | None:
        """Fork an earlier user message and wait for the new response."""
        pending = self.navigator.fork(
            conversation_id, message_id, MessageContent(text=text, images=images or [])
        )
        return await self.coordinator.generate(pending)

    def switch_version(
        self, conversation_id: str, message_id: str, direction: int
    ) -> list[Message]:
        """Show the previous (``-1``) or next (``+1``) version of a message."""
        return self.navigator.switch_version(conversation_id, message_id, direction)

    def delete(self, conversation_id: str) -> None:
        """Delete a conversation."""
        self.store.delete(conversation_id)

    def clear_all(self) -> None:
        """Delete every conversation."""
        self.store.clear_all()

    def __repr__(self) -> str:
        return f"ChatTimeline(store={self.store!r})"
