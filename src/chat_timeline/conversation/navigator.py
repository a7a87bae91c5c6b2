"""Timeline navigator — the only writer of conversation structure.

Design
------
A conversation is displayed as a flat list of messages.  Editing an earlier
user message *forks* it: the messages after it are stashed on the version
being replaced, a new version becomes active, and the list is cut back to
the edited message plus a fresh assistant placeholder.  *Switching* between
versions swaps the live continuation with the one stashed on the target
version.  Stashes and live messages never share objects; every move across
that boundary is a deep copy.

Every operation validates first and mutates second, and none of them awaits,
so a refused or completed request is all-or-nothing from the point of view
of any other coroutine.  If persisting a change fails, the conversation is
put back as it was before the call and the error propagates.

Usage
-----
::

    navigator = TimelineNavigator(store, coordinator)
    pending = navigator.fork(conversation_id, message_id, MessageContent(text="hey"))
    await coordinator.generate(pending)
    navigator.switch_version(conversation_id, message_id, -1)
"""
from __future__ import annotations

import logging

from chat_timeline.conversation.ledger import (
    activate_version,
    append_version,
    check_target,
    copy_messages,
    ensure_version_set,
    restore_continuation,
    stash_continuation,
)
from chat_timeline.conversation.state import (
    Conversation,
    Message,
    MessageContent,
    MessageRole,
)
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.errors import BusyError, InvalidInputError
from chat_timeline.generation.coordinator import GenerationCoordinator, PendingGeneration

logger = logging.getLogger(__name__)


class TimelineNavigator:
    """Send, fork and switch versions within stored conversations.

    Parameters
    ----------
    store:
        Store holding the conversations to mutate.  Persisted after every
        change.
    coordinator:
        Generation coordinator consulted for in-flight generations and
        holding the slot reserved for each new placeholder.
    """

    def __init__(
        self,
        store: ConversationStore,
        coordinator: GenerationCoordinator,
    ) -> None:
        self._store = store
        self._coordinator = coordinator

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _ensure_idle(self, conversation_id: str) -> None:
        if self._coordinator.is_busy(conversation_id):
            raise BusyError(conversation_id)

    def _save_or_restore(self, conversation: Conversation, snapshot: Conversation) -> None:
        """Persist the store, putting ``conversation`` back to ``snapshot`` on failure."""
        try:
            self._store.save()
        except Exception:
            conversation.title = snapshot.title
            conversation.messages = snapshot.messages
            conversation.updated_at = snapshot.updated_at
            logger.warning(
                "TimelineNavigator: save failed, restored %r", conversation.conversation_id
            )
            raise

    @staticmethod
    def _ensure_content(content: MessageContent) -> None:
        if content.is_empty():
            raise InvalidInputError("A message needs text or at least one image.")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def send(self, conversation_id: str, content: MessageContent) -> PendingGeneration:
        """Append a user message and a streaming placeholder.

        The first message of a conversation also sets its title.

        Raises
        ------
        ConversationNotFoundError
            If the conversation does not exist.
        BusyError
            If a generation is unresolved for the conversation.
        InvalidInputError
            If ``content`` has no text and no images.
        """
        conversation = self._store.get(conversation_id)
        self._ensure_idle(conversation_id)
        self._ensure_content(content)

        snapshot = conversation.model_copy(deep=True)
        history = copy_messages(conversation.messages)
        if not conversation.messages:
            conversation.title = self._store.config.derive_title(content.text)
        conversation.add_message(MessageRole.USER, content.model_copy(deep=True))
        placeholder = conversation.add_message(MessageRole.ASSISTANT, streaming=True)
        self._save_or_restore(conversation, snapshot)
        self._coordinator.reserve(conversation_id, placeholder.message_id)

        logger.debug(
            "TimelineNavigator: sent to %r, placeholder %r",
            conversation_id,
            placeholder.message_id,
        )
        return PendingGeneration(
            conversation_id=conversation_id,
            placeholder_id=placeholder.message_id,
            history=history,
            prompt=content.model_copy(deep=True),
            messages=list(conversation.messages),
        )

    def fork(
        self,
        conversation_id: str,
        message_id: str,
        new_content: MessageContent,
    ) -> PendingGeneration:
        """Edit an earlier user message, branching the timeline.

        The messages currently following ``message_id`` are stashed on the
        active version, ``new_content`` becomes a new active version, and the
        timeline is cut back to the edited message plus a new placeholder.

        Raises
        ------
        NotFoundError
            If the conversation or message does not exist.
        InvalidInputError
            If the message is not a user message or ``new_content`` is empty.
        BusyError
            If a generation is unresolved for the conversation.
        """
        conversation = self._store.get(conversation_id)
        index = conversation.index_of(message_id)
        message = conversation.messages[index]
        if message.role != MessageRole.USER:
            raise InvalidInputError(f"Message {message_id!r} is not a user message.")
        self._ensure_idle(conversation_id)
        self._ensure_content(new_content)

        snapshot = conversation.model_copy(deep=True)
        history = copy_messages(conversation.messages[:index])
        version_set = ensure_version_set(message)
        stash_continuation(version_set, conversation.messages[index + 1:])
        append_version(message, new_content)

        placeholder = Message(role=MessageRole.ASSISTANT, streaming=True)
        conversation.messages = [*conversation.messages[: index + 1], placeholder]
        conversation.touch()
        self._save_or_restore(conversation, snapshot)
        self._coordinator.reserve(conversation_id, placeholder.message_id)

        logger.debug(
            "TimelineNavigator: forked %r in %r to version %d",
            message_id,
            conversation_id,
            version_set.active_index,
        )
        return PendingGeneration(
            conversation_id=conversation_id,
            placeholder_id=placeholder.message_id,
            history=history,
            prompt=new_content.model_copy(deep=True),
            messages=list(conversation.messages),
        )

    def switch_version(
        self,
        conversation_id: str,
        message_id: str,
        direction: int,
    ) -> list[Message]:
        """Show the previous (``-1``) or next (``+1``) version of a message.

        The live continuation is stashed on the version being left and the
        target version's stash is restored as a fresh copy.  No generation is
        started.

        Returns
        -------
        list[Message]
            The rebuilt active timeline.

        Raises
        ------
        NotFoundError
            If the conversation or message does not exist.
        VersionOutOfRangeError
            If the message has no versions or the target is out of range.
        BusyError
            If a generation is unresolved for the conversation.
        """
        conversation = self._store.get(conversation_id)
        index = conversation.index_of(message_id)
        message = conversation.messages[index]
        target_index = check_target(message, direction)
        self._ensure_idle(conversation_id)

        snapshot = conversation.model_copy(deep=True)
        version_set = ensure_version_set(message)
        stash_continuation(version_set, conversation.messages[index + 1:])
        target = activate_version(message, target_index)
        conversation.messages = [
            *conversation.messages[: index + 1],
            *restore_continuation(target),
        ]
        self._save_or_restore(conversation, snapshot)

        logger.debug(
            "TimelineNavigator: switched %r in %r to version %d",
            message_id,
            conversation_id,
            target_index,
        )
        return list(conversation.messages)
