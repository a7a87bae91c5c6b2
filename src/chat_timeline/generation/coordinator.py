"""Generation coordinator — streams provider output into placeholders.

The coordinator keeps one session handle per conversation in a state
table.  A conversation with an unresolved session is *busy*: the navigator
refuses to fork or switch it, and a second generation for it is refused.
Independent conversations generate concurrently.

Every chunk is applied by looking the conversation and placeholder up in
the store again, so a conversation deleted mid-stream is simply left alone
and its late output is discarded.

Classes
-------
- PendingGeneration      — ticket handed from the navigator to the coordinator
- GenerationSession      — per-conversation in-flight state
- GenerationCoordinator  — runs streaming requests and finalizes placeholders
"""
from __future__ import annotations

import logging
import threading
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime, timezone

from chat_timeline.conversation.state import Message, MessageContent
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.errors import BusyError, ProviderErrorCategory
from chat_timeline.generation.categories import categorize_error, error_message
from chat_timeline.generation.provider import ModelProvider, prepare_history

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingGeneration:
    """A placeholder waiting for its response.

    Parameters
    ----------
    conversation_id:
        Conversation that owns the placeholder.
    placeholder_id:
        The assistant message to stream into.
    history:
        Messages preceding the prompt turn (independent copies).
    prompt:
        Content of the user turn being answered.
    messages:
        The active timeline right after the navigator's change.
    """

    conversation_id: str
    placeholder_id: str
    history: list[Message]
    prompt: MessageContent
    messages: list[Message] = field(default_factory=list)


@dataclass
class GenerationSession:
    """In-flight state for one conversation."""

    conversation_id: str
    placeholder_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    chunks_received: int = 0


class GenerationCoordinator:
    """Drive streaming responses into placeholder messages.

    Parameters
    ----------
    store:
        Store holding the conversations; consulted on every chunk.
    provider:
        Model provider producing the streamed chunks.
    """

    def __init__(self, store: ConversationStore, provider: ModelProvider) -> None:
        self._store = store
        self._provider = provider
        self._sessions: dict[str, GenerationSession] = {}
        self._lock = threading.Lock()

    @property
    def provider(self) -> ModelProvider:
        """The model provider in use."""
        return self._provider

    # ------------------------------------------------------------------
    # State table
    # ------------------------------------------------------------------

    def is_busy(self, conversation_id: str) -> bool:
        """Return True while a generation is unresolved for ``conversation_id``."""
        with self._lock:
            return conversation_id in self._sessions

    def active_sessions(self) -> list[GenerationSession]:
        """Return the sessions currently in flight."""
        with self._lock:
            return list(self._sessions.values())

    def reserve(self, conversation_id: str, placeholder_id: str) -> GenerationSession:
        """Claim the generation slot of ``conversation_id``.

        Raises
        ------
        BusyError
            If another generation for the conversation is unresolved.
        """
        with self._lock:
            if conversation_id in self._sessions:
                raise BusyError(conversation_id)
            session = GenerationSession(conversation_id, placeholder_id)
            self._sessions[conversation_id] = session
        logger.debug(
            "GenerationCoordinator: reserved %r for placeholder %r",
            conversation_id,
            placeholder_id,
        )
        return session

    def _claim(self, pending: PendingGeneration) -> GenerationSession:
        with self._lock:
            session = self._sessions.get(pending.conversation_id)
            if session is not None and session.placeholder_id == pending.placeholder_id:
                return session
        return self.reserve(pending.conversation_id, pending.placeholder_id)

    def _release(self, pending: PendingGeneration) -> None:
        with self._lock:
            session = self._sessions.get(pending.conversation_id)
            if session is not None and session.placeholder_id == pending.placeholder_id:
                del self._sessions[pending.conversation_id]
        logger.debug("GenerationCoordinator: released %r", pending.conversation_id)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, pending: PendingGeneration) -> Message | None:
        """Stream a response into the pending placeholder and finalize it.

        Provider failures are categorised and rendered as the placeholder's
        final text; they do not propagate.

        Parameters
        ----------
        pending:
            Ticket returned by the navigator.  If its slot was not reserved
            yet it is reserved here.

        Returns
        -------
        Message | None
            The finalized placeholder, or None when the conversation or
            placeholder disappeared before the result arrived.

        Raises
        ------
        BusyError
            If a different generation is unresolved for the conversation.
        """
        session = self._claim(pending)
        try:
            try:
                delivered = await self._consume(pending, session)
            except Exception as exc:  # noqa: BLE001
                category = categorize_error(exc)
                logger.warning(
                    "GenerationCoordinator: generation for %r failed (%s): %s",
                    pending.conversation_id,
                    category.value,
                    exc,
                )
                return self._fail(pending, category)
            if not delivered:
                return None
            return self._complete(pending)
        finally:
            self._release(pending)

    async def _consume(self, pending: PendingGeneration, session: GenerationSession) -> bool:
        """Apply chunks in arrival order; False if the target vanished."""
        stream = self._provider.request_continuation(
            pending.conversation_id,
            prepare_history(pending.history),
            pending.prompt.text,
            list(pending.prompt.images),
        )
        async with aclosing(stream):
            async for chunk in stream:
                session.chunks_received += 1
                message = self._placeholder(pending)
                if message is None:
                    logger.debug(
                        "GenerationCoordinator: discarding output for vanished %r",
                        pending.conversation_id,
                    )
                    return False
                if chunk.delta:
                    message.content.text += chunk.delta
                if chunk.citations:
                    message.citations.extend(c.model_copy() for c in chunk.citations)
        return True

    def _placeholder(self, pending: PendingGeneration) -> Message | None:
        conversation = self._store.find(pending.conversation_id)
        if conversation is None:
            return None
        return conversation.find_message(pending.placeholder_id)

    def _complete(self, pending: PendingGeneration) -> Message | None:
        message = self._placeholder(pending)
        if message is None:
            return None
        message.streaming = False
        message.completed_at = datetime.now(timezone.utc)
        self._store.get(pending.conversation_id).touch()
        self._store.save()
        logger.debug(
            "GenerationCoordinator: completed %r in %r",
            pending.placeholder_id,
            pending.conversation_id,
        )
        return message

    def _fail(self, pending: PendingGeneration, category: ProviderErrorCategory) -> Message | None:
        message = self._placeholder(pending)
        if message is None:
            return None
        message.content = MessageContent(text=error_message(category))
        message.error = category
        message.streaming = False
        self._store.save()
        return message
