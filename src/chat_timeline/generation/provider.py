"""Model provider contract.

A provider turns a history prefix plus a prompt into an ordered stream of
``StreamChunk`` items.  The generation coordinator is agnostic to the
provider's wire format beyond this contract.

Classes
-------
- StreamChunk    — one incremental piece of a streamed response
- ModelProvider  — abstract base for streaming model providers

Functions
---------
- prepare_history  — filter a timeline down to what a provider should see
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable

from pydantic import BaseModel, Field

from chat_timeline.conversation.state import Citation, Message


class StreamChunk(BaseModel):
    """One event of a streamed response.

    Parameters
    ----------
    delta:
        Text to append to the response, if any.
    citations:
        Sources reported alongside this chunk, if any.
    """

    delta: str | None = None
    citations: list[Citation] = Field(default_factory=list)


class ModelProvider(ABC):
    """Abstract base class for streaming model providers.

    Implementations hide client setup, authentication and request format.
    Failures are raised from the iterator; they may be
    :class:`~chat_timeline.errors.ProviderError` instances or any
    provider-specific exception, which the coordinator categorises.

    Supports the async context manager protocol::

        async with provider:
            async for chunk in provider.request_continuation(...):
                ...
    """

    @abstractmethod
    def request_continuation(
        self,
        conversation_id: str,
        history: list[Message],
        prompt_text: str,
        prompt_images: list[str],
    ) -> AsyncIterator[StreamChunk]:
        """Stream the response to a prompt given the preceding history.

        Implementations are async generators (``async def`` with ``yield``).

        Args:
            conversation_id: Conversation the request belongs to
            history: Completed messages preceding the prompt, oldest first
            prompt_text: Text of the user turn to answer
            prompt_images: Encoded images attached to the user turn

        Returns:
            Async iterator of chunks in arrival order
        """

    async def close(self) -> None:
        """Release any client resources.  The default does nothing."""

    async def __aenter__(self) -> ModelProvider:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()


def prepare_history(messages: Iterable[Message]) -> list[Message]:
    """Return the messages a provider should receive as context.

    Messages still streaming, messages with neither text nor images, and
    placeholders that ended in a provider error are dropped.
    """
    return [
        message
        for message in messages
        if not message.streaming
        and message.error is None
        and not message.content.is_empty()
    ]
