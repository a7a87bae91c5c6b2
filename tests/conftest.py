"""Shared fixtures for chat-timeline tests.

``ScriptedProvider`` replays a fixed script instead of calling a model.  A
script item is either a ``StreamChunk`` (yielded), an exception instance
(raised from the stream), or a zero-argument callable (invoked between
chunks, for example to delete a conversation mid-stream).
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, Union

import pytest

from chat_timeline.config import TimelineConfig
from chat_timeline.conversation.navigator import TimelineNavigator
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.state import Message
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.generation.coordinator import GenerationCoordinator
from chat_timeline.generation.provider import ModelProvider, StreamChunk
from chat_timeline.storage.memory import InMemoryBackend

ScriptItem = Union[StreamChunk, BaseException, Callable[[], Any]]


class ScriptedProvider(ModelProvider):
    """Provider that replays a script, optionally chosen by prompt text."""

    def __init__(
        self,
        script: Sequence[ScriptItem] = (),
        by_prompt: dict[str, Sequence[ScriptItem]] | None = None,
    ) -> None:
        self.script = list(script)
        self.by_prompt = by_prompt or {}
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def request_continuation(
        self,
        conversation_id: str,
        history: list[Message],
        prompt_text: str,
        prompt_images: list[str],
    ) -> AsyncIterator[StreamChunk]:
        self.calls.append(
            {
                "conversation_id": conversation_id,
                "history": history,
                "prompt_text": prompt_text,
                "prompt_images": prompt_images,
            }
        )
        for item in self.by_prompt.get(prompt_text, self.script):
            await asyncio.sleep(0)
            if isinstance(item, StreamChunk):
                yield item
            elif isinstance(item, BaseException):
                raise item
            else:
                item()

    async def close(self) -> None:
        self.closed = True


def text_chunks(*deltas: str) -> list[StreamChunk]:
    return [StreamChunk(delta=delta) for delta in deltas]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture()
def store(backend: InMemoryBackend) -> ConversationStore:
    return ConversationStore(ConversationPersistence(backend), config=TimelineConfig())


@pytest.fixture()
def provider() -> ScriptedProvider:
    return ScriptedProvider(text_chunks("hello"))


@pytest.fixture()
def coordinator(store: ConversationStore, provider: ScriptedProvider) -> GenerationCoordinator:
    return GenerationCoordinator(store, provider)


@pytest.fixture()
def navigator(
    store: ConversationStore, coordinator: GenerationCoordinator
) -> TimelineNavigator:
    return TimelineNavigator(store, coordinator)
