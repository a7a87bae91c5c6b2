"""Tests for chat_timeline.conversation.navigator.TimelineNavigator.

Covers:
- send: title derivation, placeholder creation, history snapshot
- fork: stash of the prior continuation, new active version, new placeholder
- switch_version: stash/restore, bounds, no generation started
- Refusals (Busy, InvalidInput, OutOfRange, NotFound) leave state untouched
- Stashes and the live timeline never share objects
- A failed save puts the conversation back and leaves no slot reserved
"""
from __future__ import annotations

import pytest

from chat_timeline.conversation.navigator import TimelineNavigator
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.state import Conversation, MessageContent, MessageRole
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.errors import (
    BusyError,
    ConversationNotFoundError,
    InvalidInputError,
    MessageNotFoundError,
    VersionOutOfRangeError,
)
from chat_timeline.generation.coordinator import GenerationCoordinator
from chat_timeline.storage.memory import InMemoryBackend
from conftest import ScriptedProvider


def _content(text: str) -> MessageContent:
    return MessageContent(text=text)


def _answered(store: ConversationStore, *turns: tuple[str, str]) -> Conversation:
    """Create a conversation holding completed user/assistant turns."""
    conversation = store.create_conversation()
    for question, answer in turns:
        conversation.add_message(MessageRole.USER, _content(question))
        conversation.add_message(MessageRole.ASSISTANT, _content(answer))
    store.save()
    return conversation


def _snapshot(conversation: Conversation) -> dict[str, object]:
    return conversation.model_dump()


# ---------------------------------------------------------------------------
# send
# ---------------------------------------------------------------------------


class TestSend:
    def test_appends_user_message_and_placeholder(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        pending = navigator.send(conversation.conversation_id, _content("hi"))

        user, placeholder = conversation.messages
        assert user.role is MessageRole.USER and user.text == "hi"
        assert placeholder.role is MessageRole.ASSISTANT
        assert placeholder.streaming is True
        assert placeholder.content.is_empty()
        assert pending.placeholder_id == placeholder.message_id
        assert pending.conversation_id == conversation.conversation_id
        assert [m.message_id for m in pending.messages] == [
            user.message_id,
            placeholder.message_id,
        ]

    def test_reserves_generation_slot(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
    ) -> None:
        conversation = store.create_conversation()
        navigator.send(conversation.conversation_id, _content("hi"))
        assert coordinator.is_busy(conversation.conversation_id)

    def test_first_message_sets_title(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        navigator.send(conversation.conversation_id, _content("What is the capital of France?"))
        assert conversation.title == "What is the capital of France?"

    def test_long_first_message_truncated(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        text = "x" * 60
        navigator.send(conversation.conversation_id, _content(text))
        assert conversation.title == "x" * 40 + "..."

    def test_image_only_first_message_keeps_default_title(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        navigator.send(
            conversation.conversation_id,
            MessageContent(images=["data:image/png;base64,AA"]),
        )
        assert conversation.title == "New Chat"

    def test_later_message_keeps_title(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("first question", "answer"))
        conversation.title = "Kept"
        navigator.send(conversation.conversation_id, _content("second"))
        assert conversation.title == "Kept"

    def test_history_is_prefix_copy(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("hi", "hello"))
        pending = navigator.send(conversation.conversation_id, _content("more"))
        assert [m.text for m in pending.history] == ["hi", "hello"]
        assert pending.history[0] is not conversation.messages[0]
        assert pending.prompt == _content("more")

    def test_persisted(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        backend: InMemoryBackend,
    ) -> None:
        conversation = store.create_conversation()
        navigator.send(conversation.conversation_id, _content("hi"))
        reloaded = ConversationStore(ConversationPersistence(backend))
        assert len(reloaded.get(conversation.conversation_id).messages) == 2

    @pytest.mark.parametrize(
        "content",
        [MessageContent(), MessageContent(text="  "), MessageContent(text="\n\t")],
    )
    def test_empty_content_refused(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        content: MessageContent,
    ) -> None:
        conversation = store.create_conversation()
        before = _snapshot(conversation)
        with pytest.raises(InvalidInputError):
            navigator.send(conversation.conversation_id, content)
        assert _snapshot(conversation) == before

    def test_unknown_conversation(self, navigator: TimelineNavigator) -> None:
        with pytest.raises(ConversationNotFoundError):
            navigator.send("missing", _content("hi"))

    def test_busy_refused_without_mutation(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        navigator.send(conversation.conversation_id, _content("hi"))
        before = _snapshot(conversation)
        with pytest.raises(BusyError):
            navigator.send(conversation.conversation_id, _content("again"))
        assert _snapshot(conversation) == before


# ---------------------------------------------------------------------------
# fork
# ---------------------------------------------------------------------------


class TestFork:
    def test_stashes_continuation_and_adds_version(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q1", "a1"), ("q2", "a2"))
        first = conversation.messages[0]
        pending = navigator.fork(conversation.conversation_id, first.message_id, _content("q1 edited"))

        assert [m.text for m in conversation.messages[:1]] == ["q1 edited"]
        assert len(conversation.messages) == 2
        assert conversation.messages[1].streaming is True
        assert first.version_count == 2
        assert first.active_version_index == 1
        assert first.versions is not None
        stash = first.versions.versions[0].stashed_continuation
        assert [m.text for m in stash] == ["a1", "q2", "a2"]
        assert first.versions.versions[1].stashed_continuation == []
        assert pending.history == []
        assert pending.prompt == _content("q1 edited")

    def test_history_excludes_edited_message(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q1", "a1"), ("q2", "a2"))
        target = conversation.messages[2]
        pending = navigator.fork(conversation.conversation_id, target.message_id, _content("q2b"))
        assert [m.text for m in pending.history] == ["q1", "a1"]
        assert [m.text for m in conversation.messages] == ["q1", "a1", "q2b", ""]

    def test_fork_last_message_stashes_empty(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = store.create_conversation()
        message = conversation.add_message(MessageRole.USER, _content("alone"))
        navigator.fork(conversation.conversation_id, message.message_id, _content("edited"))
        assert message.versions is not None
        assert message.versions.versions[0].stashed_continuation == []

    def test_assistant_message_refused(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        before = _snapshot(conversation)
        with pytest.raises(InvalidInputError):
            navigator.fork(
                conversation.conversation_id, conversation.messages[1].message_id, _content("x")
            )
        assert _snapshot(conversation) == before

    def test_empty_content_refused(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        before = _snapshot(conversation)
        with pytest.raises(InvalidInputError):
            navigator.fork(
                conversation.conversation_id, conversation.messages[0].message_id, MessageContent()
            )
        assert _snapshot(conversation) == before

    def test_unknown_message(self, store: ConversationStore, navigator: TimelineNavigator) -> None:
        conversation = _answered(store, ("q", "a"))
        with pytest.raises(MessageNotFoundError):
            navigator.fork(conversation.conversation_id, "missing", _content("x"))

    def test_unknown_conversation(self, navigator: TimelineNavigator) -> None:
        with pytest.raises(ConversationNotFoundError):
            navigator.fork("missing", "also-missing", _content("x"))

    def test_busy_refused_without_mutation(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        navigator.send(conversation.conversation_id, _content("more"))
        before = _snapshot(conversation)
        with pytest.raises(BusyError):
            navigator.fork(
                conversation.conversation_id, conversation.messages[0].message_id, _content("x")
            )
        assert _snapshot(conversation) == before

    def test_fork_accepts_images(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        content = MessageContent(images=["data:image/png;base64,AA"])
        navigator.fork(conversation.conversation_id, conversation.messages[0].message_id, content)
        assert conversation.messages[0].content == content


# ---------------------------------------------------------------------------
# switch_version
# ---------------------------------------------------------------------------


class TestSwitchVersion:
    @pytest.mark.asyncio
    async def test_round_trip_restores_each_branch(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
    ) -> None:
        conversation = _answered(store, ("q1", "a1"), ("q2", "a2"))
        first = conversation.messages[0]
        await coordinator.generate(
            navigator.fork(conversation.conversation_id, first.message_id, _content("q1b"))
        )
        assert [m.text for m in conversation.messages] == ["q1b", "hello"]

        timeline = navigator.switch_version(conversation.conversation_id, first.message_id, -1)
        assert [m.text for m in timeline] == ["q1", "a1", "q2", "a2"]
        assert first.active_version_index == 0

        timeline = navigator.switch_version(conversation.conversation_id, first.message_id, 1)
        assert [m.text for m in timeline] == ["q1b", "hello"]
        assert first.active_version_index == 1

    @pytest.mark.asyncio
    async def test_restored_messages_are_fresh_copies(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
    ) -> None:
        conversation = _answered(store, ("q1", "a1"))
        first = conversation.messages[0]
        await coordinator.generate(
            navigator.fork(conversation.conversation_id, first.message_id, _content("q1b"))
        )
        navigator.switch_version(conversation.conversation_id, first.message_id, -1)
        conversation.messages[1].content.text = "mutated live"

        assert first.versions is not None
        assert first.versions.versions[0].stashed_continuation[0].text == "a1"
        stashed_ids = {id(m) for v in first.versions.versions for m in v.stashed_continuation}
        assert not stashed_ids & {id(m) for m in conversation.messages}

    def test_does_not_start_generation(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
        provider: ScriptedProvider,
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        message = conversation.messages[0]
        pending = navigator.fork(conversation.conversation_id, message.message_id, _content("q2"))
        coordinator._release(pending)

        navigator.switch_version(conversation.conversation_id, message.message_id, -1)

        assert not coordinator.is_busy(conversation.conversation_id)
        assert provider.calls == []

    def test_unedited_message_out_of_range(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        before = _snapshot(conversation)
        with pytest.raises(VersionOutOfRangeError):
            navigator.switch_version(
                conversation.conversation_id, conversation.messages[0].message_id, -1
            )
        assert _snapshot(conversation) == before

    @pytest.mark.asyncio
    async def test_past_either_end_refused(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        first = conversation.messages[0]
        await coordinator.generate(
            navigator.fork(conversation.conversation_id, first.message_id, _content("q2"))
        )
        before = _snapshot(conversation)
        with pytest.raises(VersionOutOfRangeError):
            navigator.switch_version(conversation.conversation_id, first.message_id, 1)
        assert _snapshot(conversation) == before

        navigator.switch_version(conversation.conversation_id, first.message_id, -1)
        before = _snapshot(conversation)
        with pytest.raises(VersionOutOfRangeError):
            navigator.switch_version(conversation.conversation_id, first.message_id, -1)
        assert _snapshot(conversation) == before

    def test_busy_refused_without_mutation(
        self, store: ConversationStore, navigator: TimelineNavigator
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        first = conversation.messages[0]
        navigator.fork(conversation.conversation_id, first.message_id, _content("q2"))
        before = _snapshot(conversation)
        with pytest.raises(BusyError):
            navigator.switch_version(conversation.conversation_id, first.message_id, -1)
        assert _snapshot(conversation) == before

    def test_unknown_message(self, store: ConversationStore, navigator: TimelineNavigator) -> None:
        conversation = _answered(store, ("q", "a"))
        with pytest.raises(MessageNotFoundError):
            navigator.switch_version(conversation.conversation_id, "missing", -1)

    @pytest.mark.asyncio
    async def test_switch_persisted(
        self,
        store: ConversationStore,
        navigator: TimelineNavigator,
        coordinator: GenerationCoordinator,
        backend: InMemoryBackend,
    ) -> None:
        conversation = _answered(store, ("q", "a"))
        first = conversation.messages[0]
        await coordinator.generate(
            navigator.fork(conversation.conversation_id, first.message_id, _content("q2"))
        )
        navigator.switch_version(conversation.conversation_id, first.message_id, -1)

        reloaded = ConversationStore(ConversationPersistence(backend))
        restored = reloaded.get(conversation.conversation_id)
        assert [m.text for m in restored.messages] == ["q", "a"]
        assert restored.messages[0].active_version_index == 0


# ---------------------------------------------------------------------------
# Save failures
# ---------------------------------------------------------------------------


class _FailingBackend(InMemoryBackend):
    """In-memory backend whose ``save`` raises once ``failing`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def save(self, key: str, payload: str) -> None:
        if self.failing:
            raise OSError("disk full")
        super().save(key, payload)


class TestSaveFailure:
    @pytest.fixture()
    def failing_backend(self) -> _FailingBackend:
        return _FailingBackend()

    @pytest.fixture()
    def failing_store(self, failing_backend: _FailingBackend) -> ConversationStore:
        return ConversationStore(ConversationPersistence(failing_backend))

    @pytest.fixture()
    def failing_coordinator(
        self, failing_store: ConversationStore, provider: ScriptedProvider
    ) -> GenerationCoordinator:
        return GenerationCoordinator(failing_store, provider)

    @pytest.fixture()
    def failing_navigator(
        self, failing_store: ConversationStore, failing_coordinator: GenerationCoordinator
    ) -> TimelineNavigator:
        return TimelineNavigator(failing_store, failing_coordinator)

    def test_send_restores_conversation(
        self,
        failing_backend: _FailingBackend,
        failing_store: ConversationStore,
        failing_coordinator: GenerationCoordinator,
        failing_navigator: TimelineNavigator,
    ) -> None:
        conversation = failing_store.create_conversation()
        before = _snapshot(conversation)
        failing_backend.failing = True

        with pytest.raises(OSError):
            failing_navigator.send(conversation.conversation_id, _content("hi"))

        assert _snapshot(conversation) == before
        assert conversation.title == "New Chat"
        assert not failing_coordinator.is_busy(conversation.conversation_id)

    def test_fork_restores_conversation(
        self,
        failing_backend: _FailingBackend,
        failing_store: ConversationStore,
        failing_coordinator: GenerationCoordinator,
        failing_navigator: TimelineNavigator,
    ) -> None:
        conversation = _answered(failing_store, ("hi", "hello"))
        first = conversation.messages[0]
        before = _snapshot(conversation)
        failing_backend.failing = True

        with pytest.raises(OSError):
            failing_navigator.fork(conversation.conversation_id, first.message_id, _content("hey"))

        assert _snapshot(conversation) == before
        assert [(m.text, m.streaming) for m in conversation.messages] == [
            ("hi", False),
            ("hello", False),
        ]
        assert conversation.messages[0].versions is None
        assert not failing_coordinator.is_busy(conversation.conversation_id)

    @pytest.mark.asyncio
    async def test_switch_restores_conversation(
        self,
        failing_backend: _FailingBackend,
        failing_store: ConversationStore,
        failing_coordinator: GenerationCoordinator,
        failing_navigator: TimelineNavigator,
    ) -> None:
        conversation = _answered(failing_store, ("q", "a"))
        first_id = conversation.messages[0].message_id
        await failing_coordinator.generate(
            failing_navigator.fork(conversation.conversation_id, first_id, _content("q2"))
        )
        before = _snapshot(conversation)
        failing_backend.failing = True

        with pytest.raises(OSError):
            failing_navigator.switch_version(conversation.conversation_id, first_id, -1)

        assert _snapshot(conversation) == before
        assert [m.text for m in conversation.messages] == ["q2", "hello"]

    def test_conversation_usable_after_failed_save(
        self,
        failing_backend: _FailingBackend,
        failing_store: ConversationStore,
        failing_navigator: TimelineNavigator,
    ) -> None:
        conversation = _answered(failing_store, ("hi", "hello"))
        first_id = conversation.messages[0].message_id
        failing_backend.failing = True
        with pytest.raises(OSError):
            failing_navigator.fork(conversation.conversation_id, first_id, _content("hey"))

        failing_backend.failing = False
        pending = failing_navigator.fork(conversation.conversation_id, first_id, _content("hey"))
        assert [m.text for m in pending.messages] == ["hey", ""]
