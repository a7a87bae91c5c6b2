"""Version ledger — per-message alternate contents and their stashes.

The ledger is a set of functions over ``Message`` objects; the state it
manages lives on ``Message.versions``.  Every sequence that crosses the
boundary between the live timeline and a version's stash is deep-copied, so
no two versions and no version and the live timeline ever share a mutable
``Message``.

Functions
---------
- copy_messages          — independent deep copy of a message sequence
- ensure_version_set     — lazily seed version 0 from the current content
- stash_continuation     — store a copy of the continuation on the active version
- append_version         — add and activate a new version
- check_target           — validate a single-step version move
- activate_version       — move the active index and update displayed content
- restore_continuation   — fresh copy of a version's stash
"""
from __future__ import annotations

from collections.abc import Iterable

from chat_timeline.conversation.state import (
    Message,
    MessageContent,
    MessageVersion,
    VersionSet,
)
from chat_timeline.errors import VersionOutOfRangeError


def copy_messages(messages: Iterable[Message]) -> list[Message]:
    """Return an independent deep copy of ``messages``, preserving order and ids."""
    return [message.model_copy(deep=True) for message in messages]


def ensure_version_set(message: Message) -> VersionSet:
    """Return the message's version set, creating it on first use.

    The seeded set holds a single version equal to the message's current
    content, with an empty stash.
    """
    if message.versions is None:
        seed = MessageVersion(
            content=message.content.model_copy(deep=True),
            created_at=message.created_at,
        )
        message.versions = VersionSet(versions=[seed], active_index=0)
    return message.versions


def stash_continuation(version_set: VersionSet, continuation: Iterable[Message]) -> None:
    """Store a copy of ``continuation`` on the active version.

    Any previously stashed value on that version is overwritten.
    """
    version_set.active.stashed_continuation = copy_messages(continuation)


def append_version(message: Message, content: MessageContent) -> MessageVersion:
    """Append ``content`` as a new active version of ``message``.

    The new version starts with an empty stash.  The message's displayed
    content is updated to match.
    """
    version_set = ensure_version_set(message)
    version = MessageVersion(content=content.model_copy(deep=True))
    version_set.versions.append(version)
    version_set.active_index = len(version_set.versions) - 1
    message.content = content.model_copy(deep=True)
    return version


def check_target(message: Message, direction: int) -> int:
    """Return the version index reached by moving ``direction`` steps.

    Only single steps (``-1`` or ``+1``) are valid.

    Raises
    ------
    VersionOutOfRangeError
        If the message has no versions, ``direction`` is not a single step,
        or the target lies outside the version list.
    """
    version_set = message.versions
    if version_set is None:
        raise VersionOutOfRangeError(message.message_id, direction, 1)
    target = version_set.active_index + direction
    if direction not in (-1, 1) or not 0 <= target < len(version_set.versions):
        raise VersionOutOfRangeError(
            message.message_id, target, len(version_set.versions)
        )
    return target


def activate_version(message: Message, index: int) -> MessageVersion:
    """Make version ``index`` active and display its content.

    Raises
    ------
    VersionOutOfRangeError
        If the message has no versions or ``index`` is out of range.
    """
    version_set = message.versions
    count = len(version_set.versions) if version_set is not None else 1
    if version_set is None or not 0 <= index < count:
        raise VersionOutOfRangeError(message.message_id, index, count)
    version_set.active_index = index
    target = version_set.active
    message.content = target.content.model_copy(deep=True)
    return target


def restore_continuation(version: MessageVersion) -> list[Message]:
    """Return a fresh copy of the messages stashed on ``version``."""
    return copy_messages(version.stashed_continuation)
