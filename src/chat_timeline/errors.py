"""Exception hierarchy for chat-timeline.

Local-contract failures (``InvalidInputError``, ``BusyError``,
``VersionOutOfRangeError``, ``NotFoundError``) are raised before any
mutation takes place, so a refused request never leaves a conversation
half-edited.  ``ProviderError`` is raised by model providers and is
recovered by the generation coordinator.

Classes
-------
- TimelineError              — base class for all library errors
- InvalidInputError          — empty content or a non-editable message
- BusyError                  — a generation is unresolved for the conversation
- VersionOutOfRangeError     — version navigation past either end
- NotFoundError              — unknown conversation or message id
- ConversationNotFoundError  — unknown conversation id
- MessageNotFoundError       — unknown message id within a conversation
- ProviderError              — categorised model-provider failure
"""
from __future__ import annotations

from enum import Enum


class ProviderErrorCategory(str, Enum):
    """Coarse failure classes reported by a model provider."""

    INVALID_KEY = "invalid_key"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    NETWORK_FAILURE = "network_failure"
    UNKNOWN = "unknown"


class TimelineError(Exception):
    """Base class for every error raised by chat-timeline."""


class InvalidInputError(TimelineError, ValueError):
    """Raised when an edit or send carries no text and no images."""


class BusyError(TimelineError, RuntimeError):
    """Raised when a generation is still unresolved for a conversation."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(
            f"Conversation {conversation_id!r} has a generation in flight."
        )


class VersionOutOfRangeError(TimelineError, IndexError):
    """Raised when switching to a version index that does not exist."""

    def __init__(self, message_id: str, requested: int, count: int) -> None:
        self.message_id = message_id
        self.requested = requested
        self.count = count
        super().__init__(
            f"Version {requested} is out of range for message {message_id!r} "
            f"({count} version(s) available)."
        )


class NotFoundError(TimelineError, KeyError):
    """Raised when a conversation or message id is unknown."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class ConversationNotFoundError(NotFoundError):
    """Raised when a requested conversation does not exist in the store."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id!r} not found.")


class MessageNotFoundError(NotFoundError):
    """Raised when a message id is not part of a conversation's timeline."""

    def __init__(self, conversation_id: str, message_id: str) -> None:
        self.conversation_id = conversation_id
        self.message_id = message_id
        super().__init__(
            f"Message {message_id!r} not found in conversation {conversation_id!r}."
        )


class ProviderError(TimelineError):
    """A failure reported by a model provider while streaming a response.

    Parameters
    ----------
    category:
        The failure class used to pick the user-facing message.
    detail:
        Provider-specific description, kept for logging.
    """

    def __init__(
        self,
        category: ProviderErrorCategory,
        detail: str = "",
    ) -> None:
        self.category = category
        self.detail = detail
        super().__init__(f"{category.value}: {detail}" if detail else category.value)
