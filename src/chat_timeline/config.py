"""Configuration objects for chat-timeline.

Classes
-------
- TimelineConfig    — conversation titles and storage key
- GenerationConfig  — model selection for the bundled Gemini provider
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a helpful assistant. Answer clearly and concisely, and cite "
    "web sources when you rely on them."
)


@dataclass(frozen=True)
class TimelineConfig:
    """Settings shared by the store and the navigator.

    Parameters
    ----------
    title_max_length:
        Number of characters of the first message used as the title of a
        new conversation.  Longer texts are truncated and suffixed with
        ``"..."``.
    default_title:
        Title given to a conversation before its first message.
    storage_key:
        Key under which the whole conversation list is persisted.
    """

    title_max_length: int = 40
    default_title: str = "New Chat"
    storage_key: str = "conversations_v1"

    def __post_init__(self) -> None:
        if self.title_max_length < 1:
            raise ValueError(
                f"title_max_length must be positive, got {self.title_max_length!r}."
            )
        if not self.storage_key.strip():
            raise ValueError("storage_key must not be empty.")

    def derive_title(self, text: str) -> str:
        """Return a conversation title derived from its first message."""
        text = text.strip()
        if not text:
            return self.default_title
        if len(text) <= self.title_max_length:
            return text
        return text[: self.title_max_length] + "..."


@dataclass(frozen=True)
class GenerationConfig:
    """Model settings for :class:`~chat_timeline.generation.gemini.GeminiProvider`.

    Parameters
    ----------
    model:
        Model name passed to the provider.
    system_instruction:
        System prompt sent with every request.
    enable_search:
        Attach the Google Search tool so responses carry citations.
    """

    model: str = "gemini-2.5-flash"
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    enable_search: bool = True

    def __post_init__(self) -> None:
        if not self.model.strip():
            raise ValueError("model must not be empty.")
