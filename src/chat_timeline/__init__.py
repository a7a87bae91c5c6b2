"""chat-timeline — editable chat turns with versioned, branching continuations.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import chat_timeline
>>> chat_timeline.__version__
'0.1.0'
"""
from __future__ import annotations

# Errors
from chat_timeline.errors import (
    BusyError,
    ConversationNotFoundError,
    InvalidInputError,
    MessageNotFoundError,
    NotFoundError,
    ProviderError,
    ProviderErrorCategory,
    TimelineError,
    VersionOutOfRangeError,
)

# Configuration
from chat_timeline.config import GenerationConfig, TimelineConfig

# Conversation core
from chat_timeline.conversation.state import (
    Citation,
    Conversation,
    Message,
    MessageContent,
    MessageRole,
    MessageVersion,
    VersionSet,
)
from chat_timeline.conversation.serializer import ConversationSerializer, SchemaVersionError
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.conversation.navigator import TimelineNavigator

# Generation
from chat_timeline.generation.provider import ModelProvider, StreamChunk
from chat_timeline.generation.coordinator import (
    GenerationCoordinator,
    GenerationSession,
    PendingGeneration,
)
from chat_timeline.generation.categories import categorize_error, error_message

# Storage backends
from chat_timeline.storage.base import StorageBackend
from chat_timeline.storage.memory import InMemoryBackend
from chat_timeline.storage.filesystem import FilesystemBackend
from chat_timeline.storage.sqlite import SQLiteBackend

# Facade
from chat_timeline.convenience import ChatTimeline

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "BusyError",
    "ConversationNotFoundError",
    "InvalidInputError",
    "MessageNotFoundError",
    "NotFoundError",
    "ProviderError",
    "ProviderErrorCategory",
    "TimelineError",
    "VersionOutOfRangeError",
    # Configuration
    "GenerationConfig",
    "TimelineConfig",
    # Conversation core
    "Citation",
    "Conversation",
    "ConversationPersistence",
    "ConversationSerializer",
    "ConversationStore",
    "Message",
    "MessageContent",
    "MessageRole",
    "MessageVersion",
    "SchemaVersionError",
    "TimelineNavigator",
    "VersionSet",
    # Generation
    "GenerationCoordinator",
    "GenerationSession",
    "ModelProvider",
    "PendingGeneration",
    "StreamChunk",
    "categorize_error",
    "error_message",
    # Storage
    "FilesystemBackend",
    "InMemoryBackend",
    "SQLiteBackend",
    "StorageBackend",
    # Facade
    "ChatTimeline",
]
