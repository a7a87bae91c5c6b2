"""Conversation subpackage.

Domain objects, the version ledger, the timeline navigator and the store.

Public surface
--------------
- Conversation / Message / MessageVersion / VersionSet — domain models
- TimelineNavigator       — send, fork and switch-version operations
- ConversationStore       — in-memory set of conversations with persistence
- ConversationPersistence — whole-store load/save over a StorageBackend
- ConversationSerializer  — JSON/YAML round-trip with schema versioning
"""
from __future__ import annotations

from chat_timeline.conversation.state import (
    Citation,
    Conversation,
    Message,
    MessageContent,
    MessageRole,
    MessageVersion,
    VersionSet,
)
from chat_timeline.conversation.serializer import ConversationSerializer
from chat_timeline.conversation.persistence import ConversationPersistence
from chat_timeline.conversation.store import ConversationStore
from chat_timeline.conversation.navigator import TimelineNavigator

__all__ = [
    "Citation",
    "Conversation",
    "ConversationPersistence",
    "ConversationSerializer",
    "ConversationStore",
    "Message",
    "MessageContent",
    "MessageRole",
    "MessageVersion",
    "TimelineNavigator",
    "VersionSet",
]
