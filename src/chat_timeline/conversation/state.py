"""Conversation domain models.

All types are Pydantic BaseModel subclasses to enable runtime validation
and JSON serialisation.  The models nest recursively: a ``Message`` may own
a ``VersionSet`` whose versions each hold a stashed list of ``Message``
objects.

Classes
-------
- MessageRole     — enum for message authorship
- MessageContent  — text plus optional encoded images
- Citation        — a source reference attached to a generated response
- Message         — one turn of the active timeline
- MessageVersion  — one alternate content of an edited message
- VersionSet      — the ordered versions of an edited message
- Conversation    — a titled, ordered active timeline
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from chat_timeline.errors import MessageNotFoundError, ProviderErrorCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Who authored a message."""

    USER = "user"
    ASSISTANT = "assistant"


class MessageContent(BaseModel):
    """The displayable payload of a message or version.

    Parameters
    ----------
    text:
        Plain text of the turn.
    images:
        Encoded image attachments (for example ``data:`` URLs).  Encoding is
        the caller's concern; the strings are carried opaquely.
    """

    text: str = ""
    images: list[str] = Field(default_factory=list)

    model_config = {"frozen": False}

    def is_empty(self) -> bool:
        """Return True when there is no text and no image."""
        return not self.text.strip() and not self.images


class Citation(BaseModel):
    """A web source the model grounded its answer on."""

    uri: str
    title: str = ""

    model_config = {"frozen": False}


class Message(BaseModel):
    """A single turn in a conversation's active timeline.

    Parameters
    ----------
    message_id:
        Unique identifier for this message.
    role:
        ``user`` or ``assistant``.
    content:
        The displayed content.  When ``versions`` is set this always equals
        the active version's content.
    streaming:
        True while a response is still being generated into this message.
    created_at:
        When the message was created (UTC).
    completed_at:
        When generation finished successfully, if it did.
    citations:
        Sources attached to a generated response, in arrival order.
    error:
        Category of the provider failure that ended generation, if any.
    versions:
        Alternate contents of an edited user message.  ``None`` until the
        message is first edited.
    """

    message_id: str = Field(default_factory=lambda: str(uuid4()))
    role: MessageRole
    content: MessageContent = Field(default_factory=MessageContent)
    streaming: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    citations: list[Citation] = Field(default_factory=list)
    error: Optional[ProviderErrorCategory] = None
    versions: Optional[VersionSet] = None

    model_config = {"frozen": False}

    @property
    def text(self) -> str:
        """Shortcut for ``content.text``."""
        return self.content.text

    @property
    def version_count(self) -> int:
        """Number of versions, counting an unedited message as one."""
        return len(self.versions.versions) if self.versions is not None else 1

    @property
    def active_version_index(self) -> int:
        """Index of the displayed version (0 for an unedited message)."""
        return self.versions.active_index if self.versions is not None else 0

    @model_validator(mode="after")
    def _content_matches_active_version(self) -> "Message":
        if self.versions is not None and self.content != self.versions.active.content:
            raise ValueError(
                f"Message {self.message_id!r} content does not match its "
                f"active version {self.versions.active_index}."
            )
        return self


class MessageVersion(BaseModel):
    """One alternate content of an edited message.

    Parameters
    ----------
    version_id:
        Unique identifier for this version.
    content:
        Snapshot of the message content for this version.
    created_at:
        When the version was created (UTC).
    stashed_continuation:
        Independent copy of the messages that followed this version the
        last time it was active.  Empty for a freshly forked version.
    """

    version_id: str = Field(default_factory=lambda: str(uuid4()))
    content: MessageContent
    created_at: datetime = Field(default_factory=_utcnow)
    stashed_continuation: list[Message] = Field(default_factory=list)

    model_config = {"frozen": False}


class VersionSet(BaseModel):
    """The ordered versions of an edited message and the active one.

    Parameters
    ----------
    versions:
        Versions in creation order.  Never empty.
    active_index:
        Index into ``versions`` of the displayed version.
    """

    versions: list[MessageVersion]
    active_index: int = 0

    model_config = {"frozen": False}

    @property
    def active(self) -> MessageVersion:
        """The currently displayed version."""
        return self.versions[self.active_index]

    def __len__(self) -> int:
        return len(self.versions)

    @model_validator(mode="after")
    def _active_index_in_range(self) -> "VersionSet":
        if not self.versions:
            raise ValueError("A VersionSet needs at least one version.")
        if not 0 <= self.active_index < len(self.versions):
            raise ValueError(
                f"active_index {self.active_index} is out of range for "
                f"{len(self.versions)} version(s)."
            )
        return self


class Conversation(BaseModel):
    """A titled conversation and its active timeline.

    Parameters
    ----------
    conversation_id:
        Globally unique conversation identifier.
    title:
        Human-readable title, usually derived from the first message.
    messages:
        The active timeline, in display order.
    created_at:
        Creation timestamp (UTC).
    updated_at:
        Last structural change or completed response (UTC).
    """

    conversation_id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = "New Chat"
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": False}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def index_of(self, message_id: str) -> int:
        """Return the position of ``message_id`` in the active timeline.

        Raises
        ------
        MessageNotFoundError
            If the message is not part of the active timeline.
        """
        for index, message in enumerate(self.messages):
            if message.message_id == message_id:
                return index
        raise MessageNotFoundError(self.conversation_id, message_id)

    def find_message(self, message_id: str) -> Message | None:
        """Return the message with ``message_id`` or None."""
        for message in self.messages:
            if message.message_id == message_id:
                return message
        return None

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def add_message(
        self,
        role: MessageRole,
        content: MessageContent | None = None,
        *,
        streaming: bool = False,
    ) -> Message:
        """Append a new message to the active timeline and return it."""
        message = Message(
            role=role,
            content=content or MessageContent(),
            streaming=streaming,
        )
        self.messages.append(message)
        self.touch()
        return message

    def touch(self) -> None:
        """Refresh ``updated_at``."""
        self.updated_at = _utcnow()


Message.model_rebuild()
MessageVersion.model_rebuild()
VersionSet.model_rebuild()
Conversation.model_rebuild()
