"""Conversation store serialization with schema versioning.

Supports JSON and YAML round-trips of the whole conversation list.  Every
document embeds a ``schema_version`` so that future readers can perform
migrations, and a SHA-256 ``checksum`` of its conversations.

Classes
-------
- SchemaVersionError      — unsupported document version
- ConversationSerializer  — serialize/deserialize conversation lists
"""
from __future__ import annotations

import hashlib
import json
from typing import Literal

import yaml
from pydantic import TypeAdapter

from chat_timeline.conversation.state import Conversation

SCHEMA_VERSION = "1.0"
_SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({SCHEMA_VERSION})

_CONVERSATION_LIST = TypeAdapter(list[Conversation])


class SchemaVersionError(ValueError):
    """Raised when a serialised document uses an unsupported schema version."""

    def __init__(self, version: str) -> None:
        self.version = version
        supported = ", ".join(sorted(_SUPPORTED_SCHEMA_VERSIONS))
        super().__init__(
            f"Unsupported schema version {version!r}. "
            f"Supported versions: {supported}"
        )


def _checksum(conversations: object) -> str:
    canonical_json = json.dumps(conversations, sort_keys=True)
    return hashlib.sha256(canonical_json.encode()).hexdigest()


class ConversationSerializer:
    """Serialize and deserialize lists of ``Conversation`` objects.

    Parameters
    ----------
    validate_checksum:
        When True (default), loading verifies the embedded SHA-256 checksum
        and raises ``ValueError`` on mismatch.
    """

    def __init__(self, validate_checksum: bool = True) -> None:
        self.validate_checksum = validate_checksum

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self, conversations: list[Conversation], *, indent: int | None = None) -> str:
        """Serialise ``conversations`` to a JSON document."""
        return json.dumps(self._document(conversations), indent=indent, default=str)

    def from_json(self, raw: str) -> list[Conversation]:
        """Deserialize a JSON document produced by ``to_json``.

        Raises
        ------
        SchemaVersionError
            If the ``schema_version`` field is not in the supported set.
        ValueError
            If the checksum does not match, the JSON is malformed, or the
            conversations fail validation.
        """
        data: dict[str, object] = json.loads(raw)
        return self._deserialize(data)

    # ------------------------------------------------------------------
    # YAML
    # ------------------------------------------------------------------

    def to_yaml(self, conversations: list[Conversation]) -> str:
        """Serialise ``conversations`` to a YAML document."""
        return yaml.dump(
            self._document(conversations),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=True,
        )

    def from_yaml(self, raw: str) -> list[Conversation]:
        """Deserialize a YAML document produced by ``to_yaml``."""
        data: dict[str, object] = yaml.safe_load(raw)
        return self._deserialize(data)

    # ------------------------------------------------------------------
    # Format dispatch
    # ------------------------------------------------------------------

    def serialize(
        self,
        conversations: list[Conversation],
        format: Literal["json", "yaml"] = "json",
    ) -> str:
        """Serialize using the named format."""
        if format == "yaml":
            return self.to_yaml(conversations)
        return self.to_json(conversations)

    def deserialize(
        self, raw: str, format: Literal["json", "yaml"] = "json"
    ) -> list[Conversation]:
        """Deserialize using the named format."""
        if format == "yaml":
            return self.from_yaml(raw)
        return self.from_json(raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _document(self, conversations: list[Conversation]) -> dict[str, object]:
        dumped = _CONVERSATION_LIST.dump_python(conversations, mode="json")
        return {
            "schema_version": SCHEMA_VERSION,
            "conversations": dumped,
            "checksum": _checksum(dumped),
        }

    def _deserialize(self, data: dict[str, object]) -> list[Conversation]:
        if not isinstance(data, dict):
            raise ValueError("Store document must be a mapping.")

        version = str(data.get("schema_version", ""))
        if version not in _SUPPORTED_SCHEMA_VERSIONS:
            raise SchemaVersionError(version)

        raw_conversations = data.get("conversations", [])
        stored = str(data.get("checksum", ""))
        if self.validate_checksum and stored:
            computed = _checksum(raw_conversations)
            if stored != computed:
                raise ValueError(
                    f"Checksum mismatch for conversation store: "
                    f"stored={stored!r} computed={computed!r}"
                )

        return _CONVERSATION_LIST.validate_python(raw_conversations)
