"""Generation subpackage.

Streams model output into placeholder messages.  ``GeminiProvider`` lives in
``chat_timeline.generation.gemini`` and needs the optional ``google-genai``
dependency, so it is not imported here.

Public surface
--------------
- ModelProvider          — abstract streaming provider
- StreamChunk            — one streamed delta / citation batch
- GenerationCoordinator  — per-conversation in-flight state and finalization
- PendingGeneration      — ticket from the navigator to the coordinator
"""
from __future__ import annotations

from chat_timeline.generation.provider import ModelProvider, StreamChunk, prepare_history
from chat_timeline.generation.coordinator import (
    GenerationCoordinator,
    GenerationSession,
    PendingGeneration,
)

__all__ = [
    "GenerationCoordinator",
    "GenerationSession",
    "ModelProvider",
    "PendingGeneration",
    "StreamChunk",
    "prepare_history",
]
