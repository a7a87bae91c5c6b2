"""Google Gemini provider — requires google-genai (guarded import).

Streams responses through the official Google GenAI SDK, with the Google
Search tool enabled so that answers carry grounding citations.

Classes
-------
- GeminiProvider  — ``ModelProvider`` backed by ``google.genai``

Functions
---------
- parse_data_url  — split an encoded image into MIME type and bytes
"""
from __future__ import annotations

import base64
from collections.abc import AsyncIterator
from typing import Any

from chat_timeline.config import GenerationConfig
from chat_timeline.conversation.state import Citation, Message, MessageRole
from chat_timeline.generation.provider import ModelProvider, StreamChunk

_GENAI_IMPORT_ERROR = (
    "GeminiProvider requires the 'google-genai' package. "
    "Install it with: pip install google-genai  or  pip install 'chat-timeline[gemini]'"
)

_DEFAULT_IMAGE_MIME = "image/jpeg"


def parse_data_url(image: str) -> tuple[str, bytes]:
    """Return ``(mime_type, raw_bytes)`` for an encoded image.

    Accepts ``data:<mime>;base64,<payload>`` URLs and bare base64 strings;
    the latter are assumed to be JPEG.
    """
    mime_type = _DEFAULT_IMAGE_MIME
    payload = image
    if image.startswith("data:") and "," in image:
        header, payload = image.split(",", 1)
        declared = header[len("data:"):].split(";", 1)[0]
        if declared:
            mime_type = declared
    return mime_type, base64.b64decode(payload)


def _chunk_text(chunk: Any) -> str:
    """Join the text parts of a streamed chunk, tolerating empty chunks."""
    candidates = getattr(chunk, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        texts = [part.text for part in parts if getattr(part, "text", None)]
        if texts:
            return "".join(texts)
    return ""


def _chunk_citations(chunk: Any) -> list[Citation]:
    """Map a chunk's grounding metadata to citations."""
    candidates = getattr(chunk, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    grounding_chunks = getattr(metadata, "grounding_chunks", None) or []
    citations: list[Citation] = []
    for grounding in grounding_chunks:
        web = getattr(grounding, "web", None)
        uri = getattr(web, "uri", None)
        if uri:
            citations.append(Citation(uri=uri, title=getattr(web, "title", None) or ""))
    return citations


class GeminiProvider(ModelProvider):
    """Google Gemini streaming provider.

    Each request is stateless: the full history prefix is sent every time,
    so requests for different conversations never share a chat session.

    Parameters
    ----------
    api_key:
        Google AI API key.  It is passed through unvalidated.
    config:
        Model name, system instruction and search-tool switch.
    **client_kwargs:
        Extra keyword arguments for ``genai.Client``.
    """

    def __init__(
        self,
        api_key: str,
        config: GenerationConfig | None = None,
        **client_kwargs: Any,
    ) -> None:
        try:
            from google import genai
        except ImportError as exc:
            raise ImportError(_GENAI_IMPORT_ERROR) from exc

        self._config = config or GenerationConfig()
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def model(self) -> str:
        """The model requests are sent to."""
        return self._config.model

    def _content(self, role: MessageRole, text: str, images: list[str]) -> Any:
        from google.genai import types

        parts = []
        for image in images:
            mime_type, data = parse_data_url(image)
            parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        if text:
            parts.append(types.Part(text=text))
        return types.Content(
            role="model" if role == MessageRole.ASSISTANT else "user",
            parts=parts,
        )

    def _request_config(self) -> Any:
        from google.genai import types

        tools = [types.Tool(google_search=types.GoogleSearch())] if self._config.enable_search else None
        return types.GenerateContentConfig(
            system_instruction=self._config.system_instruction,
            tools=tools,
        )

    async def request_continuation(
        self,
        conversation_id: str,
        history: list[Message],
        prompt_text: str,
        prompt_images: list[str],
    ) -> AsyncIterator[StreamChunk]:
        """Stream Gemini's answer to the prompt as ``StreamChunk`` items."""
        contents = [
            self._content(message.role, message.content.text, message.content.images)
            for message in history
        ]
        contents.append(self._content(MessageRole.USER, prompt_text, prompt_images))

        stream = await self._client.aio.models.generate_content_stream(
            model=self._config.model,
            contents=contents,
            config=self._request_config(),
        )
        async for chunk in stream:
            text = _chunk_text(chunk)
            citations = _chunk_citations(chunk)
            if text or citations:
                yield StreamChunk(delta=text or None, citations=citations)
