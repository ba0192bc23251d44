"""Streaming transports that deliver model output as text deltas."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel

from ..exceptions import StreamInterruptedError, TransportError
from ..models.records import TokenUsage

logger = logging.getLogger("ai_translator.services.transport")

_INTERRUPTION_ERRORS = (
    asyncio.TimeoutError,
    httpx.TimeoutException,
    httpx.RemoteProtocolError,
    httpx.ReadError,
)


class StreamChunk(BaseModel):
    """One delta of a streamed response."""
    text: str = ""
    usage: Optional[TokenUsage] = None


class StreamingTransport(ABC):
    """Sends one prompt and yields the response as it arrives."""

    @abstractmethod
    def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[StreamChunk]:
        """
        Stream the model's answer.

        Raises:
            StreamInterruptedError: the stream stopped before the model finished
            TransportError: the request could not be made or failed
        """


def _is_interruption(exc: BaseException) -> bool:
    return isinstance(exc, _INTERRUPTION_ERRORS) or type(exc).__name__.endswith("TimeoutError")


def message_text(content: Any) -> str:
    """Text of a message chunk's content, skipping non-text blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(block.get("text") or "")
        return "".join(parts)
    return ""


class LangChainStreamingTransport(StreamingTransport):
    """Transport over a LangChain chat model's ``astream``."""

    def __init__(self, model: BaseChatModel, model_name: Optional[str] = None):
        self.model = model
        self.model_name = model_name or getattr(model, "model", None) or type(model).__name__

    async def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[StreamChunk]:
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        try:
            async for chunk in self.model.astream(messages):
                usage_metadata = getattr(chunk, "usage_metadata", None)
                usage = TokenUsage.from_usage_metadata(usage_metadata) if usage_metadata else None
                text = message_text(getattr(chunk, "content", ""))
                if text or usage is not None:
                    yield StreamChunk(text=text, usage=usage)
        except TransportError:
            raise
        except Exception as exc:
            if _is_interruption(exc):
                logger.warning("Stream from %s interrupted: %s", self.model_name, exc)
                raise StreamInterruptedError(f"Stream from {self.model_name} interrupted: {exc}") from exc
            raise TransportError(f"Streaming request to {self.model_name} failed: {exc}") from exc
