"""Shared fixtures and fakes for the test suite."""

import asyncio
from typing import Dict, List, Optional, Sequence, Union

import pytest

from src.ai_translator.exceptions import StreamInterruptedError
from src.ai_translator.models.records import TokenUsage
from src.ai_translator.services.transport import StreamChunk, StreamingTransport


def item_xml(key: str, text: str, comment: Optional[str] = None) -> str:
    """One well-formed item as the model is instructed to write it."""
    comment_xml = f"<comment><![CDATA[{comment}]]></comment>" if comment else ""
    return f"<item><key>{key}</key><trx><![CDATA[{text}]]></trx>{comment_xml}</item>"


def response_xml(pairs: Dict[str, str]) -> str:
    """A complete response with the outer container."""
    items = "\n  ".join(item_xml(key, text) for key, text in pairs.items())
    return f"<translations>\n  {items}\n</translations>"


def split_every(text: str, size: int) -> List[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


Script = Union[Sequence[str], Exception]


class ScriptedTransport(StreamingTransport):
    """
    In-memory transport replaying one scripted response per attempt.

    A script is a list of text chunks; a trailing exception instance in the
    list is raised after the preceding chunks have been delivered.
    """

    def __init__(self, *scripts, usage: Optional[TokenUsage] = None, delay: float = 0.0):
        self.scripts = list(scripts)
        self.usage = usage
        self.delay = delay
        self.calls: List[Dict[str, str]] = []

    async def stream(self, system_prompt: str, user_prompt: str):
        self.calls.append({"system": system_prompt, "user": user_prompt})
        script = self.scripts[min(len(self.calls), len(self.scripts)) - 1]
        for chunk in script:
            if isinstance(chunk, BaseException):
                raise chunk
            if self.delay:
                await asyncio.sleep(self.delay)
            yield StreamChunk(text=chunk)
        if self.usage is not None:
            yield StreamChunk(usage=self.usage)


class StallingTransport(StreamingTransport):
    """Sends some chunks and then never sends another."""

    def __init__(self, chunks: Sequence[str]):
        self.chunks = list(chunks)
        self.calls = 0

    async def stream(self, system_prompt: str, user_prompt: str):
        self.calls += 1
        for chunk in self.chunks:
            yield StreamChunk(text=chunk)
        await asyncio.sleep(3600)


class EchoTransport(StreamingTransport):
    """
    Answers every key listed in the prompt with ``[target] key``.

    Keys whose unprefixed part is in ``drop`` are left out of the answer.
    """

    def __init__(self, drop: Sequence[str] = (), chunk_size: int = 20, usage: Optional[TokenUsage] = None):
        self.drop = set(drop)
        self.chunk_size = chunk_size
        self.usage = usage
        self.calls: List[Dict[str, str]] = []

    @staticmethod
    def requested_keys(user_prompt: str) -> List[str]:
        _, _, tail = user_prompt.rpartition("Keys to return")
        return [line.strip() for line in tail.splitlines()[1:] if line.strip()]

    async def stream(self, system_prompt: str, user_prompt: str):
        self.calls.append({"system": system_prompt, "user": user_prompt})
        keys = [k for k in self.requested_keys(user_prompt) if k.split(".", 1)[-1] not in self.drop]
        text = response_xml({key: f"[target] {key.split('.', 1)[-1]}" for key in keys})
        for chunk in split_every(text, self.chunk_size):
            yield StreamChunk(text=chunk)
        if self.usage is not None:
            yield StreamChunk(usage=self.usage)


@pytest.fixture
def namespaced():
    """Build a response whose keys carry the prefix of a batch named ``prefix``."""
    def build(prefix: str, pairs: Dict[str, str]) -> str:
        return response_xml({f"{prefix}.{key}": text for key, text in pairs.items()})
    return build


@pytest.fixture
def interrupted():
    return StreamInterruptedError("connection reset")
