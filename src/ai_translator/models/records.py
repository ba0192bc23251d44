"""Record and event models produced while parsing model output."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranslationStatus(str, Enum):
    """Lifecycle of a single translation item in a response stream."""
    STARTED = "started"
    COMPLETED = "completed"


class TranslationRecord(BaseModel):
    """One parsed key/translation pair."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Key of the translated string")
    translated_text: str = Field(..., description="Translated text with envelope and escaping removed")
    comment: Optional[str] = Field(None, description="Optional note from the model about the translation")

    def with_key(self, key: str) -> "TranslationRecord":
        """Return a copy of the record under a different key."""
        return self.model_copy(update={"key": key})


class ExtractorEvent(BaseModel):
    """Event emitted by the extractor for one item."""
    model_config = ConfigDict(frozen=True)

    status: TranslationStatus
    key: str
    record: Optional[TranslationRecord] = None

    @classmethod
    def started(cls, key: str) -> "ExtractorEvent":
        return cls(status=TranslationStatus.STARTED, key=key)

    @classmethod
    def completed(cls, record: TranslationRecord) -> "ExtractorEvent":
        return cls(status=TranslationStatus.COMPLETED, key=record.key, record=record)


class TokenUsage(BaseModel):
    """Token counters reported by the model provider."""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cache_creation_input_tokens=self.cache_creation_input_tokens + other.cache_creation_input_tokens,
            cache_read_input_tokens=self.cache_read_input_tokens + other.cache_read_input_tokens,
        )

    @property
    def is_empty(self) -> bool:
        return self.total_tokens == 0 and self.input_tokens == 0 and self.output_tokens == 0

    @classmethod
    def from_usage_metadata(cls, usage: Dict[str, Any]) -> "TokenUsage":
        """Build from a LangChain ``usage_metadata`` dict."""
        details = usage.get("input_token_details") or {}
        input_tokens = int(usage.get("input_tokens") or 0)
        output_tokens = int(usage.get("output_tokens") or 0)
        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=int(usage.get("total_tokens") or input_tokens + output_tokens),
            cache_creation_input_tokens=int(details.get("cache_creation") or 0),
            cache_read_input_tokens=int(details.get("cache_read") or 0),
        )
