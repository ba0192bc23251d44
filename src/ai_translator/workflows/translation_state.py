"""State management for translation workflows."""

from typing import List, Dict, Any, Optional, Set
from pydantic import BaseModel, Field, field_validator
from typing_extensions import TypedDict

from ..models.records import TokenUsage, TranslationRecord


class BatchItem(BaseModel):
    """A source string to translate."""
    text: str = Field(..., description="Source text")
    context: Optional[str] = Field(None, description="Where and how the string is used")
    references: Dict[str, str] = Field(
        default_factory=dict, description="Existing translations of the string, keyed by locale"
    )


class ContextEntry(BaseModel):
    """An already-translated string shown to the model for consistency."""
    source: str
    target: Optional[str] = None


def _coerce_items(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: {"text": item} if isinstance(item, str) else item for key, item in value.items()}
    return value


class BatchRequest(BaseModel):
    """A set of strings sent to the model in one prompt/response cycle."""
    batch_id: str = Field(..., description="Batch identity, usually the source file name")
    source_locale: str = Field(..., description="Locale of the source strings")
    target_locale: str = Field(..., description="Locale to translate into")
    items: Dict[str, BatchItem] = Field(..., description="Items keyed by string key, in prompt order")
    additional_rules: List[str] = Field(default_factory=list, description="Extra rules for the target language")
    translation_context: Dict[str, Dict[str, ContextEntry]] = Field(
        default_factory=dict, description="Already-translated strings per file"
    )

    @field_validator("items", mode="before")
    @classmethod
    def coerce_plain_strings(cls, value: Any) -> Any:
        return _coerce_items(value)

    @property
    def keys(self) -> List[str]:
        return list(self.items.keys())


class VerificationOutcome(BaseModel):
    """Completeness check of one attempt's records against the requested keys."""
    requested_keys: Set[str] = Field(default_factory=set)
    missing_keys: Set[str] = Field(default_factory=set)
    unexpected_keys: Set[str] = Field(default_factory=set)
    valid_records: List[TranslationRecord] = Field(default_factory=list)
    lenient: bool = Field(False, description="Accepted through the single-key rule")
    passed: bool = False


class AttemptResult(BaseModel):
    """Records and verification outcome of one attempt."""
    attempt: int = Field(..., ge=1)
    records: List[TranslationRecord] = Field(default_factory=list)
    outcome: VerificationOutcome
    interrupted: bool = Field(False, description="The stream ended before the model finished")
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @property
    def succeeded(self) -> bool:
        return self.outcome.passed and not self.interrupted


class TranslationJobRequest(BaseModel):
    """Input request for translating one or more files of strings."""
    files: Dict[str, Dict[str, BatchItem]] = Field(..., description="Items keyed by file name, then by key")
    source_locale: str = Field("en", description="Locale of the source strings")
    target_locale: str = Field(..., description="Locale to translate into")
    model_name: Optional[str] = Field(None, description="Model to use; defaults to the configured model")
    model_params: Dict[str, Any] = Field(default_factory=dict, description="Additional model parameters")
    batch_size: Optional[int] = Field(None, ge=1, description="Maximum number of keys per batch")
    max_attempts: Optional[int] = Field(None, ge=1, le=10, description="Attempts per batch")
    additional_rules: List[str] = Field(default_factory=list, description="Extra rules for the target language")
    translation_context: Dict[str, Dict[str, ContextEntry]] = Field(default_factory=dict)

    @field_validator("files", mode="before")
    @classmethod
    def coerce_plain_strings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {name: _coerce_items(items) for name, items in value.items()}
        return value

    @property
    def total_strings(self) -> int:
        return sum(len(items) for items in self.files.values())


class TranslatedString(BaseModel):
    """Result for a single translated key."""
    file: str
    key: str
    translated_text: str
    comment: Optional[str] = None


class BatchResult(BaseModel):
    """Result of processing a batch."""
    batch_id: str = Field(..., description="Batch identifier")
    results: List[TranslatedString] = Field(default_factory=list, description="Translation results")
    processing_time: float = Field(..., description="Time taken to process batch in seconds")
    model_used: str = Field(..., description="Model used for translation")
    attempts: int = Field(0, description="Attempts made for the batch")
    usage: TokenUsage = Field(default_factory=TokenUsage)
    success: bool = Field(True, description="Whether batch processing was successful")
    error_message: Optional[str] = Field(None, description="Error message if processing failed")
    missing_keys: List[str] = Field(default_factory=list)


class TranslationWorkflowState(TypedDict):
    """Represents the state of the translation workflow."""
    original_request: TranslationJobRequest
    batches: List[BatchRequest]
    current_batch_index: int
    batch_results: List[BatchResult]
    final_results: List[TranslatedString]
    total_strings: int
    processed_strings: int
    workflow_start_time: float
    workflow_status: str
    errors: List[Dict[str, Any]]
    model_name: str
    model_params: Dict[str, Any]
    metadata: Dict[str, Any]
