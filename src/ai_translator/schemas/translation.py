"""Translation API schemas."""

from typing import List, Dict, Any, Optional, Union
from pydantic import BaseModel, Field, field_validator

from ..workflows.translation_state import BatchItem, ContextEntry, TranslatedString, TranslationJobRequest


class TranslationAPIRequest(BaseModel):
    """API request model for translation."""
    files: Dict[str, Dict[str, Union[str, BatchItem]]] = Field(
        ..., description="Strings to translate keyed by file name, then by key; a value may be plain text"
    )
    source_locale: str = Field("en", description="Locale of the source strings")
    target_locale: str = Field(..., description="Locale to translate into")
    model_name: Optional[str] = Field(None, description="Model to use; defaults to the configured model")
    batch_size: Optional[int] = Field(None, description="Maximum number of keys per batch", ge=1)
    max_attempts: Optional[int] = Field(None, description="Attempts per batch", ge=1, le=10)
    model_params: Dict[str, Any] = Field(default_factory=dict, description="Additional model parameters")
    additional_rules: List[str] = Field(default_factory=list, description="Extra rules for the target language")
    translation_context: Dict[str, Dict[str, ContextEntry]] = Field(
        default_factory=dict, description="Already-translated strings shown to the model for consistency"
    )

    @field_validator("files")
    @classmethod
    def validate_files(cls, value: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        if not any(value.values()):
            raise ValueError("At least one string is required")
        return value

    def to_job(self) -> TranslationJobRequest:
        return TranslationJobRequest(
            files={
                name: {key: item if isinstance(item, BatchItem) else BatchItem(text=item) for key, item in items.items()}
                for name, items in self.files.items()
            },
            source_locale=self.source_locale,
            target_locale=self.target_locale,
            model_name=self.model_name,
            model_params=self.model_params,
            batch_size=self.batch_size,
            max_attempts=self.max_attempts,
            additional_rules=self.additional_rules,
            translation_context=self.translation_context,
        )


class TranslationAPIResponse(BaseModel):
    """API response model for translation."""
    success: bool = Field(..., description="Whether every batch was translated")
    results: List[TranslatedString] = Field(..., description="Translated strings")
    metadata: Dict[str, Any] = Field(..., description="Processing metadata, including timing, batches and token usage")
    errors: List[Dict[str, Any]] = Field(default_factory=list, description="Failed batches with their missing keys")
