"""Tests for utility helpers."""

import pytest

from src.ai_translator.exceptions import TransportError, VerificationError
from src.ai_translator.utils.helpers import (
    batch_label,
    chunk_items,
    create_processing_metadata,
    missing_keys_of,
    sanitize_model_params,
)
from src.ai_translator.workflows.translation_state import VerificationOutcome


class TestChunkItems:
    """Order-preserving chunking."""

    def test_chunks(self):
        items = {"a": 1, "b": 2, "c": 3, "d": 4, "e": 5}

        assert list(chunk_items(items, 2)) == [{"a": 1, "b": 2}, {"c": 3, "d": 4}, {"e": 5}]

    def test_empty(self):
        assert list(chunk_items({}, 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunk_items({"a": 1}, 0))


class TestBatchLabel:

    def test_single_batch_keeps_file_name(self):
        assert batch_label("auth.php", 0, 1) == "auth.php"

    def test_numbered_batches(self):
        assert [batch_label("auth.php", i, 3) for i in range(3)] == ["auth.php#1", "auth.php#2", "auth.php#3"]


class TestSanitizeModelParams:
    """Model parameter filtering."""

    def test_filters_converts_and_clamps(self):
        params = {"temperature": "3.5", "max_tokens": "2048", "top_p": -1, "stop": ["</translations>"]}

        assert sanitize_model_params(params) == {"temperature": 2.0, "max_tokens": 2048, "top_p": 0.0}

    def test_drops_unconvertible_values(self):
        assert sanitize_model_params({"temperature": "warm"}) == {}


class TestMetadata:

    def test_processing_metadata(self):
        metadata = create_processing_metadata(
            start_time=1000.0,
            end_time=1012.5,
            total_strings=8,
            model_name="gpt-4o",
            batch_size=4,
            success_count=6,
            error_count=2,
            usage={"total_tokens": 900},
        )

        assert metadata["processing_time_seconds"] == 12.5
        assert metadata["success_rate"] == 75.0
        assert metadata["token_usage"] == {"total_tokens": 900}

    def test_missing_keys_of(self):
        error = VerificationError("auth.php", VerificationOutcome(missing_keys={"b", "a"}), 3)

        assert missing_keys_of(error) == ["a", "b"]
        assert missing_keys_of(TransportError("down")) == []
